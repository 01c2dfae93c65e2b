# ──────────────────────────────────────────────────────────────────────────────
# File: utils/__init__.py
# Purpose: Package marker for small shared helpers (env readers, fan-out).
# ──────────────────────────────────────────────────────────────────────────────
__all__: list[str] = []

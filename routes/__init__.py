# ──────────────────────────────────────────────────────────────────────────────
# File: routes/__init__.py
# Purpose: Package marker with NO eager router imports; main.py mounts by path.
# ──────────────────────────────────────────────────────────────────────────────
__all__: list[str] = []

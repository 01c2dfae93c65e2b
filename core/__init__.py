# ──────────────────────────────────────────────────────────────────────────────
# File: core/__init__.py
# Purpose: Package marker for the pure domain pieces (categories, index, events).
# ──────────────────────────────────────────────────────────────────────────────
__all__: list[str] = []

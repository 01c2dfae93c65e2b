# ──────────────────────────────────────────────────────────────────────────────
# File: utils/env.py
# Purpose: Safe readers over an env mapping that ignore malformed values
#          (e.g., "35=") and provide stable defaults. Keep tiny and dependency-free.
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations
import re
from typing import List, Mapping

_NUM_RE = re.compile(r"^\s*([0-9]+(?:\.[0-9]+)?)\s*$")

def get_str(env: Mapping[str, str], name: str, default: str = "") -> str:
    v = (env.get(name) or "").strip()
    return v or default

def get_float(env: Mapping[str, str], name: str, default: float) -> float:
    v = env.get(name)
    if not v: return float(default)
    m = _NUM_RE.match(v)
    return float(m.group(1)) if m else float(default)

def get_int(env: Mapping[str, str], name: str, default: int) -> int:
    v = env.get(name)
    if not v: return int(default)
    m = _NUM_RE.match(v)
    return int(float(m.group(1))) if m else int(default)

def get_list(env: Mapping[str, str], name: str, default: List[str]) -> List[str]:
    """Comma or whitespace separated, de-duplicated, order kept."""
    v = env.get(name)
    if not v: return list(default)
    seen, out = set(), []
    for p in (s.strip() for chunk in v.split(",") for s in chunk.split()):
        if p and p not in seen:
            seen.add(p)
            out.append(p)
    return out

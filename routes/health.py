# ──────────────────────────────────────────────────────────────────────────────
# File: routes/health.py
# Purpose: Liveness text (/), liveness JSON (/livez) and readiness (/readyz)
#          • /readyz: index state, version, record count, last sync report
#            and the search strategy in effect
#
# Contract:
#   • No upstream I/O; never raises.
#   • In PROD only: 503 while the index has never been populated and search
#     depends on it (strategy "indexed"). In non-prod: always 200.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import time
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

router = APIRouter(tags=["health"])

LIVENESS_TEXT = "Intranet backend is live."


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Endpoints                                                                │
# ╰──────────────────────────────────────────────────────────────────────────╯

@router.get("/", response_class=PlainTextResponse, summary="Liveness text")
def root() -> str:
    return LIVENESS_TEXT


@router.get("/livez", summary="Liveness probe")
def livez() -> Dict[str, Any]:
    """Simple heartbeat; indicates process is up and serving requests."""
    return {"ok": True, "ts": int(time.time())}


@router.get("/readyz", summary="Readiness probe")
def readyz(request: Request) -> JSONResponse:
    components = getattr(request.app.state, "components", None)
    if components is None:
        return JSONResponse(status_code=503, content={"ok": False, "problems": ["not_started"]})

    settings = components.settings
    snap = components.index.snapshot()
    last = components.synchronizer.last_report

    ok = True
    problems: List[str] = []
    if snap.is_empty and settings.search_strategy == "indexed":
        problems.append("index_empty")
        if settings.is_prod:
            ok = False

    payload = {
        "ok": ok,
        "env": settings.app_env,
        "ts": int(time.time()),
        "index": {
            "state": components.index.state,
            "version": snap.version,
            "records": len(snap),
            "synced_at": snap.synced_at.isoformat() if snap.synced_at else None,
            "sync_in_flight": components.synchronizer.in_flight,
            "last_report": last.as_dict() if last else None,
        },
        "search_strategy": settings.search_strategy,
        "categories": list(components.registry.names),
        "problems": problems,
    }
    return JSONResponse(status_code=(200 if ok else 503), content=payload)

# ──────────────────────────────────────────────────────────────────────────────
# File: routes/admin.py
# Purpose: Operator endpoints for the document index (require ADMIN_API_KEY).
#
# Endpoints:
#   • POST /api/admin/sync   → run one pass now; 409 if a pass is in flight
#   • GET  /api/admin/index  → current snapshot metadata + last report
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from services.auth import require_api_key
from services.container import Components, get_components

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_api_key)],  # enforce auth on ALL endpoints
)


@router.post("/sync")
async def sync_now(components: Components = Depends(get_components)):
    if components.synchronizer.in_flight:
        raise HTTPException(status_code=409, detail="Synchronization already in progress")
    report = await components.synchronizer.run_once()
    if report.skipped:
        raise HTTPException(status_code=409, detail="Synchronization already in progress")
    return {"ok": report.committed, "report": report.as_dict()}


@router.get("/index")
def index_status(components: Components = Depends(get_components)):
    snap = components.index.snapshot()
    last = components.synchronizer.last_report
    return {
        "state": components.index.state,
        "version": snap.version,
        "records": len(snap),
        "synced_at": snap.synced_at.isoformat() if snap.synced_at else None,
        "categories": list(components.registry.names),
        "last_report": last.as_dict() if last else None,
    }

# ──────────────────────────────────────────────────────────────────────────────
# File: routes/search.py
# Purpose: GET /api/search?q=: documents (index or live, per deployment)
#          followed by matching news headlines.
#
# Upstream:
#   - Imports: fastapi, services.container, services.search
#
# Downstream:
#   - main
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from services.container import Components, get_components
from services.request_models import ErrorOut, SearchHitOut

router = APIRouter(prefix="/api", tags=["search"])


@router.get(
    "/search",
    response_model=List[SearchHitOut],
    responses={400: {"model": ErrorOut}, 500: {"model": ErrorOut}},
    summary="Keyword search over documents and news",
)
async def search(
    q: Optional[str] = Query(None, description="Search string"),
    components: Components = Depends(get_components),
):
    """Empty/missing ``q`` is a 400 raised by the engine."""
    return await components.search.search(q or "")

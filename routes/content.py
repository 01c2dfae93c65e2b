# File: routes/content.py
# Purpose: Read-through list proxies (news, calendar events, partners).
#          Upstream failure → 500 via the shared error handler.

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends

from services.container import Components, get_components
from services.content import fetch_calendar_events, fetch_news, fetch_partners
from services.request_models import CalendarEventOut, ErrorOut, NewsOut, PartnerOut

router = APIRouter(prefix="/api", tags=["content"], responses={500: {"model": ErrorOut}})


@router.get("/news", response_model=List[NewsOut])
async def news(components: Components = Depends(get_components)):
    items = await fetch_news(components.documents, components.settings.news_list_id)
    return [n.as_dict() for n in items]


@router.get("/calendar-events", response_model=List[CalendarEventOut])
async def calendar_events(components: Components = Depends(get_components)):
    events = await fetch_calendar_events(components.documents, components.settings.calendar_list_id)
    return [e.as_dict() for e in events]


@router.get("/partners/{category}", response_model=List[PartnerOut])
async def partners(category: str, components: Components = Depends(get_components)):
    found = await fetch_partners(components.documents, components.settings.partners_list_id, category)
    return [p.as_dict() for p in found]

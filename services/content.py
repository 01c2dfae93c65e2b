"""Read-through proxies for SharePoint lists: news, calendar events, partners.

Each function is one list call plus a projection of the raw ``fields`` map.
SharePoint hyperlink columns arrive as ``{"Url": ..., "Description": ...}``;
plain text columns as strings.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from services.graph_client import ListItem, RemoteDocumentService


def _text(fields: Dict[str, Any], *names: str) -> str:
    for n in names:
        v = fields.get(n)
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


def _link(fields: Dict[str, Any], *names: str) -> str:
    for n in names:
        v = fields.get(n)
        if isinstance(v, dict) and v.get("Url"):
            return str(v["Url"])
        if isinstance(v, str) and v.strip():
            return v.strip()
    return ""


@dataclass(frozen=True)
class NewsItem:
    id: str
    title: str
    description: str
    link: str
    published: Optional[str] = None

    def matches(self, needle: str) -> bool:
        return needle in self.title.lower() or needle in self.description.lower()

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_list_item(cls, item: ListItem) -> "NewsItem":
        f = item.fields
        return cls(
            id=item.id,
            title=_text(f, "Title"),
            description=_text(f, "Description", "Body", "Summary"),
            link=_link(f, "Link", "URL") or item.web_url,
            published=_text(f, "PublishedDate", "Published") or item.created,
        )


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    title: str
    start: Optional[str]
    end: Optional[str]
    location: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_list_item(cls, item: ListItem) -> "CalendarEvent":
        f = item.fields
        return cls(
            id=item.id,
            title=_text(f, "Title"),
            start=_text(f, "EventDate", "StartDate", "Start") or None,
            end=_text(f, "EndDate", "End") or None,
            location=_text(f, "Location"),
        )


@dataclass(frozen=True)
class Partner:
    id: str
    name: str
    description: str
    link: str
    category: str

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_list_item(cls, item: ListItem) -> "Partner":
        f = item.fields
        return cls(
            id=item.id,
            name=_text(f, "Title", "Name"),
            description=_text(f, "Description"),
            link=_link(f, "Link", "Website", "URL") or item.web_url,
            category=_text(f, "Category").lower(),
        )


async def fetch_news(client: RemoteDocumentService, list_id: str) -> List[NewsItem]:
    """Newest first; items without a date sort last."""
    items = [NewsItem.from_list_item(i) for i in await client.list_items(list_id)]
    dated = sorted((n for n in items if n.published), key=lambda n: n.published, reverse=True)
    return dated + [n for n in items if not n.published]


async def fetch_calendar_events(client: RemoteDocumentService, list_id: str) -> List[CalendarEvent]:
    """Ordered by start; undated events last."""
    events = [CalendarEvent.from_list_item(i) for i in await client.list_items(list_id)]
    return sorted(events, key=lambda e: (e.start is None, e.start or ""))


async def fetch_partners(client: RemoteDocumentService, list_id: str, category: str) -> List[Partner]:
    wanted = (category or "").strip().lower()
    partners = [Partner.from_list_item(i) for i in await client.list_items(list_id)]
    return [p for p in partners if p.category == wanted]

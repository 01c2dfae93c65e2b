# ──────────────────────────────────────────────────────────────────────────────
# File: services/graph_client.py
# Purpose: Remote Document Service client (SharePoint drive + lists over
#          Microsoft Graph).
#
# Upstream:
#   - Settings: SITE_ID, DRIVE_ID, UPSTREAM_TIMEOUT_S (+ token provider creds)
#   - Imports: httpx, services.graph_auth, services.errors
#
# Downstream:
#   - services.synchronizer, services.search, services.content, routes.documents
#
# Guarantees
#   • Every call obtains a currently-valid token first (GraphTokenProvider).
#   • Every call is bounded by the httpx timeout; timeout → UpstreamUnavailable.
#   • No retries here; callers decide.
#   • Status mapping: 404 → ResourceNotFound, 409 → Conflict, other non-2xx,
#     transport and decode errors → UpstreamUnavailable.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from services.errors import Conflict, InvalidInput, ResourceNotFound, UpstreamUnavailable
from services.graph_auth import GraphTokenProvider

logger = logging.getLogger("intranet.graph")

GRAPH_API = "https://graph.microsoft.com/v1.0"

# OData response keys
ODATA_NEXT_LINK = "@odata.nextLink"
ODATA_VALUE = "value"
DOWNLOAD_URL = "@microsoft.graph.downloadUrl"
CONFLICT_BEHAVIOR = "@microsoft.graph.conflictBehavior"

RESERVED_NAMES = frozenset({".", ".."})


@dataclass(frozen=True)
class RemoteItem:
    """One drive item as returned by list/get/search."""

    id: str
    name: str
    size: Optional[int] = None
    link: str = ""
    download_url: Optional[str] = None
    is_folder: bool = False

    @classmethod
    def from_graph(cls, raw: Dict[str, Any]) -> "RemoteItem":
        size = raw.get("size")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            size=int(size) if isinstance(size, (int, float)) else None,
            link=str(raw.get("webUrl") or ""),
            download_url=raw.get(DOWNLOAD_URL),
            is_folder="folder" in raw,
        )


@dataclass(frozen=True)
class UploadedFile:
    name: str
    link: str
    size: Optional[int] = None


@dataclass(frozen=True)
class ListItem:
    """One SharePoint list item; ``fields`` is the raw column map."""

    id: str
    fields: Dict[str, Any] = field(default_factory=dict)
    web_url: str = ""
    created: Optional[str] = None

    @classmethod
    def from_graph(cls, raw: Dict[str, Any]) -> "ListItem":
        return cls(
            id=str(raw.get("id") or ""),
            fields=dict(raw.get("fields") or {}),
            web_url=str(raw.get("webUrl") or ""),
            created=raw.get("createdDateTime"),
        )


class RemoteDocumentService(ABC):
    """Interface every document backend adapter must implement."""

    @abstractmethod
    async def list_children(self, folder_id: str) -> List[RemoteItem]:
        ...

    @abstractmethod
    async def get_item(self, item_id: str) -> RemoteItem:
        ...

    @abstractmethod
    async def upload(self, folder_id: str, filename: str, content: bytes,
                     content_type: Optional[str] = None) -> UploadedFile:
        ...

    @abstractmethod
    async def query(self, text: str) -> List[RemoteItem]:
        ...

    @abstractmethod
    async def list_items(self, list_id: str) -> List[ListItem]:
        ...

    async def aclose(self) -> None:
        return None


def create_graph_http_client(timeout_s: float) -> httpx.AsyncClient:
    """Shared AsyncClient: one timeout knob for connect/read/write/pool, pooled keep-alive."""
    timeout = httpx.Timeout(connect=timeout_s, read=timeout_s, write=timeout_s, pool=timeout_s)
    limits = httpx.Limits(max_keepalive_connections=10, max_connections=20, keepalive_expiry=30.0)
    return httpx.AsyncClient(timeout=timeout, limits=limits)


class GraphDocumentService(RemoteDocumentService):
    def __init__(
        self,
        http: httpx.AsyncClient,
        tokens: GraphTokenProvider,
        *,
        site_id: str,
        drive_id: str,
        base_url: str = GRAPH_API,
    ):
        self._http = http
        self._tokens = tokens
        self._site_id = site_id
        self._drive_id = drive_id
        self._base = base_url.rstrip("/")

    # ── plumbing ─────────────────────────────────────────────────────────────
    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        token = await self._tokens.get_token()
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {token}"
        try:
            r = await self._http.request(method, url, headers=headers, **kwargs)
        except httpx.TimeoutException as exc:
            logger.warning("graph %s timed out path=%s", method, _path(url))
            raise UpstreamUnavailable(f"graph {method} timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("graph %s failed path=%s err=%s", method, _path(url), exc.__class__.__name__)
            raise UpstreamUnavailable(f"graph {method} failed") from exc

        if r.status_code == 401:
            # token revoked/expired early; next call acquires a new one
            self._tokens.invalidate()
        if r.status_code == 404:
            raise ResourceNotFound(f"graph resource not found: {_path(url)}")
        if r.status_code == 409:
            raise Conflict(f"graph conflict: {_path(url)}")
        if r.status_code >= 400:
            logger.warning(
                "graph %s rejected path=%s status=%s body=%s",
                method, _path(url), r.status_code, r.text[:200],
            )
            raise UpstreamUnavailable(f"graph {method} rejected ({r.status_code})")
        if not r.content:
            return {}
        try:
            return r.json()
        except ValueError as exc:
            raise UpstreamUnavailable("graph response is not JSON") from exc

    async def _paged(self, url: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        next_url: Optional[str] = url
        while next_url:
            body = await self._request("GET", next_url, params=params)
            out.extend(body.get(ODATA_VALUE) or [])
            next_url = body.get(ODATA_NEXT_LINK)
            params = None  # nextLink already carries the query
        return out

    def _drive(self, suffix: str) -> str:
        return f"{self._base}/drives/{self._drive_id}{suffix}"

    # ── operations ───────────────────────────────────────────────────────────
    async def list_children(self, folder_id: str) -> List[RemoteItem]:
        raw = await self._paged(self._drive(f"/items/{quote(folder_id, safe='')}/children"))
        return [RemoteItem.from_graph(x) for x in raw]

    async def get_item(self, item_id: str) -> RemoteItem:
        raw = await self._request("GET", self._drive(f"/items/{quote(item_id, safe='')}"))
        return RemoteItem.from_graph(raw)

    async def upload(self, folder_id: str, filename: str, content: bytes,
                     content_type: Optional[str] = None) -> UploadedFile:
        name = (filename or "").strip()
        if not name or name in RESERVED_NAMES or "/" in name or "\\" in name:
            raise InvalidInput(f"invalid upload filename {filename!r}", public_message="Invalid file name.")
        url = self._drive(f"/items/{quote(folder_id, safe='')}:/{quote(name, safe='')}:/content")
        headers = {"Content-Type": content_type or "application/octet-stream"}
        # without "fail" Graph replaces a same-name file instead of answering 409
        params = {CONFLICT_BEHAVIOR: "fail"}
        raw = await self._request("PUT", url, content=content, headers=headers, params=params)
        item = RemoteItem.from_graph(raw)
        return UploadedFile(name=item.name or name, link=item.download_url or item.link, size=item.size)

    async def query(self, text: str) -> List[RemoteItem]:
        q = (text or "").replace("'", "''")
        raw = await self._paged(self._drive(f"/root/search(q='{quote(q, safe='')}')"))
        return [RemoteItem.from_graph(x) for x in raw]

    async def list_items(self, list_id: str) -> List[ListItem]:
        url = f"{self._base}/sites/{self._site_id}/lists/{quote(list_id, safe='')}/items"
        raw = await self._paged(url, params={"expand": "fields"})
        return [ListItem.from_graph(x) for x in raw]

    async def aclose(self) -> None:
        await self._http.aclose()


def _path(url: str) -> str:
    """Strip host/query for logs."""
    return httpx.URL(url).path

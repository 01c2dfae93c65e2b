# ──────────────────────────────────────────────────────────────────────────────
# File: services/search.py
# Purpose: Answer keyword queries over documents, then append matching news.
#
# Strategies (one per deployment, chosen by SEARCH_STRATEGY):
#   • indexed: case-insensitive substring match over the current snapshot.
#   • live: enumerate every category folder per query (bounded fan-out)
#     and filter inline; always fresh, never touches the index.
#
# Result order is discovery order: documents first, then news. No scoring.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from core.categories import CategoryRegistry
from core.document_index import DocumentIndex, DocumentRecord
from services.content import NewsItem, fetch_news
from services.errors import InvalidInput, UpstreamUnavailable
from services.graph_client import RemoteDocumentService
from services.synchronizer import project
from utils.async_helpers import gather_bounded

logger = logging.getLogger("intranet.search")

SearchHit = Dict[str, str]


def document_hit(record: DocumentRecord) -> SearchHit:
    return {"type": "document", "title": record.name, "description": record.category, "link": record.link}


def news_hit(item: NewsItem) -> SearchHit:
    return {"type": "news", "title": item.title, "description": item.description, "link": item.link}


class SearchEngine(ABC):
    """Base engine: subclasses decide where document matches come from."""

    strategy = "base"

    def __init__(self, client: RemoteDocumentService, *, news_list_id: Optional[str] = None):
        self._client = client
        self._news_list_id = news_list_id

    @abstractmethod
    async def find_documents(self, needle: str) -> List[DocumentRecord]:
        ...

    async def search(self, query: str) -> List[SearchHit]:
        needle = (query or "").strip()
        if not needle:
            raise InvalidInput("empty query", public_message="Missing search query.")
        docs = await self.find_documents(needle)
        hits = [document_hit(r) for r in docs]
        if self._news_list_id:
            lowered = needle.lower()
            news = await fetch_news(self._client, self._news_list_id)
            hits.extend(news_hit(n) for n in news if n.matches(lowered))
        logger.info("search strategy=%s docs=%s total=%s", self.strategy, len(docs), len(hits))
        return hits


class IndexedSearchEngine(SearchEngine):
    strategy = "indexed"

    def __init__(self, index: DocumentIndex, client: RemoteDocumentService, *, news_list_id: Optional[str] = None):
        super().__init__(client, news_list_id=news_list_id)
        self._index = index

    async def find_documents(self, needle: str) -> List[DocumentRecord]:
        # one snapshot for the whole query
        return self._index.snapshot().search(needle)


class LiveSearchEngine(SearchEngine):
    strategy = "live"

    def __init__(
        self,
        registry: CategoryRegistry,
        client: RemoteDocumentService,
        *,
        news_list_id: Optional[str] = None,
        concurrency: int = 4,
    ):
        super().__init__(client, news_list_id=news_list_id)
        self._registry = registry
        self._concurrency = concurrency

    async def find_documents(self, needle: str) -> List[DocumentRecord]:
        lowered = needle.lower()
        outcomes = await gather_bounded(
            list(self._registry),
            lambda pair: self._client.list_children(pair[1]),
            limit=self._concurrency,
        )
        failed = [o.key[0] for o in outcomes if not o.ok]
        if failed:
            logger.warning("live search failed categories=%s", failed)
            raise UpstreamUnavailable(f"live search could not enumerate {failed}")
        out: List[DocumentRecord] = []
        for o in outcomes:
            category = o.key[0]
            out.extend(r for r in (project(item, category) for item in o.value or []) if r.matches(lowered))
        return out


def build_search_engine(
    strategy: str,
    *,
    index: DocumentIndex,
    registry: CategoryRegistry,
    client: RemoteDocumentService,
    news_list_id: Optional[str] = None,
    concurrency: int = 4,
) -> SearchEngine:
    if strategy == "indexed":
        return IndexedSearchEngine(index, client, news_list_id=news_list_id)
    if strategy == "live":
        return LiveSearchEngine(registry, client, news_list_id=news_list_id, concurrency=concurrency)
    raise ValueError(f"unknown search strategy {strategy!r}")

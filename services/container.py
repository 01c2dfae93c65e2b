"""
services/container.py
Purpose: Wire Settings into the long-lived components the routes share.

Components are built once per app (inside the lifespan) and reached from
handlers through ``get_components(request)``; handlers never build clients or
read the environment themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from core.categories import CategoryRegistry
from core.document_index import DocumentIndex
from services.graph_auth import GraphTokenProvider
from services.graph_client import GraphDocumentService, RemoteDocumentService, create_graph_http_client
from services.identity import IdentityStore
from services.search import SearchEngine, build_search_engine
from services.settings import Settings
from services.synchronizer import DocumentSynchronizer


@dataclass
class Components:
    settings: Settings
    registry: CategoryRegistry
    index: DocumentIndex
    documents: RemoteDocumentService
    identity: IdentityStore
    synchronizer: DocumentSynchronizer
    search: SearchEngine

    async def aclose(self) -> None:
        await self.synchronizer.stop()
        await self.documents.aclose()
        await self.identity.aclose()


def build_components(
    settings: Settings,
    *,
    documents: Optional[RemoteDocumentService] = None,
    identity: Optional[IdentityStore] = None,
) -> Components:
    """Build every component from Settings. ``documents``/``identity`` may be injected."""
    registry = CategoryRegistry(settings.category_folders)
    index = DocumentIndex()

    if documents is None:
        http = create_graph_http_client(settings.upstream_timeout_s)
        tokens = GraphTokenProvider(
            http,
            tenant_id=settings.tenant_id,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
        )
        documents = GraphDocumentService(http, tokens, site_id=settings.site_id, drive_id=settings.drive_id)

    if identity is None:
        identity = IdentityStore(
            httpx.AsyncClient(timeout=httpx.Timeout(settings.upstream_timeout_s)),
            base_url=settings.supabase_url,
            api_key=settings.supabase_key,
            table=settings.users_table,
        )

    synchronizer = DocumentSynchronizer(
        registry,
        documents,
        index,
        interval_s=settings.sync_interval_s,
        concurrency=settings.sync_concurrency,
    )
    search = build_search_engine(
        settings.search_strategy,
        index=index,
        registry=registry,
        client=documents,
        news_list_id=settings.news_list_id,
        concurrency=settings.sync_concurrency,
    )
    return Components(
        settings=settings,
        registry=registry,
        index=index,
        documents=documents,
        identity=identity,
        synchronizer=synchronizer,
        search=search,
    )


def get_components(request: Request) -> Components:
    return request.app.state.components

# File: conftest.py
# Directory: tests
# Purpose: Shared test fixtures: in-memory Remote Document Service, a
#          MockTransport-backed Identity Store, Settings and a wired TestClient.
#
# Notes:
# - Required env values are defaulted BEFORE anything imports main, so the
#   module-level `app = create_app()` can be constructed in tests.
# - Route tests build their own app via create_app(settings, documents=..., ...)
#   with start_sync=False and drive syncs explicitly.

import os

_TEST_ENV = {
    "SUPABASE_URL": "https://db.example.test",
    "SUPABASE_KEY": "anon-key",
    "CLIENT_ID": "client-id",
    "TENANT_ID": "tenant-id",
    "CLIENT_SECRET": "client-secret",
    "SITE_ID": "site-1",
    "DRIVE_ID": "drive-1",
    "FOLDER_ID_PERSONALE": "folder-personale",
    "FOLDER_ID_MEDARBEJDERE": "folder-medarbejdere",
    "NEWS_LIST_ID": "list-news",
    "CALENDAR_LIST_ID": "list-calendar",
    "PARTNERS_LIST_ID": "list-partners",
}
for _k, _v in _TEST_ENV.items():
    os.environ.setdefault(_k, _v)

import asyncio
import json
from typing import Dict, List, Optional

import bcrypt
import httpx
import pytest
from fastapi.testclient import TestClient

from services.errors import Conflict, ResourceNotFound
from services.graph_client import ListItem, RemoteDocumentService, RemoteItem, UploadedFile
from services.identity import IdentityStore
from services.settings import Settings

# --- Fake Remote Document Service -------------------------------------------------------------

class FakeDocumentService(RemoteDocumentService):
    """In-memory folders/lists. Records every call so tests can assert on traffic."""

    def __init__(self):
        self.folders: Dict[str, List[RemoteItem]] = {}
        self.lists: Dict[str, List[ListItem]] = {}
        self.failing: Dict[str, Exception] = {}
        self.calls: List[tuple] = []
        self.delay: float = 0.0
        self.closed = False

    def add(self, folder_id: str, *names: str) -> None:
        items = self.folders.setdefault(folder_id, [])
        for n in names:
            idx = len(items) + 1
            items.append(RemoteItem(
                id=f"{folder_id}-{idx}",
                name=n,
                size=100 * idx,
                link=f"https://sp.example.test/{folder_id}/{n}",
                download_url=f"https://dl.example.test/{folder_id}/{n}",
            ))

    async def list_children(self, folder_id: str) -> List[RemoteItem]:
        self.calls.append(("list_children", folder_id))
        if self.delay:
            await asyncio.sleep(self.delay)
        if folder_id in self.failing:
            raise self.failing[folder_id]
        if folder_id not in self.folders:
            raise ResourceNotFound(f"folder {folder_id}")
        return list(self.folders[folder_id])

    async def get_item(self, item_id: str) -> RemoteItem:
        self.calls.append(("get_item", item_id))
        for items in self.folders.values():
            for item in items:
                if item.id == item_id:
                    return item
        raise ResourceNotFound(item_id)

    async def upload(self, folder_id: str, filename: str, content: bytes,
                     content_type: Optional[str] = None) -> UploadedFile:
        self.calls.append(("upload", folder_id, filename))
        if folder_id in self.failing:
            raise self.failing[folder_id]
        if any(i.name == filename for i in self.folders.get(folder_id, [])):
            raise Conflict(filename)
        self.add(folder_id, filename)
        return UploadedFile(name=filename, link=f"https://dl.example.test/{folder_id}/{filename}", size=len(content))

    async def query(self, text: str) -> List[RemoteItem]:
        self.calls.append(("query", text))
        t = text.lower()
        return [i for items in self.folders.values() for i in items if t in i.name.lower()]

    async def list_items(self, list_id: str) -> List[ListItem]:
        self.calls.append(("list_items", list_id))
        if list_id in self.failing:
            raise self.failing[list_id]
        return list(self.lists.get(list_id, []))

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def fake_docs() -> FakeDocumentService:
    docs = FakeDocumentService()
    docs.add("folder-personale", "Q1 Report.pdf", "Handbook.docx")
    docs.add("folder-medarbejdere", "budget.xlsx")
    docs.lists["list-news"] = [
        ListItem(id="n1", fields={"Title": "Annual report published", "Description": "Read the annual report"},
                 web_url="https://sp.example.test/news/1", created="2025-01-10T08:00:00Z"),
        ListItem(id="n2", fields={"Title": "Summer party", "Description": "Friday at 15"},
                 web_url="https://sp.example.test/news/2", created="2025-06-01T08:00:00Z"),
    ]
    return docs


# --- Identity Store over MockTransport ----------------------------------------------------------

def bcrypt_hash(password: str) -> str:
    # low cost keeps the suite fast
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("ascii")


class FakeUsersTable:
    """Answers PostgREST `GET /rest/v1/users?email=eq.X` from in-memory rows."""

    def __init__(self, rows: Optional[List[dict]] = None):
        self.rows = rows or []
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with:
            return httpx.Response(self.fail_with, json={"message": "db down"})
        email_filter = request.url.params.get("email", "")
        email = email_filter[3:] if email_filter.startswith("eq.") else None
        rows = [r for r in self.rows if r["email"] == email]
        return httpx.Response(200, content=json.dumps(rows).encode(), headers={"content-type": "application/json"})


@pytest.fixture
def users_table() -> FakeUsersTable:
    return FakeUsersTable([
        {"id": 1, "name": "Peter Jensen", "email": "peter@gutfelt.com",
         "role": "Medarbejder", "password_hash": bcrypt_hash("123")},
        {"id": 2, "name": "Susanne Nielsen", "email": "susanne@gutfelt.com",
         "role": "HR-redaktør", "password_hash": bcrypt_hash("hemmelig")},
    ])


@pytest.fixture
def identity_store(users_table) -> IdentityStore:
    http = httpx.AsyncClient(transport=httpx.MockTransport(users_table.handler))
    return IdentityStore(http, base_url="https://db.example.test", api_key="anon-key")


# --- Settings + wired app -----------------------------------------------------------------------

@pytest.fixture
def settings_env() -> Dict[str, str]:
    return dict(_TEST_ENV)


@pytest.fixture
def settings(settings_env) -> Settings:
    return Settings.from_env(settings_env)


@pytest.fixture
def make_client(settings, fake_docs, identity_store):
    """Factory: build app (optionally with overridden settings) and enter its lifespan."""
    clients: List[TestClient] = []

    def _make(app_settings: Optional[Settings] = None, **kwargs) -> TestClient:
        from main import create_app
        app = create_app(app_settings or settings, documents=fake_docs, identity=identity_store,
                         start_sync=False)
        client = TestClient(app, raise_server_exceptions=False, **kwargs)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for c in clients:
        c.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def synced_client(client) -> TestClient:
    """Client whose document index has been populated by one sync pass."""
    components = client.app.state.components
    client.portal.call(components.synchronizer.run_once)
    return client


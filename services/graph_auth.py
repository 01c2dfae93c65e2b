"""
services/graph_auth.py
Purpose: Client-credentials access tokens for Microsoft Graph.

Every Graph call asks the provider for a token right before use. A cached token
is handed out only while it has more than REFRESH_MARGIN_S seconds of validity
left; otherwise a fresh one is acquired first.

Env (via Settings):
  - TENANT_ID, CLIENT_ID, CLIENT_SECRET
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from services.errors import UpstreamUnavailable

logger = logging.getLogger("intranet.graph.auth")

LOGIN_HOST = "https://login.microsoftonline.com"
GRAPH_SCOPE = "https://graph.microsoft.com/.default"
REFRESH_MARGIN_S = 120


class GraphTokenProvider:
    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        clock: Callable[[], float] = time.time,
    ):
        self._http = http
        self._token_url = f"{LOGIN_HOST}/{tenant_id}/oauth2/v2.0/token"
        self._client_id = client_id
        self._client_secret = client_secret
        self._clock = clock
        self._token: Optional[str] = None
        self._exp: float = 0.0
        self._lock = asyncio.Lock()

    def _valid(self) -> bool:
        return bool(self._token) and self._exp - self._clock() > REFRESH_MARGIN_S

    async def get_token(self) -> str:
        if self._valid():
            return self._token  # type: ignore[return-value]
        async with self._lock:
            # another caller may have refreshed while we waited
            if self._valid():
                return self._token  # type: ignore[return-value]
            await self._acquire()
            return self._token  # type: ignore[return-value]

    def invalidate(self) -> None:
        self._token = None
        self._exp = 0.0

    async def _acquire(self) -> None:
        data = {
            "grant_type": "client_credentials",
            "client_id": self._client_id,
            "client_secret": self._client_secret,
            "scope": GRAPH_SCOPE,
        }
        try:
            r = await self._http.post(self._token_url, data=data)
        except httpx.HTTPError as exc:
            logger.warning("token request failed: %s", exc.__class__.__name__)
            raise UpstreamUnavailable("graph token request failed") from exc

        if r.status_code != 200:
            logger.warning("token request rejected status=%s", r.status_code)
            raise UpstreamUnavailable(f"graph token request rejected ({r.status_code})")

        try:
            body = r.json()
        except ValueError as exc:
            raise UpstreamUnavailable("graph token response is not JSON") from exc
        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise UpstreamUnavailable("graph token response without access_token")
        try:
            expires_in = float(body.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0.0
        self._token = token
        self._exp = self._clock() + expires_in
        logger.info("graph token acquired expires_in=%ss", int(expires_in))

# ──────────────────────────────────────────────────────────────────────────────
# File: services/identity.py
# Purpose: Identity Store access (Supabase PostgREST over httpx) and
#          credential verification against bcrypt hashes.
#
# Contract
#   • verify_credential(email, password) → UserRecord or InvalidCredential.
#   • Unknown email, duplicate rows and wrong password raise the SAME error
#     with the SAME public message; callers cannot tell them apart.
#   • Store failures are UpstreamUnavailable, never InvalidCredential.
#   • Plaintext and hashes are never logged.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

import bcrypt
import httpx
from anyio import to_thread

from core.logging import log_event
from services.errors import InvalidCredential, UpstreamUnavailable

logger = logging.getLogger("intranet.identity")

USER_COLUMNS = "id,name,email,role,password_hash"
BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class UserRecord:
    id: Any
    name: str
    email: str
    role: str
    password_hash: str

    def public(self) -> Dict[str, Any]:
        """The fields a caller may see; the hash never leaves this module."""
        return {"id": self.id, "name": self.name, "email": self.email, "role": self.role}

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UserRecord":
        return cls(
            id=row.get("id"),
            name=str(row.get("name") or ""),
            email=str(row.get("email") or ""),
            role=str(row.get("role") or ""),
            password_hash=str(row.get("password_hash") or ""),
        )


def check_password(plaintext: str, password_hash: str) -> bool:
    """One-way bcrypt comparison. Malformed hashes count as a mismatch."""
    if not plaintext or not password_hash:
        return False
    # bcrypt only looks at the first 72 bytes; hashes seeded by other tools truncate too
    secret = plaintext.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(secret, password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("stored password hash is not a valid bcrypt hash")
        return False


class IdentityStore:
    def __init__(self, http: httpx.AsyncClient, *, base_url: str, api_key: str, table: str = "users"):
        self._http = http
        self._url = f"{base_url.rstrip('/')}/rest/v1/{table}"
        self._headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    async def find_by_email(self, email: str) -> List[UserRecord]:
        """Exact-match lookup. Returns every matching row (callers decide on 0 / >1)."""
        params = {"select": USER_COLUMNS, "email": f"eq.{email}", "limit": "2"}
        try:
            r = await self._http.get(self._url, params=params, headers=self._headers)
        except httpx.HTTPError as exc:
            logger.warning("identity lookup failed: %s", exc.__class__.__name__)
            raise UpstreamUnavailable("identity store request failed") from exc
        if r.status_code >= 400:
            logger.warning("identity lookup rejected status=%s", r.status_code)
            raise UpstreamUnavailable(f"identity store rejected lookup ({r.status_code})")
        try:
            rows = r.json()
        except ValueError as exc:
            raise UpstreamUnavailable("identity store response is not JSON") from exc
        if not isinstance(rows, list):
            raise UpstreamUnavailable("identity store response is not a list")
        return [UserRecord.from_row(row) for row in rows if isinstance(row, dict)]

    async def verify_credential(self, email: str, password: str) -> UserRecord:
        users = await self.find_by_email(email)
        if len(users) != 1:
            log_event("login_failed", {"reason": "lookup", "matches": len(users)})
            raise InvalidCredential("credential rejected")
        user = users[0]
        # bcrypt is CPU-bound; keep the event loop free
        ok = await to_thread.run_sync(check_password, password, user.password_hash)
        if not ok:
            log_event("login_failed", {"reason": "password"})
            raise InvalidCredential("credential rejected")
        return user

    async def aclose(self) -> None:
        await self._http.aclose()

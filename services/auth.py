# ──────────────────────────────────────────────────────────────────────────────
# File: services/auth.py
# Purpose: Shared admin API key validation (X-Api-Key or Authorization: Bearer ...)
# ──────────────────────────────────────────────────────────────────────────────
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, Request, status


def _extract_token(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_api_key:
        return x_api_key.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


async def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(default=None, alias="X-Api-Key"),
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> None:
    """
    Validate the admin key against Settings.admin_api_key.
    No key configured → admin surface is disabled (403 for everyone).
    """
    expected = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin API disabled")
    token = _extract_token(x_api_key, authorization)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key (provide X-Api-Key or Authorization: Bearer <token>)",
        )
    if not hmac.compare_digest(token, expected):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")

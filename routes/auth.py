# ──────────────────────────────────────────────────────────────────────────────
# File: routes/auth.py
# Purpose: POST /api/login: verify email + password against the Identity Store.
#
# Contract
#   • 200 {id,name,email,role} (never the hash)
#   • 400 missing email/password
#   • 401 one message for unknown email AND wrong password
#   • 500 store unavailable (generic message)
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends

from services.container import Components, get_components
from services.errors import InvalidInput
from services.request_models import ErrorOut, LoginRequest, UserOut

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["auth"])


@router.post(
    "/login",
    response_model=UserOut,
    responses={400: {"model": ErrorOut}, 401: {"model": ErrorOut}, 500: {"model": ErrorOut}},
)
async def login(
    body: Optional[LoginRequest] = Body(None),
    components: Components = Depends(get_components),
) -> UserOut:
    email = ((body.email if body else None) or "").strip()
    password = (body.password if body else None) or ""
    if not email or not password:
        raise InvalidInput("login without email/password", public_message="Email and password are required.")

    user = await components.identity.verify_credential(email, password)
    logger.info("login ok user_id=%s role=%s", user.id, user.role)
    return UserOut(**user.public())

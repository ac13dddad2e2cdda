"""
Current-user resolution.

Identity lives with the external provider (Supabase Auth): sign-up,
sign-in and password resets never touch this service. A bearer token is
exchanged for the user's id; the id then scopes every entry query.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Header

from narrate.core.config import settings
from narrate.core.errors import AuthRequiredError

logger = logging.getLogger(__name__)

_VERIFY_TIMEOUT_SECONDS = 10.0


async def _verify_token(token: str) -> Optional[str]:
    """Return the user id for `token`, or None if the provider rejects it."""
    if not settings.SUPABASE_URL:
        logger.warning("Bearer token received but SUPABASE_URL is not configured")
        return None

    url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {token}", "apikey": settings.SUPABASE_ANON_KEY}
    try:
        async with httpx.AsyncClient(timeout=_VERIFY_TIMEOUT_SECONDS) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("Token verification failed: %s", exc)
        return None

    if response.status_code != 200:
        return None
    try:
        payload = response.json()
    except ValueError:
        logger.warning("Token verification returned a non-JSON body")
        return None
    if isinstance(payload, dict) and payload.get("id"):
        return str(payload["id"])
    return None


async def get_current_user_id(authorization: str | None = Header(default=None)) -> str:
    """FastAPI dependency: resolve the authenticated user or raise AUTH_REQUIRED."""
    if authorization and authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1].strip()
        if token:
            user_id = await _verify_token(token)
            if user_id:
                return user_id

    if settings.DEMO_USER_ID:
        return settings.DEMO_USER_ID

    raise AuthRequiredError()

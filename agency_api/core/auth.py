"""
agency_api/core/auth.py — Admin capability check
Admin routes (contact inbox, portfolio mutations) require an X-API-Key
header only when ADMIN_API_KEY is configured. With no key configured
the routes stay open, as in the original deployment; startup logs a
warning in that case.
"""
from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from agency_api.config import get_settings


def admin_auth_enabled() -> bool:
    return bool(get_settings().admin_api_key)


async def verify_admin_key(
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> bool:
    """Validate X-API-Key header for admin routes (no-op when no key is configured)."""
    expected = get_settings().admin_api_key
    if not expected:
        return True
    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-API-Key header required",
        )
    if not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
        )
    return True

"""Common HTTP dependencies (API key authentication)."""

from __future__ import annotations

import logging
import secrets

from fastapi import Header, HTTPException, status

from app.config import get_settings

logger = logging.getLogger("auth")

API_KEY_HEADER = "x-api-key"


def verify_api_key(provided: str | None, expected: str) -> None:
    """Check a client-supplied API key.

    Raises:
        HTTPException: 401 when the key is missing, 403 when it is wrong
    """
    if not provided:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing x-api-key header",
        )
    if not secrets.compare_digest(provided.encode(), expected.encode()):
        logger.warning("Invalid API key", extra={"service": "auth"})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )


async def require_api_key(
    x_api_key: str | None = Header(default=None, alias=API_KEY_HEADER),
) -> None:
    """Dependency guarding every non-health route."""
    verify_api_key(x_api_key, get_settings().api_key)

"""
Header-based access checks

Two kinds of secrets guard the API:
- X-API-Key: internal key for catalog administration (items).
- X-Edit-Id: per-room edit token handed out when a room is created.

Both are compared in constant time.
"""

import os
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, status, Security
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
EDIT_ID_HEADER = "X-Edit-Id"

INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)
edit_id_header = APIKeyHeader(name=EDIT_ID_HEADER, auto_error=False)


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={
            "message": message,
            "category": "security",
        },
    )


async def get_api_key(api_key: str = Security(api_key_header)) -> Optional[str]:
    """
    Dependency to validate API key from header

    @router.post("/items")
    def create_item(api_key: str = Depends(get_api_key)):
        ...
    """
    if not INTERNAL_API_KEY:
        if ENVIRONMENT == "production":
            raise RuntimeError(
                "INTERNAL_API_KEY must be set in production. "
                "Generate one with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        logger.warning(
            "API key authentication disabled - running in development mode. "
            "Set INTERNAL_API_KEY environment variable for security."
        )
        return None

    if api_key is None or not hmac.compare_digest(api_key, INTERNAL_API_KEY):
        raise _unauthorized("Invalid or missing API key")

    return api_key


async def get_edit_id(edit_id: str = Security(edit_id_header)) -> str:
    """Dependency returning the X-Edit-Id header, 401 when absent."""
    if not edit_id:
        raise _unauthorized("Missing edit id")
    return edit_id


def verify_edit_id(expected: str, provided: Optional[str]) -> None:
    """Raise 401 unless the provided edit id matches the room's."""
    if not provided:
        raise _unauthorized("Missing edit id")
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise _unauthorized("Invalid edit id")


def secrets_match(expected: Optional[str], provided: Optional[str]) -> bool:
    """Constant-time comparison that treats None as a non-match."""
    if expected is None or provided is None:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


async def get_optional_edit_id(edit_id: str = Security(edit_id_header)) -> Optional[str]:
    """Dependency returning the X-Edit-Id header if one was sent."""
    return edit_id or None

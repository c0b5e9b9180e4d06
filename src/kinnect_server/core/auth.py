"""API key authentication for the user endpoints.

User identity comes from the external auth provider; this guard only checks
that the caller is a trusted client holding the shared API key.
"""

import logging
import secrets
from typing import Any

from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException
from litestar.handlers import BaseRouteHandler

from kinnect_server.core.config import settings

logger = logging.getLogger(__name__)


def _extract_api_key(connection: ASGIConnection[Any, Any, Any, Any]) -> str | None:
    """Extract API key from request headers.

    Args:
        connection: The ASGI connection

    Returns:
        The API key string or None if not found
    """
    # Try X-API-Key header first
    api_key = connection.headers.get("X-API-Key")

    if not api_key:
        # Try Authorization: Bearer header
        auth_header = connection.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            api_key = auth_header[7:]

    return api_key


async def api_key_guard(
    connection: ASGIConnection[Any, Any, Any, Any], _: BaseRouteHandler
) -> None:
    """Litestar guard that validates the API key from request headers.

    If no API_KEY is configured, authentication is skipped (open access).
    Uses constant-time comparison to prevent timing attacks.

    Raises:
        NotAuthorizedException: If API key is required but missing/invalid
    """
    if not settings.api_key:
        logger.debug("No API_KEY configured - authentication disabled")
        return

    api_key = _extract_api_key(connection)

    if not api_key:
        logger.warning("API request without authentication")
        raise NotAuthorizedException("Missing API key. Use X-API-Key header.")

    if not secrets.compare_digest(api_key, settings.api_key):
        logger.warning("Invalid API key attempted")
        raise NotAuthorizedException("Invalid API key")

"""
Request dependencies shared by the API routers.
"""
from typing import Optional

from fastapi import Header, Query
from loguru import logger

from qc_api.config import settings
from qc_api.core.errors import AuthenticationError, AuthorizationError


async def require_api_key(
    x_api_key: Optional[str] = Header(default=None, alias="X-API-Key"),
    api_key: Optional[str] = Query(default=None, alias="apiKey"),
) -> Optional[str]:
    """
    Validate the API key from the X-API-Key header or apiKey query parameter.

    With no keys configured, requests pass outside production (insecure mode).
    """
    valid_keys = settings.api_keys
    if not valid_keys and not settings.is_production:
        logger.warning("No API keys configured. Running in insecure mode.")
        return None

    key = (x_api_key or api_key or "").strip()
    if not key:
        raise AuthenticationError(
            "API key is required. Include it in the X-API-Key header or apiKey query parameter."
        )
    if key not in valid_keys:
        raise AuthorizationError("Invalid API key")
    return key

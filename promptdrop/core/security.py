"""Provides API key-based security for the upload endpoints."""

import logging

from fastapi import Depends
from fastapi import HTTPException
from fastapi.security import APIKeyHeader

from promptdrop.core.config import settings

logger = logging.getLogger(__name__)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(key: str | None = Depends(api_key_header)) -> bool:
    """Checks the 'X-API-Key' header when the server has an API key configured.

    Args:
        key: The API key extracted from the 'X-API-Key' header, if any.

    Returns:
        True if the request may proceed.

    Raises:
        HTTPException: 403 when a key is configured and the header does not match it.
    """
    if not settings.api_key:
        # Open mode: the browser page talks to the service directly
        return True

    if key != settings.api_key:
        logger.warning("Rejected request with missing or invalid X-API-Key header")
        raise HTTPException(status_code=403, detail="Invalid API Key")
    return True

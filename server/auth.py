"""Optional static API key gate for the upload routes."""

import hmac
from typing import Optional
from fastapi import Header, HTTPException, status

from server import config


async def require_api_key(authorization: Optional[str] = Header(None)) -> None:
    """
    FastAPI dependency enforcing the deployment API key, when one is configured.

    Args:
        authorization: Authorization header value (format: "Bearer <api_key>")

    Raises:
        HTTPException: 401 if a key is configured and the header is missing or wrong
    """
    if not config.API_KEY:
        return

    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format"
        )

    api_key = authorization.replace("Bearer ", "", 1)
    if not hmac.compare_digest(api_key, config.API_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key"
        )

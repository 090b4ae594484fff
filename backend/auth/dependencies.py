"""FastAPI dependencies for authentication."""

import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .jwt import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer scheme for JWT tokens
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Get current user ID from the JWT Bearer token.

    Returns:
        User ID string

    Raises:
        HTTPException: If not authenticated
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Provide a Bearer token.",
        )
    return verify_token(credentials.credentials).user_id


def identity_from_token(token: Optional[str]) -> Optional[str]:
    """User ID for a raw token (e.g. the websocket `access_token` query param), or None."""
    if not token:
        return None
    try:
        return verify_token(token).user_id
    except HTTPException as e:
        logger.warning(f"Rejected connection token: {e.detail}")
        return None

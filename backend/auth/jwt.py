"""Verification of identity tokens issued by the external token service."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status

from config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_ISSUER, JWT_SECRET_KEY


@dataclass
class Identity:
    """Who a verified token belongs to."""

    user_id: str
    expires_at: Optional[datetime] = None


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


def _decode_options() -> Dict[str, Any]:
    # Issuer/audience are only checked when configured
    kwargs: Dict[str, Any] = {"algorithms": [JWT_ALGORITHM], "leeway": 0}
    if JWT_ISSUER:
        kwargs["issuer"] = JWT_ISSUER
    if JWT_AUDIENCE:
        kwargs["audience"] = JWT_AUDIENCE
    else:
        kwargs["options"] = {"verify_aud": False}
    return kwargs


def verify_token(token: str) -> Identity:
    """
    Verify a token's signature, lifetime, issuer and audience.

    Returns:
        Identity taken from the `sub` claim

    Raises:
        HTTPException: 401 if the token is invalid, expired or has no subject
    """
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, **_decode_options())
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    subject = payload.get("sub")
    if not subject:
        raise _unauthorized("Token has no subject")

    expires_at = None
    if "exp" in payload:
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return Identity(user_id=str(subject), expires_at=expires_at)

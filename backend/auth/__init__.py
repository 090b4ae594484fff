"""Authentication module."""

from .dependencies import get_current_user, identity_from_token
from .jwt import Identity, verify_token

__all__ = [
    "get_current_user",
    "identity_from_token",
    "Identity",
    "verify_token",
]

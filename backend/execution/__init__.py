"""
Outbound request execution.

This package provides:
- RequestExecutor: performs a RequestSpec and returns an ExecutionOutcome
- AuthenticationResolver: applies an AuthDescriptor to a RequestSpec
"""

from .auth import (
    ApiKeyAuth,
    AuthDescriptor,
    AuthenticationResolver,
    AuthLocation,
    BasicAuth,
    BearerTokenAuth,
    InvalidAuthConfig,
    NoAuth,
    OAuth2Auth,
    auth_from_dict,
)
from .executor import RequestExecutor
from .models import (
    Cookie,
    ExecutionError,
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionResult,
    HeaderMap,
    HttpMethod,
    RequestSpec,
)

__all__ = [
    'ApiKeyAuth',
    'AuthDescriptor',
    'AuthenticationResolver',
    'AuthLocation',
    'BasicAuth',
    'BearerTokenAuth',
    'InvalidAuthConfig',
    'NoAuth',
    'OAuth2Auth',
    'auth_from_dict',
    'RequestExecutor',
    'Cookie',
    'ExecutionError',
    'ExecutionErrorKind',
    'ExecutionOutcome',
    'ExecutionResult',
    'HeaderMap',
    'HttpMethod',
    'RequestSpec',
]

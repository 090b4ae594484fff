"""Authentication descriptors and how they decorate an outbound request."""

import base64
import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

from .models import RequestSpec, header_problem
from .query import set_query_param


class InvalidAuthConfig(Exception):
    """Raised when an authentication descriptor is missing a field or can't be sent."""
    pass


class AuthLocation(str, Enum):
    HEADER = "header"
    QUERY = "query"


@dataclass(frozen=True)
class NoAuth:
    pass


@dataclass(frozen=True)
class ApiKeyAuth:
    key: str
    value: str
    location: AuthLocation = AuthLocation.HEADER


@dataclass(frozen=True)
class BearerTokenAuth:
    token: str


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str


@dataclass(frozen=True)
class OAuth2Auth:
    token: str


AuthDescriptor = Union[NoAuth, ApiKeyAuth, BearerTokenAuth, BasicAuth, OAuth2Auth]


def _require(descriptor: Any, *fields: str) -> None:
    missing = [f for f in fields if not getattr(descriptor, f, None)]
    if missing:
        kind = type(descriptor).__name__
        raise InvalidAuthConfig(f"{kind} requires non-empty {', '.join(missing)}")


def _with_header(spec: RequestSpec, name: str, value: str) -> RequestSpec:
    problem = header_problem(name, value)
    if problem:
        raise InvalidAuthConfig(problem)
    return dataclasses.replace(spec, headers=spec.headers.with_header(name, value))


class AuthenticationResolver:
    """
    Turns an AuthDescriptor into header or query changes on a RequestSpec.

    Stateless; one instance can be shared by concurrent executions. The input
    spec is never modified, a new spec is returned instead. Authentication is
    applied on top of user headers, so it wins when both set the same name.
    """

    def apply(self, spec: RequestSpec) -> RequestSpec:
        auth = spec.authentication
        if auth is None or isinstance(auth, NoAuth):
            return spec

        if isinstance(auth, ApiKeyAuth):
            _require(auth, "key", "value")
            if AuthLocation(auth.location) == AuthLocation.QUERY:
                return dataclasses.replace(spec, url=set_query_param(spec.url, auth.key, auth.value))
            return _with_header(spec, auth.key, auth.value)

        if isinstance(auth, (BearerTokenAuth, OAuth2Auth)):
            _require(auth, "token")
            return _with_header(spec, "Authorization", f"Bearer {auth.token}")

        if isinstance(auth, BasicAuth):
            _require(auth, "username", "password")
            credentials = base64.b64encode(f"{auth.username}:{auth.password}".encode("utf-8")).decode("ascii")
            return _with_header(spec, "Authorization", f"Basic {credentials}")

        raise InvalidAuthConfig(f"Unsupported authentication type: {type(auth).__name__}")


def auth_from_dict(data: Optional[Dict[str, Any]]) -> Optional[AuthDescriptor]:
    """
    Build a descriptor from the wire shape sent by clients.

    Expects `{"auth_type": "none|basic|bearer|oauth2|apikey", "auth_data": {...}}`;
    camelCase keys (`authType`, `authData`) are accepted as well.
    """
    if not data:
        return None

    auth_type = str(data.get("auth_type") or data.get("authType") or "none").lower()
    auth_data = data.get("auth_data") or data.get("authData") or {}

    if auth_type == "none":
        return NoAuth()
    if auth_type == "basic":
        return BasicAuth(username=auth_data.get("username", ""), password=auth_data.get("password", ""))
    if auth_type == "bearer":
        return BearerTokenAuth(token=auth_data.get("token", ""))
    if auth_type == "oauth2":
        return OAuth2Auth(token=auth_data.get("token") or auth_data.get("access_token", ""))
    if auth_type == "apikey":
        location = str(auth_data.get("location") or auth_data.get("in") or "header").lower()
        try:
            where = AuthLocation(location)
        except ValueError:
            raise InvalidAuthConfig(f"Unknown API key location: {location}")
        return ApiKeyAuth(key=auth_data.get("key", ""), value=auth_data.get("value", ""), location=where)

    raise InvalidAuthConfig(f"Unknown authentication type: {auth_type}")

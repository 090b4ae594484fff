"""
Value types for outbound request execution.

A RequestSpec describes one call to make, an ExecutionResult describes what
came back, and an ExecutionOutcome carries either the result or the reason
the call could not be made.
"""

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union


class HttpMethod(str, Enum):
    """HTTP methods a request can be executed with."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"

    @classmethod
    def parse(cls, value: Union[str, "HttpMethod"]) -> "HttpMethod":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().upper())


HeaderInput = Union[Mapping, Iterable[Tuple[str, str]], None]

# RFC 9110 token characters
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def header_problem(name: str, value: str) -> Optional[str]:
    """Why `name: value` can't go on the wire, or None if it can."""
    if not _HEADER_NAME.match(name):
        return f"Invalid header name: {name!r}"
    if any(c in value for c in "\r\n\0"):
        return f"Header {name} contains a line break or NUL character"
    return None


class HeaderMap(Mapping):
    """
    Read-only header mapping with case-insensitive lookup.

    Names keep the casing they were given. Building from plain pairs keeps the
    last value written for a name; `folded()` joins repeated names with ", "
    the way HTTP header folding does.
    """

    def __init__(self, headers: HeaderInput = None):
        # lowercased name -> (original name, value)
        self._store: Dict[str, Tuple[str, str]] = {}
        for name, value in _iter_pairs(headers):
            self._store[name.lower()] = (name, value)

    @classmethod
    def folded(cls, pairs: Iterable[Tuple[str, str]]) -> "HeaderMap":
        headers = cls()
        for name, value in pairs:
            key = name.lower()
            if key in headers._store:
                first_name, existing = headers._store[key]
                headers._store[key] = (first_name, f"{existing}, {value}")
            else:
                headers._store[key] = (name, value)
        return headers

    def with_header(self, name: str, value: str) -> "HeaderMap":
        """Return a copy with `name` set to `value`, replacing any casing of it."""
        copy = HeaderMap(self.items())
        copy._store[name.lower()] = (name, value)
        return copy

    def __getitem__(self, name: str) -> str:
        if not isinstance(name, str):
            raise KeyError(name)
        return self._store[name.lower()][1]

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._store.values())

    def __len__(self) -> int:
        return len(self._store)

    def to_dict(self) -> Dict[str, str]:
        return dict(self._store.values())

    def __repr__(self) -> str:
        return f"HeaderMap({self.to_dict()!r})"


def _iter_pairs(headers: HeaderInput) -> Iterator[Tuple[str, str]]:
    if headers is None:
        return iter(())
    if isinstance(headers, Mapping):
        return ((str(k), str(v)) for k, v in headers.items())
    return ((str(k), str(v)) for k, v in headers)


@dataclass(frozen=True)
class RequestSpec:
    """
    One outbound HTTP call to execute.

    Headers are normalized into a HeaderMap on construction, so `{"accept": "a",
    "Accept": "b"}` ends up as a single `Accept: b`.
    """
    http_method: HttpMethod
    url: str
    headers: HeaderMap = field(default_factory=HeaderMap)
    authentication: Optional[Any] = None  # an AuthDescriptor
    body: Any = None
    params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "http_method", HttpMethod.parse(self.http_method))
        if not isinstance(self.headers, HeaderMap):
            object.__setattr__(self, "headers", HeaderMap(self.headers))
        for name, value in self.headers.items():
            problem = header_problem(name, value)
            if problem:
                raise ValueError(problem)
        object.__setattr__(self, "params", {str(k): str(v) for k, v in (self.params or {}).items()})


@dataclass(frozen=True)
class Cookie:
    """A cookie parsed from one Set-Cookie header."""
    name: str
    value: str
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "attributes": dict(self.attributes)}


@dataclass(frozen=True)
class ExecutionResult:
    """Normalized response of a completed execution."""
    status_code: int
    status_text: str
    headers: HeaderMap
    elapsed_ms: int
    size_bytes: int
    body: Any = None
    cookies: List[Cookie] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status_code": self.status_code,
            "status_text": self.status_text,
            "headers": self.headers.to_dict(),
            "elapsed_ms": self.elapsed_ms,
            "size_bytes": self.size_bytes,
            "body": self.body,
            "cookies": [c.to_dict() for c in self.cookies],
        }


class ExecutionErrorKind(Enum):
    """Why an execution could not produce a response."""
    INVALID_URL = "invalid_url"
    INVALID_AUTH_CONFIG = "invalid_auth_config"
    CONNECTION_ERROR = "connection_error"
    TIMEOUT = "timeout"
    UNKNOWN_TRANSPORT_ERROR = "unknown_transport_error"


@dataclass(frozen=True)
class ExecutionError:
    kind: ExecutionErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class ExecutionOutcome:
    """Either a result or an error, never both."""
    result: Optional[ExecutionResult] = None
    error: Optional[ExecutionError] = None

    @property
    def success(self) -> bool:
        return self.error is None

    @classmethod
    def ok(cls, result: ExecutionResult) -> "ExecutionOutcome":
        return cls(result=result)

    @classmethod
    def failed(cls, kind: ExecutionErrorKind, message: str) -> "ExecutionOutcome":
        return cls(error=ExecutionError(kind=kind, message=message))

"""
Request Executor - performs one user-defined HTTP request against a remote server.

Builds the outbound call from a RequestSpec, applies authentication, dispatches
it with httpx under a bounded timeout and normalizes whatever comes back into
an ExecutionResult. Transport failures come back as a failed ExecutionOutcome;
HTTP error statuses (4xx/5xx) are ordinary results.

No retries: one spec, one network attempt.
"""

import asyncio
import dataclasses
import json
import logging
import time
from typing import Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import httpx

from config import FOLLOW_REDIRECTS, REQUEST_TIMEOUT_SECONDS, VERIFY_TLS
from .auth import AuthenticationResolver, InvalidAuthConfig
from .cookies import extract_cookies
from .models import (
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionResult,
    HeaderMap,
    RequestSpec,
)
from .query import append_query_params

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")


def validate_url(url: str) -> Optional[str]:
    """Return a reason the URL can't be executed, or None if it is fine."""
    if not isinstance(url, str) or not url.strip():
        return "URL is required"
    try:
        parts = urlsplit(url.strip())
        parts.port  # raises on a malformed port
    except ValueError:
        return f"Malformed URL: {url}"
    if parts.scheme.lower() not in ALLOWED_SCHEMES:
        return "URL must be absolute and use http or https"
    if not parts.hostname:
        return "URL has no host"
    return None


def with_query_params(spec: RequestSpec) -> RequestSpec:
    """Fold `spec.params` into the URL query string, after any existing query."""
    if not spec.params:
        return spec
    url = append_query_params(spec.url, spec.params.items())
    return dataclasses.replace(spec, url=url, params={})


def encode_body(spec: RequestSpec) -> Tuple[Optional[bytes], HeaderMap]:
    """
    Serialize the body for the wire.

    Raw bytes go out untouched; anything else is encoded as JSON, and
    Content-Type is set to application/json unless the caller set one.
    """
    if spec.body is None:
        return None, spec.headers
    if isinstance(spec.body, (bytes, bytearray)):
        return bytes(spec.body), spec.headers

    content = json.dumps(spec.body).encode("utf-8")
    headers = spec.headers
    if "Content-Type" not in headers:
        headers = headers.with_header("Content-Type", "application/json")
    return content, headers


def decode_body(response: httpx.Response):
    """JSON responses are parsed, everything else is returned as text."""
    if not response.content:
        return None
    content_type = response.headers.get("content-type", "").lower()
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def _safe_target(url: str) -> str:
    """scheme://host/path, without the query (it may carry an API key)."""
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc.rpartition("@")[2], parts.path, "", ""))


class RequestExecutor:
    """
    Executes RequestSpecs.

    Holds configuration only, so one instance is shared by all concurrent
    executions. Every call opens its own AsyncClient and closes it on the way
    out, whether the call succeeded, failed, timed out or was cancelled.
    """

    def __init__(
        self,
        default_timeout: float = REQUEST_TIMEOUT_SECONDS,
        follow_redirects: bool = FOLLOW_REDIRECTS,
        verify: bool = VERIFY_TLS,
        resolver: Optional[AuthenticationResolver] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            default_timeout: Seconds allowed for one execution when the caller gives none
            follow_redirects: Whether 3xx responses are followed
            verify: Whether TLS certificates are verified
            resolver: Authentication resolver (a fresh one by default)
            transport: Custom httpx transport, mostly for tests
        """
        self.default_timeout = default_timeout
        self.follow_redirects = follow_redirects
        self.verify = verify
        self.resolver = resolver or AuthenticationResolver()
        self._transport = transport

    async def execute(self, spec: RequestSpec, timeout: Optional[float] = None) -> ExecutionOutcome:
        """
        Execute a request and return its outcome.

        Args:
            spec: The request to perform
            timeout: Seconds before giving up, defaults to `default_timeout`

        Returns:
            ExecutionOutcome holding an ExecutionResult or an ExecutionError
        """
        timeout = self.default_timeout if timeout is None else timeout
        if timeout <= 0:
            raise ValueError("timeout must be positive")

        problem = validate_url(spec.url)
        if problem:
            return ExecutionOutcome.failed(ExecutionErrorKind.INVALID_URL, problem)

        spec = with_query_params(spec)
        try:
            spec = self.resolver.apply(spec)
        except InvalidAuthConfig as e:
            return ExecutionOutcome.failed(ExecutionErrorKind.INVALID_AUTH_CONFIG, str(e))

        content, headers = encode_body(spec)
        target = _safe_target(spec.url)

        try:
            result = await asyncio.wait_for(
                self._dispatch(spec, headers, content, timeout),
                timeout=timeout,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.info(f"{spec.http_method.value} {target} timed out after {timeout}s")
            return ExecutionOutcome.failed(
                ExecutionErrorKind.TIMEOUT,
                f"Request to {target} timed out after {timeout:g} seconds",
            )
        except httpx.ConnectError as e:
            logger.info(f"{spec.http_method.value} {target} could not connect: {e!r}")
            return ExecutionOutcome.failed(
                ExecutionErrorKind.CONNECTION_ERROR,
                f"Could not connect to {target}",
            )
        except httpx.InvalidURL:
            return ExecutionOutcome.failed(ExecutionErrorKind.INVALID_URL, f"Malformed URL: {target}")
        except (httpx.HTTPError, OSError) as e:
            logger.warning(f"{spec.http_method.value} {target} failed: {e!r}")
            return ExecutionOutcome.failed(
                ExecutionErrorKind.UNKNOWN_TRANSPORT_ERROR,
                f"Request to {target} failed ({type(e).__name__})",
            )

        logger.info(
            f"{spec.http_method.value} {target} -> {result.status_code} "
            f"in {result.elapsed_ms}ms ({result.size_bytes} bytes)"
        )
        return ExecutionOutcome.ok(result)

    async def _dispatch(
        self,
        spec: RequestSpec,
        headers: HeaderMap,
        content: Optional[bytes],
        timeout: float,
    ) -> ExecutionResult:
        async with httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=self.follow_redirects,
            verify=self.verify,
            transport=self._transport,
        ) as client:
            started = time.perf_counter()
            response = await client.request(
                spec.http_method.value,
                spec.url,
                # values may carry non-ASCII text, sent as UTF-8
                headers=[(name, value.encode("utf-8")) for name, value in headers.items()],
                content=content,
            )
            elapsed_ms = int((time.perf_counter() - started) * 1000)

        return self._build_result(response, elapsed_ms)

    @staticmethod
    def _build_result(response: httpx.Response, elapsed_ms: int) -> ExecutionResult:
        encoding = response.headers.encoding
        raw_headers = [
            (name.decode(encoding), value.decode(encoding))
            for name, value in response.headers.raw
        ]
        return ExecutionResult(
            status_code=response.status_code,
            status_text=response.reason_phrase,
            headers=HeaderMap.folded(raw_headers),
            elapsed_ms=max(elapsed_ms, 0),
            size_bytes=len(response.content),
            body=decode_body(response),
            cookies=extract_cookies(response.headers.get_list("set-cookie")),
        )

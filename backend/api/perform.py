"""
REST API endpoint for performing user-defined HTTP requests.

Turns the posted request description into a RequestSpec, runs it through the
RequestExecutor and returns the normalized response. Failed executions come
back as `{"error": {"kind", "message"}}` with a status matching the failure.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from execution import (
    ExecutionErrorKind,
    HttpMethod,
    InvalidAuthConfig,
    RequestExecutor,
    RequestSpec,
    auth_from_dict,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["requests"])


# ─────────────────────────────────────────────────────────────────────────────
# Pydantic Models
# ─────────────────────────────────────────────────────────────────────────────

class AuthenticationModel(BaseModel):
    auth_type: str = "none"  # none, basic, bearer, oauth2, apikey
    auth_data: Dict[str, str] = {}


class PerformRequest(BaseModel):
    http_method: HttpMethod
    url: str
    headers: Dict[str, str] = {}
    params: Dict[str, str] = {}
    authentication: Optional[AuthenticationModel] = None
    body: Optional[Any] = None       # JSON-encoded before sending
    raw_body: Optional[str] = None   # sent as-is (UTF-8), wins over body
    timeout: Optional[float] = Field(None, gt=0, description="Seconds, defaults to server setting")


# HTTP status returned to our caller for each failure kind
ERROR_STATUS = {
    ExecutionErrorKind.INVALID_URL: 400,
    ExecutionErrorKind.INVALID_AUTH_CONFIG: 400,
    ExecutionErrorKind.CONNECTION_ERROR: 502,
    ExecutionErrorKind.UNKNOWN_TRANSPORT_ERROR: 502,
    ExecutionErrorKind.TIMEOUT: 504,
}


# Shared by all requests, it holds configuration only
request_executor = RequestExecutor()


def get_executor() -> RequestExecutor:
    return request_executor


def to_request_spec(data: PerformRequest) -> RequestSpec:
    """
    Build a RequestSpec from the posted model.

    Raises:
        InvalidAuthConfig: If the authentication block can't be understood
        ValueError: If a header can't be sent as given
    """
    authentication = None
    if data.authentication is not None:
        authentication = auth_from_dict({
            "auth_type": data.authentication.auth_type,
            "auth_data": data.authentication.auth_data,
        })

    body = data.raw_body.encode("utf-8") if data.raw_body is not None else data.body
    return RequestSpec(
        http_method=data.http_method,
        url=data.url,
        headers=data.headers,
        params=data.params,
        authentication=authentication,
        body=body,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@router.post("/perform-request")
async def perform_request(data: PerformRequest, executor: RequestExecutor = Depends(get_executor)):
    """
    Execute a request against a remote server.

    4xx/5xx answers from the remote server are returned as normal results,
    only failures to execute the request produce an error response.
    """
    try:
        spec = to_request_spec(data)
    except (InvalidAuthConfig, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    outcome = await executor.execute(spec, data.timeout)
    if outcome.success:
        return outcome.result.to_dict()

    logger.info(f"Request execution failed: {outcome.error.kind.value}")
    return JSONResponse(
        status_code=ERROR_STATUS[outcome.error.kind],
        content={"error": outcome.error.to_dict()},
    )

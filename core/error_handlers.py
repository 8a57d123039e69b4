"""Exception handlers for errors the proxy generates itself.

Every response is an RFC 7807 problem document carrying the request's trace
ID. Remote-service errors never reach these handlers: the forwarding route
returns them verbatim.
"""

import logging
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.schemas import ProblemDetail
from core.utils import ensure_trace_id
from pipeline.core.config import PROXY_ERROR_HEADER
from pipeline.core.exceptions import (
    BaseError,
    CredentialMissingError,
    TransportFailureError,
)

logger = logging.getLogger(__name__)


def _proxy_error_marker(exc: BaseError) -> Optional[str]:
    if isinstance(exc, CredentialMissingError):
        return "credential"
    if isinstance(exc, TransportFailureError):
        return "transport"
    return None


def _problem_response(
    request: Request,
    trace_id: str,
    marker: Optional[str] = None,
    **fields,
) -> JSONResponse:
    problem = ProblemDetail(instance=request.url.path, trace_id=trace_id, **fields)

    headers = {"X-Trace-ID": trace_id}
    if marker:
        headers[PROXY_ERROR_HEADER] = marker

    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        headers=headers,
    )


async def handle_validation_error(request: Request, exc: RequestValidationError):
    trace_id = ensure_trace_id(request)

    errors = exc.errors()
    first_error = errors[0] if errors else {}
    field = ".".join(str(part) for part in first_error.get("loc", []) if part != "body")
    msg = first_error.get("msg", "Validation failed")
    detail = f"{field}: {msg}" if field else msg

    logger.warning(f"Validation error: {detail}", extra={"trace_id": trace_id})

    return _problem_response(
        request,
        trace_id,
        type="/errors/VALIDATION_ERROR",
        title="Request validation failed",
        status=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail,
        code="VALIDATION_ERROR",
        category="client_error",
    )


async def handle_app_error(request: Request, exc: BaseError):
    """Pipeline errors raised inside the proxy (missing key, transport failure)."""
    trace_id = ensure_trace_id(request)

    log = logger.warning if exc.http_status < 500 else logger.error
    log(
        exc.message,
        extra={
            "trace_id": trace_id,
            "error_code": exc.error_code,
            "http_status": exc.http_status,
        },
    )

    return _problem_response(
        request, trace_id, marker=_proxy_error_marker(exc), **exc.to_dict()
    )


async def handle_http_error(request: Request, exc: StarletteHTTPException):
    """400 for a relay call without ``url``, plus routing errors (404, 405)."""
    trace_id = ensure_trace_id(request)

    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={"trace_id": trace_id, "http_status": exc.status_code},
    )

    return _problem_response(
        request,
        trace_id,
        type=f"/errors/HTTP_{exc.status_code}",
        title=str(exc.detail),
        status=exc.status_code,
        detail=str(exc.detail),
        code=f"HTTP_{exc.status_code}",
        category="server_error" if exc.status_code >= 500 else "client_error",
    )


async def handle_unknown_error(request: Request, exc: Exception):
    trace_id = ensure_trace_id(request)

    logger.exception("Unexpected proxy error", extra={"trace_id": trace_id})

    return _problem_response(
        request,
        trace_id,
        type="/errors/INTERNAL_SERVER_ERROR",
        title="Internal server error",
        status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="An unexpected error occurred. Please contact support with trace ID.",
        code="INTERNAL_SERVER_ERROR",
        category="server_error",
    )

"""Translation of proxy responses and httpx failures into pipeline errors.

The proxy tags the errors it generates itself with the X-Proxy-Error header,
which is how a caller tells "the network/proxy failed" apart from "the remote
service rejected the request" when both arrive as a 5xx.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

import httpx

from pipeline.core.config import PROXY_ERROR_HEADER
from pipeline.core.exceptions import (
    CredentialMissingError,
    RemoteRejectedError,
    TransportFailureError,
)


@contextmanager
def translate_transport_errors(operation: str) -> Iterator[None]:
    """Re-raise httpx transport failures as TransportFailureError."""
    try:
        yield
    except httpx.TimeoutException as exc:
        raise TransportFailureError(operation, "timeout", str(exc)) from exc
    except httpx.TransportError as exc:
        raise TransportFailureError(operation, "unavailable", str(exc)) from exc


def response_reason(response: httpx.Response) -> Optional[str]:
    """Best-effort short description of an error response."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:200] or None

    if isinstance(body, dict):
        for key in ("error", "message", "detail", "title"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]
    return None


def raise_for_proxy_response(operation: str, response: httpx.Response) -> None:
    """Raise the matching pipeline error for a non-success proxy response."""
    if response.is_success:
        return

    marker = response.headers.get(PROXY_ERROR_HEADER)
    if marker == "credential":
        raise CredentialMissingError()
    if marker == "transport":
        error_type = "timeout" if response.status_code == 504 else "unavailable"
        raise TransportFailureError(operation, error_type, response_reason(response))

    raise RemoteRejectedError(operation, response.status_code, response_reason(response))

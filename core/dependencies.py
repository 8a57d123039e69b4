"""FastAPI dependency injection functions.

Keeping the outbound client and the credential check behind dependencies
lets tests swap in an httpx.MockTransport-backed client.
"""

from typing import Optional

import httpx
from fastapi import Header, HTTPException, Request, status
from pydantic import SecretStr

from pipeline.core.config import CREDENTIAL_HEADER
from pipeline.core.exceptions import CredentialMissingError


async def get_http_client(request: Request) -> httpx.AsyncClient:
    """Get the pooled outbound HTTP client from app state.

    Raises:
        HTTPException: 503 if the client is unavailable
    """
    http_client = getattr(request.app.state, "http_client", None)

    if http_client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Outbound HTTP client unavailable",
        )

    return http_client


async def require_credential(
    api_key: Optional[str] = Header(default=None, alias=CREDENTIAL_HEADER),
) -> SecretStr:
    """Read the caller's API key; reject the request before any remote call.

    Raises:
        CredentialMissingError: header absent or blank
    """
    if not api_key or not api_key.strip():
        raise CredentialMissingError(CREDENTIAL_HEADER)
    return SecretStr(api_key.strip())

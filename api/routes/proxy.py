"""Credential-forwarding proxy routes.

Three paths, all stateless:

- ``/api/sarvam/{path}``: JSON forwarding to the document-intelligence API
  with the caller's key moved into the remote authentication header.
- ``PUT /api/upload?url=``: binary relay to a pre-signed storage write URL.
- ``GET /api/download?url=``: binary relay from a pre-signed storage read URL.
"""

import logging
import time
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import SecretStr

from api.schemas import UploadRelayResponse
from core.dependencies import get_http_client, require_credential
from core.logging_utils import sanitize_url
from core.settings import proxy_settings
from pipeline.clients.proxy_errors import translate_transport_errors
from pipeline.core.config import (
    ARCHIVE_CONTENT_TYPE,
    BLOB_TYPE_BLOCK,
    BLOB_TYPE_HEADER,
    PROXY_DOWNLOAD_PATH,
    PROXY_FORWARD_PREFIX,
    PROXY_UPLOAD_PATH,
    REMOTE_AUTH_HEADER,
    STORAGE_HEADER_PREFIX,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["proxy"])


class UpstreamStreamingResponse(StreamingResponse):
    """Streams an upstream httpx response back to the caller.

    The upstream response is closed however the send ends, a client
    disconnect included.
    """

    def __init__(self, upstream: httpx.Response, **kwargs):
        self._upstream = upstream
        super().__init__(self._relay(), **kwargs)

    async def _relay(self):
        try:
            async for chunk in self._upstream.aiter_raw():
                yield chunk
        finally:
            await self._upstream.aclose()

    async def __call__(self, scope, receive, send):
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self._upstream.aclose()


@router.api_route(
    PROXY_FORWARD_PREFIX + "/{remote_path:path}",
    methods=["GET", "POST"],
)
async def forward_to_remote(
    remote_path: str,
    request: Request,
    credential: SecretStr = Depends(require_credential),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    target_url = f"{proxy_settings.REMOTE_API_BASE.rstrip('/')}/{remote_path}"
    if request.url.query:
        target_url = f"{target_url}?{request.url.query}"

    body = await request.body()
    started = time.perf_counter()

    with translate_transport_errors(f"{request.method} /{remote_path}"):
        resp = await http.request(
            request.method,
            target_url,
            content=body or None,
            headers={
                REMOTE_AUTH_HEADER: credential.get_secret_value(),
                "Content-Type": "application/json",
            },
        )

    logger.info(
        f"{request.method} /{remote_path} -> {resp.status_code}",
        extra={
            "remote_path": remote_path,
            "http_status": resp.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000),
        },
    )

    return Response(
        content=resp.content,
        status_code=resp.status_code,
        media_type=resp.headers.get("content-type"),
    )


@router.put(
    PROXY_UPLOAD_PATH,
    response_model=UploadRelayResponse,
    response_model_exclude_none=True,
)
async def relay_upload(
    request: Request,
    url: Optional[str] = Query(default=None),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Upload URL required")

    body = await request.body()
    headers = {
        name: value
        for name, value in request.headers.items()
        if name.lower().startswith(STORAGE_HEADER_PREFIX)
    }
    headers[BLOB_TYPE_HEADER] = BLOB_TYPE_BLOCK
    headers["Content-Type"] = ARCHIVE_CONTENT_TYPE

    with translate_transport_errors("relay upload"):
        resp = await http.put(url, content=body, headers=headers)

    if not resp.is_success:
        logger.warning(
            f"Storage rejected upload to {sanitize_url(url)}",
            extra={"http_status": resp.status_code},
        )
        return JSONResponse(
            status_code=resp.status_code,
            content={"success": False, "error": "Upload failed"},
        )

    logger.info(f"Relayed {len(body)} bytes to {sanitize_url(url)}")
    return UploadRelayResponse(success=True)


@router.get(PROXY_DOWNLOAD_PATH)
async def relay_download(
    url: Optional[str] = Query(default=None),
    http: httpx.AsyncClient = Depends(get_http_client),
):
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Download URL required")

    with translate_transport_errors("relay download"):
        resp = await http.send(http.build_request("GET", url), stream=True)

    if not resp.is_success:
        await resp.aclose()
        logger.warning(
            f"Storage rejected download from {sanitize_url(url)}",
            extra={"http_status": resp.status_code},
        )
        return JSONResponse(
            status_code=resp.status_code,
            content={"error": "Download failed"},
        )

    logger.info(f"Streaming download from {sanitize_url(url)}")
    return UpstreamStreamingResponse(resp, media_type=ARCHIVE_CONTENT_TYPE)

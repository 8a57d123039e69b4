"""Client side of the proxy's binary relay paths.

Uploads and downloads go to pre-authorized, time-limited object-storage URLs,
so neither call carries the service credential.
"""

import logging

import httpx

from core.logging_utils import sanitize_url
from pipeline.clients.proxy_errors import (
    raise_for_proxy_response,
    translate_transport_errors,
)
from pipeline.core.config import PROXY_DOWNLOAD_PATH, PROXY_UPLOAD_PATH
from pipeline.core.exceptions import RemoteRejectedError
from pipeline.models.dto import DownloadTarget, UploadTarget

logger = logging.getLogger(__name__)


class StorageRelayClient:
    def __init__(self, http: httpx.AsyncClient):
        self._http = http

    async def upload(self, target: UploadTarget, payload: bytes) -> None:
        """PUT ``payload`` to the target's write URL through relay-upload.

        The target's storage headers travel with the request; the relay passes
        them on to object storage.
        """
        with translate_transport_errors("upload"):
            resp = await self._http.put(
                PROXY_UPLOAD_PATH,
                params={"url": target.url},
                content=payload,
                headers={**target.headers, "Content-Type": "application/octet-stream"},
            )

        raise_for_proxy_response("upload", resp)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict) or body.get("success") is not True:
            raise RemoteRejectedError("upload", resp.status_code, "storage did not confirm upload")

        logger.info(
            f"Uploaded {len(payload)} bytes to {sanitize_url(target.url)}",
            extra={"stage": "upload"},
        )

    async def download(self, target: DownloadTarget) -> bytes:
        """Fetch the raw bytes behind the target's read URL through relay-download."""
        with translate_transport_errors("download"):
            resp = await self._http.get(PROXY_DOWNLOAD_PATH, params={"url": target.url})

        raise_for_proxy_response("download", resp)

        logger.info(
            f"Downloaded {len(resp.content)} bytes from {sanitize_url(target.url)}",
            extra={"stage": "download"},
        )
        return resp.content

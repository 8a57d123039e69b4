from contextlib import asynccontextmanager
import logging

import httpx
from fastapi import FastAPI

from core.settings import proxy_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown tasks."""

    logger.info("Initializing outbound HTTP client...")
    app.state.http_client = httpx.AsyncClient(
        timeout=proxy_settings.PROXY_TIMEOUT_SECONDS,
        follow_redirects=False,
    )
    logger.info(f"Forwarding to {proxy_settings.REMOTE_API_BASE}")

    yield

    logger.info("Closing outbound HTTP client...")
    await app.state.http_client.aclose()
    app.state.http_client = None

"""FastAPI application entry point for the credential-forwarding proxy."""

from dotenv import load_dotenv

load_dotenv()

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.routes import health, proxy
from core.error_handlers import (
    handle_app_error,
    handle_http_error,
    handle_unknown_error,
    handle_validation_error,
)
from core.lifespan import lifespan
from core.middleware import trace_id_middleware
from core.settings import app_settings, proxy_settings
from core.validation import validate_all_settings
from pipeline.core.exceptions import BaseError
from pipeline.core.logging_config import configure_structured_logging

# Configure logging
configure_structured_logging(level=app_settings.LOG_LEVEL, json_format=app_settings.LOG_JSON)
logger = logging.getLogger(__name__)

# Validate environment before starting application
validate_all_settings()

app = FastAPI(
    title="Scan-to-DOCX Proxy",
    version=app_settings.APP_VERSION,
    description=(
        "Forwards browser calls to the document-intelligence job API with the "
        "caller's API key, and relays binary uploads/downloads to object storage"
    ),
    lifespan=lifespan,
)

# 1. Register Middleware
app.middleware("http")(trace_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=proxy_settings.CORS_ALLOW_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Trace-ID", "X-Proxy-Error"],
)

# 2. Register Exception Handlers
app.add_exception_handler(RequestValidationError, handle_validation_error)
app.add_exception_handler(StarletteHTTPException, handle_http_error)
app.add_exception_handler(BaseError, handle_app_error)
app.add_exception_handler(Exception, handle_unknown_error)

# Routes
app.include_router(health.router)
app.include_router(proxy.router)

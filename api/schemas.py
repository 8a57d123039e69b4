"""Pydantic request/response schemas for API endpoints."""

from typing import Optional

from pydantic import BaseModel, Field


class ProblemDetail(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs.

    Used for every error the proxy generates itself. Errors returned by the
    remote service are passed through verbatim and never wrapped.

    See: https://www.rfc-editor.org/rfc/rfc7807
    """

    type: str = Field(..., description="URI reference identifying the problem type")
    title: str = Field(..., description="Short, human-readable summary of the problem")
    status: int = Field(..., description="HTTP status code for this problem")
    detail: Optional[str] = Field(
        None, description="Human-readable explanation specific to this occurrence"
    )
    instance: Optional[str] = Field(
        None,
        description="URI reference identifying this specific occurrence (e.g., request path)",
    )

    # Extension members (allowed by RFC 7807)
    code: str = Field(..., description="Application-specific error code")
    category: str = Field(
        ..., description="Error category (client_error, server_error, etc.)"
    )
    retryable: bool = Field(
        default=False, description="Whether the request can be retried"
    )
    trace_id: Optional[str] = Field(
        None, description="Tracing ID for correlation across services"
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "type": "/errors/CREDENTIAL_MISSING",
                "title": "API key required",
                "status": 401,
                "instance": "/api/sarvam/doc-digitization/job/v1",
                "code": "CREDENTIAL_MISSING",
                "category": "client_error",
                "retryable": False,
                "trace_id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890",
            }
        }
    }


class UploadRelayResponse(BaseModel):
    """Outcome of a relay-upload to object storage."""

    success: bool
    error: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str

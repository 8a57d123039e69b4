"""Custom exception hierarchy for the document converter.

Every failure the conversion pipeline or the proxy can produce is a subclass
of BaseError, which carries structured information compatible with RFC 7807
Problem Details. The orchestrator collapses any of them into a single
ConversionFailedError for the end user.
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error categories for classification and monitoring."""

    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    EXTERNAL_SERVICE = "external_service"
    VALIDATION = "validation"
    PROGRAMMING = "programming"


class BaseError(Exception):
    """Base exception for all converter errors.

    Attributes:
        message: Human-readable error message
        error_code: Application-specific error code
        category: Error category for classification
        http_status: HTTP status code to return
        details: Additional context (dict)
        retryable: Whether the caller may try the whole operation again
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        category: ErrorCategory,
        http_status: int,
        details: Optional[dict[str, Any]] = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.category = category
        self.http_status = http_status
        self.details = details or {}
        self.retryable = retryable

    def to_dict(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format.

        Returns:
            Dict containing standardized error information
        """
        return {
            "type": f"/errors/{self.error_code}",
            "title": self.message,
            "status": self.http_status,
            "code": self.error_code,
            "detail": self.details.get("detail"),
            "category": self.category.value,
            "retryable": self.retryable,
        }


class ClientError(BaseError):
    """Base for client errors (4xx). Not retryable."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.CLIENT_ERROR),
            http_status=kwargs.pop("http_status", 400),
            retryable=False,
            **kwargs,
        )


class ValidationError(ClientError):
    """Input validation failed (422 Unprocessable Entity).

    Args:
        message: Validation error description
        field: Name of the input that failed validation
    """

    def __init__(self, message: str, field: str, **kwargs):
        additional_details = kwargs.pop("details", {})
        additional_details["field"] = field
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            category=ErrorCategory.VALIDATION,
            http_status=422,
            details=additional_details,
            **kwargs,
        )


class CredentialMissingError(ClientError):
    """The API key header was absent; raised before any remote call (401)."""

    def __init__(self, header_name: str = "x-api-key"):
        super().__init__(
            message="API key required",
            error_code="CREDENTIAL_MISSING",
            http_status=401,
            details={"header": header_name},
        )


class ServerError(BaseError):
    """Base for server errors (5xx)."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=kwargs.pop("category", ErrorCategory.SERVER_ERROR),
            http_status=kwargs.pop("http_status", 500),
            retryable=kwargs.pop("retryable", False),
            **kwargs,
        )


class PreconditionViolatedError(ServerError):
    """An operation was invoked before its prerequisite stage completed.

    This is a programming error in the caller's sequencing, never a condition
    the end user can fix by retrying.

    Args:
        operation: Name of the operation that was called too early
        requirement: What had to hold before calling it
    """

    def __init__(self, operation: str, requirement: str):
        super().__init__(
            message=f"{operation} called before {requirement}",
            error_code="PRECONDITION_VIOLATED",
            category=ErrorCategory.PROGRAMMING,
            details={"operation": operation, "requirement": requirement},
        )


class ExternalServiceError(ServerError):
    """Base for failures attributable to the remote service or the network."""

    def __init__(self, message: str, error_code: str, **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.EXTERNAL_SERVICE,
            http_status=kwargs.pop("http_status", 502),
            **kwargs,
        )


class RemoteRejectedError(ExternalServiceError):
    """The remote service answered an operation with a non-success status.

    Args:
        operation: Job API operation that was rejected (e.g. "create_job")
        status_code: HTTP status returned by the remote service
        reason: Short description taken from the response, if any
    """

    def __init__(
        self, operation: str, status_code: int, reason: Optional[str] = None
    ):
        message = f"Remote service rejected {operation} ({status_code})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            error_code="REMOTE_REJECTED",
            details={
                "operation": operation,
                "remote_status": status_code,
                "detail": reason,
            },
        )
        self.operation = operation
        self.status_code = status_code


class RemoteJobFailedError(ExternalServiceError):
    """The remote service reported the job as Failed. Terminal."""

    def __init__(self, job_id: str, reason: Optional[str] = None):
        super().__init__(
            message=f"Document processing failed for job {job_id}",
            error_code="REMOTE_JOB_FAILED",
            details={"job_id": job_id, "detail": reason},
        )
        self.job_id = job_id


class JobTimedOutError(ExternalServiceError):
    """The polling deadline passed without a terminal job state. Terminal."""

    def __init__(self, job_id: str, attempts: int, deadline_seconds: float):
        super().__init__(
            message=(
                f"Job {job_id} did not finish after {attempts} status checks "
                f"({deadline_seconds:g}s)"
            ),
            error_code="JOB_TIMED_OUT",
            http_status=504,
            details={
                "job_id": job_id,
                "attempts": attempts,
                "deadline_seconds": deadline_seconds,
            },
        )
        self.job_id = job_id
        self.attempts = attempts


class TransportFailureError(ExternalServiceError):
    """The network or the proxy failed before a remote answer was obtained.

    Args:
        operation: Operation that was in flight
        error_type: "timeout" or "unavailable"
        reason: Underlying error description
    """

    def __init__(
        self, operation: str, error_type: str = "unavailable", reason: Optional[str] = None
    ):
        super().__init__(
            message=f"Network failure during {operation} ({error_type})",
            error_code=(
                "UPSTREAM_TIMEOUT" if error_type == "timeout" else "UPSTREAM_TRANSPORT_FAILURE"
            ),
            http_status=504 if error_type == "timeout" else 502,
            details={"operation": operation, "error_type": error_type, "detail": reason},
        )
        self.operation = operation
        self.error_type = error_type


class NoResultMemberError(ServerError):
    """The result archive did not contain exactly one recognized-text member.

    Args:
        extension: Extension that identifies the recognized-text member
        candidates: Member names that matched (empty when none did)
        reason: Override for the default description
    """

    def __init__(
        self,
        extension: str,
        candidates: Optional[list[str]] = None,
        reason: Optional[str] = None,
    ):
        candidates = candidates or []
        if reason is None:
            if candidates:
                reason = f"expected one *{extension} file, found {len(candidates)}"
            else:
                reason = f"no *{extension} file in result archive"
        super().__init__(
            message=f"No usable result: {reason}",
            error_code="NO_RESULT_MEMBER",
            http_status=502,
            details={"extension": extension, "candidates": candidates, "detail": reason},
        )
        self.candidates = candidates


class ConversionFailedError(BaseError):
    """Single user-facing failure raised by the orchestrator.

    Wraps whichever stage error aborted the run; the original error is kept
    both as ``cause`` and as ``__cause__``.
    """

    def __init__(self, cause: BaseError, stage: str):
        super().__init__(
            message=cause.message,
            error_code=cause.error_code,
            category=cause.category,
            http_status=cause.http_status,
            details={**cause.details, "stage": stage},
            retryable=cause.retryable,
        )
        self.cause = cause
        self.stage = stage

    @property
    def user_message(self) -> str:
        return f"Error: {self.message}. Please check your API key and try again."

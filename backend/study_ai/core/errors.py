"""
Study AI - Error Taxonomy
Failure kinds reported to callers and the exception that carries them.
"""
import logging
from enum import Enum
from typing import Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Every failure a caller can observe."""
    RATE_LIMITED = "rate_limited"
    QUOTA_EXCEEDED = "quota_exceeded"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_UPSTREAM_PAYLOAD = "malformed_upstream_payload"
    MISSING_BODY = "missing_body"
    INTERNAL_ERROR = "internal_error"


ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.QUOTA_EXCEEDED: status.HTTP_402_PAYMENT_REQUIRED,
    ErrorKind.UPSTREAM_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.MALFORMED_UPSTREAM_PAYLOAD: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.MISSING_BODY: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class StudyAIError(Exception):
    """A failure with a user-displayable message and a taxonomy kind."""

    def __init__(self, kind: ErrorKind, message: str, raw: Optional[str] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.raw = raw

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.kind]

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.kind.value}
        if self.raw is not None:
            body["raw"] = self.raw
        return body


async def study_ai_error_handler(request: Request, exc: StudyAIError) -> JSONResponse:
    """Render a StudyAIError as the structured JSON error body."""
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def _describe_validation_error(error: dict) -> str:
    field = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = error.get("msg", "invalid value")
    return f"{field}: {message}" if field else message


async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a rejected request body with the same error envelope as every other failure."""
    details = "; ".join(_describe_validation_error(error) for error in exc.errors())
    logger.warning(f"Rejected request to {request.url.path}: {details}")
    error = StudyAIError(ErrorKind.INTERNAL_ERROR, f"Invalid request: {details}")
    return await study_ai_error_handler(request, error)

"""Error taxonomy shared by every pipeline component and the HTTP layer."""

from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorCode(str, Enum):
    """Stable machine-readable failure codes."""

    # Source references
    INVALID_URL = "INVALID_URL"
    INVALID_FORMAT = "INVALID_FORMAT"
    NOT_FOUND = "NOT_FOUND"
    TOO_LARGE = "TOO_LARGE"
    FETCH_FAILED = "FETCH_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"

    # Fragment generation
    GENERATION_FAILED = "GENERATION_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"

    # Sandbox stages
    SANDBOX_CREATION_FAILED = "SANDBOX_CREATION_FAILED"
    DEPENDENCY_INSTALL_FAILED = "DEPENDENCY_INSTALL_FAILED"
    CODE_WRITE_FAILED = "CODE_WRITE_FAILED"
    EXECUTION_FAILED = "EXECUTION_FAILED"

    # Requests
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_MODEL = "INVALID_MODEL"
    PROJECT_NOT_READY = "PROJECT_NOT_READY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_URL: HTTPStatus.BAD_REQUEST,
    ErrorCode.INVALID_FORMAT: HTTPStatus.BAD_REQUEST,
    ErrorCode.VALIDATION_ERROR: HTTPStatus.BAD_REQUEST,
    ErrorCode.INVALID_MODEL: HTTPStatus.BAD_REQUEST,
    ErrorCode.TEMPLATE_NOT_FOUND: HTTPStatus.BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: HTTPStatus.UNAUTHORIZED,
    ErrorCode.NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCode.PROJECT_NOT_READY: HTTPStatus.CONFLICT,
    ErrorCode.TOO_LARGE: HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
}


def http_status_for(code: ErrorCode) -> int:
    """Map an error code to its HTTP status; unknown codes are server errors."""
    return int(HTTP_STATUS_BY_CODE.get(code, HTTPStatus.INTERNAL_SERVER_ERROR))


class ApiError(Exception):
    """Raised by request handlers; rendered as the standard error envelope."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int | None = None,
        details: Any = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code if status_code is not None else http_status_for(code)
        self.details = details

    @classmethod
    def from_failure(cls, failure: Any) -> "ApiError":
        """Build from a component ``Failure`` (anything with error and error_code)."""
        return cls(failure.error_code, failure.error)

    def to_envelope(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}

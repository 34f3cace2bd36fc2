"""Shared error models and utilities for consistent error handling across APIs

Services raise a single exception type, ``ApiError``, tagged with an
``ErrorKind``. The kind decides the HTTP status and the machine-readable code;
``error_response`` is the only place that turns an error into a response body.
"""

from enum import Enum
from typing import Optional, Dict, Any, Tuple

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict


class ErrorCode(str, Enum):
    """Standard error codes for API responses"""

    # Client errors (4xx)
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"

    # Server errors (5xx)
    INTERNAL_ERROR = "internal_error"
    SERVICE_UNAVAILABLE = "service_unavailable"

    # Upload lifecycle errors
    UPLOAD_NOT_FOUND = "upload_not_found"
    STORAGE_ERROR = "storage_error"
    CONFIGURATION_ERROR = "configuration_error"


class ErrorKind(str, Enum):
    """Category of a failure raised inside the API"""

    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    RATE_LIMITED = "rate_limited"
    UPLOAD_MISSING = "upload_missing"  # object absent at confirm time
    STORAGE = "storage"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


ERROR_KIND_MAPPING: Dict[ErrorKind, Tuple[int, ErrorCode]] = {
    ErrorKind.VALIDATION: (400, ErrorCode.VALIDATION_ERROR),
    ErrorKind.UNAUTHORIZED: (401, ErrorCode.UNAUTHORIZED),
    ErrorKind.FORBIDDEN: (403, ErrorCode.FORBIDDEN),
    ErrorKind.CONFLICT: (409, ErrorCode.CONFLICT),
    ErrorKind.RATE_LIMITED: (429, ErrorCode.RATE_LIMIT_EXCEEDED),
    ErrorKind.UPLOAD_MISSING: (500, ErrorCode.UPLOAD_NOT_FOUND),
    ErrorKind.STORAGE: (500, ErrorCode.STORAGE_ERROR),
    ErrorKind.CONFIGURATION: (500, ErrorCode.CONFIGURATION_ERROR),
    ErrorKind.INTERNAL: (500, ErrorCode.INTERNAL_ERROR),
}


class ApiError(Exception):
    """
    Error raised by services and dependencies.

    Args:
        kind: ErrorKind deciding status code and error code
        message: User-friendly error message
        detail: Optional technical detail (only exposed for client errors)
        headers: Optional extra response headers
        metadata: Optional additional error context
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        detail: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.kind = kind
        self.message = message
        self.detail = detail
        self.headers = headers or {}
        self.metadata = metadata
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return ERROR_KIND_MAPPING[self.kind][0]

    @property
    def code(self) -> ErrorCode:
        return ERROR_KIND_MAPPING[self.kind][1]


class ErrorDetail(BaseModel):
    """Structured error detail for API responses"""

    code: ErrorCode
    message: str
    detail: Optional[str] = None
    field: Optional[str] = None  # For validation errors
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(use_enum_values=True)


def create_error_response(
    code: ErrorCode,
    message: str,
    detail: Optional[str] = None,
    status_code: int = 500,
    metadata: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """
    Create a standardized JSON error response.

    Args:
        code: Error code from ErrorCode enum
        message: User-friendly error message
        detail: Optional technical detail for debugging
        status_code: HTTP status code
        metadata: Optional additional error context
        headers: Optional response headers

    Returns:
        JSONResponse with body {"error": {...}}
    """
    error = ErrorDetail(
        code=code,
        message=message,
        detail=detail,
        metadata=metadata
    )

    return JSONResponse(
        status_code=status_code,
        content={"error": error.model_dump(exclude_none=True)},
        headers=headers,
    )


def error_response(error: ApiError) -> JSONResponse:
    """Map an ApiError to its HTTP response.

    Server-side kinds (5xx) never expose ``detail``; it may carry raw
    exception text from storage or database clients.
    """
    status_code, code = ERROR_KIND_MAPPING[error.kind]
    detail = error.detail if status_code < 500 else None

    return create_error_response(
        code=code,
        message=error.message,
        detail=detail,
        status_code=status_code,
        metadata=error.metadata,
        headers=error.headers or None,
    )


def http_status_to_error_code(status_code: int) -> ErrorCode:
    """Map HTTP status codes to ErrorCode enum values"""

    mapping = {
        400: ErrorCode.BAD_REQUEST,
        401: ErrorCode.UNAUTHORIZED,
        403: ErrorCode.FORBIDDEN,
        404: ErrorCode.NOT_FOUND,
        409: ErrorCode.CONFLICT,
        422: ErrorCode.VALIDATION_ERROR,
        429: ErrorCode.RATE_LIMIT_EXCEEDED,
        500: ErrorCode.INTERNAL_ERROR,
        503: ErrorCode.SERVICE_UNAVAILABLE,
    }

    return mapping.get(status_code, ErrorCode.INTERNAL_ERROR)

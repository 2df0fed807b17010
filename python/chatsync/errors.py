"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
The same codes are used for per-item push failures, which are returned as data
instead of being raised.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_CHAT_NOT_FOUND = "E_CHAT_NOT_FOUND"
    E_MESSAGE_NOT_FOUND = "E_MESSAGE_NOT_FOUND"
    E_MEMORY_NOT_FOUND = "E_MEMORY_NOT_FOUND"

    # Conflict errors (409)
    E_ID_CONFLICT = "E_ID_CONFLICT"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_VALIDATION_FAILED = "E_VALIDATION_FAILED"
    E_INVALID_WATERMARK = "E_INVALID_WATERMARK"
    E_BATCH_TOO_LARGE = "E_BATCH_TOO_LARGE"
    E_CHAT_LIMIT_EXCEEDED = "E_CHAT_LIMIT_EXCEEDED"

    # Server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_CHAT_NOT_FOUND: 404,
    ApiErrorCode.E_MESSAGE_NOT_FOUND: 404,
    ApiErrorCode.E_MEMORY_NOT_FOUND: 404,
    ApiErrorCode.E_ID_CONFLICT: 409,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_VALIDATION_FAILED: 400,
    ApiErrorCode.E_INVALID_WATERMARK: 400,
    ApiErrorCode.E_BATCH_TOO_LARGE: 400,
    ApiErrorCode.E_CHAT_LIMIT_EXCEEDED: 400,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Entity referenced by key does not exist (or is tombstoned)."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Identifier collision that survived every allocation attempt."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_ID_CONFLICT, message: str = "Identifier conflict"
    ):
        super().__init__(code, message)


class QuotaExceededError(ApiError):
    """Chat creation ceiling reached."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_CHAT_LIMIT_EXCEEDED,
        message: str = "Chat limit exceeded",
    ):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)

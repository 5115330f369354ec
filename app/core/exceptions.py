from enum import Enum

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    validation_error = "validation_error"
    invalid_amount = "invalid_amount"
    unauthorized = "unauthorized"
    forbidden = "forbidden"
    not_found = "not_found"
    conflict = "conflict"
    invalid_transition = "invalid_transition"
    invalid_state = "invalid_state"
    insufficient_credits = "insufficient_credits"
    limit_exceeded = "limit_exceeded"
    already_completed = "already_completed"
    already_paid = "already_paid"
    already_rated = "already_rated"
    internal_error = "internal_error"


class AppError(HTTPException):
    """HTTPException carrying a machine-readable error code."""

    def __init__(self, status_code: int, detail: str, code: ErrorCode):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code


class AppException:
    """Class-based exception handlers for common HTTP status codes."""

    @staticmethod
    def raise_400(message: str = "Bad Request", code: ErrorCode = ErrorCode.validation_error):
        """Raise a 400 Bad Request exception."""
        raise AppError(status.HTTP_400_BAD_REQUEST, message, code)

    @staticmethod
    def raise_401(message: str = "Unauthorized", code: ErrorCode = ErrorCode.unauthorized):
        """Raise a 401 Unauthorized exception."""
        raise AppError(status.HTTP_401_UNAUTHORIZED, message, code)

    @staticmethod
    def raise_403(message: str = "Forbidden", code: ErrorCode = ErrorCode.forbidden):
        """Raise a 403 Forbidden exception."""
        raise AppError(status.HTTP_403_FORBIDDEN, message, code)

    @staticmethod
    def raise_404(message: str = "Not Found", code: ErrorCode = ErrorCode.not_found):
        """Raise a 404 Not Found exception."""
        raise AppError(status.HTTP_404_NOT_FOUND, message, code)

    @staticmethod
    def raise_409(message: str = "Conflict", code: ErrorCode = ErrorCode.conflict):
        """Raise a 409 Conflict exception."""
        raise AppError(status.HTTP_409_CONFLICT, message, code)

    @staticmethod
    def raise_422(message: str = "Validation error", code: ErrorCode = ErrorCode.validation_error):
        """Raise a 422 Unprocessable Entity exception."""
        raise AppError(status.HTTP_422_UNPROCESSABLE_ENTITY, message, code)

    @staticmethod
    def raise_500(message: str = "Internal Server Error", code: ErrorCode = ErrorCode.internal_error):
        """Raise a 500 Internal Server Error exception."""
        raise AppError(status.HTTP_500_INTERNAL_SERVER_ERROR, message, code)


def error_code_for_status(status_code: int) -> str:
    """Fallback code for plain HTTPExceptions raised by FastAPI/Starlette."""
    return {
        status.HTTP_401_UNAUTHORIZED: ErrorCode.unauthorized.value,
        status.HTTP_403_FORBIDDEN: ErrorCode.forbidden.value,
        status.HTTP_404_NOT_FOUND: ErrorCode.not_found.value,
        status.HTTP_409_CONFLICT: ErrorCode.conflict.value,
        status.HTTP_422_UNPROCESSABLE_ENTITY: ErrorCode.validation_error.value,
    }.get(status_code, ErrorCode.internal_error.value if status_code >= 500 else ErrorCode.validation_error.value)

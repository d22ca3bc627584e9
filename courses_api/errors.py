"""Application error types.

Services raise these; the FastAPI exception handlers in `main.py` turn
them into JSON responses with the matching HTTP status.
"""

from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    UNAUTHORIZED = "UNAUTHORIZED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class AppError(Exception):
    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.message,
            "code": self.code.value,
            "details": self.details,
        }


class ValidationError(AppError):
    """Malformed or inconsistent input.

    `issues` is a list of `{"loc": [...], "msg": "..."}` dicts, one per
    offending field.
    """

    def __init__(self, issues: List[Dict[str, Any]], message: str = "Validation failed"):
        self.issues = issues
        super().__init__(
            message=message,
            code=ErrorCode.VALIDATION_ERROR,
            details={"issues": issues},
            status_code=400,
        )


class InvalidInput(AppError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            details=details,
            status_code=400,
        )


class NotFound(AppError):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            message=f"{resource} not found",
            code=ErrorCode.NOT_FOUND,
            details={"resource": resource, "identifier": str(identifier)},
            status_code=404,
        )


class Unauthorized(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            code=ErrorCode.UNAUTHORIZED,
            status_code=401,
        )


class InvalidCredentials(Unauthorized):
    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(message)
        self.code = ErrorCode.INVALID_CREDENTIALS


class InternalError(AppError):
    def __init__(self, message: str = "Internal server error", reason: Optional[str] = None):
        super().__init__(
            message=message,
            code=ErrorCode.INTERNAL_ERROR,
            details={"reason": reason} if reason else None,
            status_code=500,
        )

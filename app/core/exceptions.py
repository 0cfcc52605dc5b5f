from typing import Dict, Any, Optional
from fastapi import status
from pydantic import BaseModel
import logging

logger = logging.getLogger(__name__)


class BaseCustomException(Exception):
    """Base class for custom exceptions"""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(BaseCustomException):
    """Caller input failed field or availability checks"""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "VALIDATION_ERROR"
        )


class NotFoundError(BaseCustomException):
    """Exception for resource not found errors"""

    def __init__(
        self,
        message: str = "Resource not found",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
            error_code=error_code or "NOT_FOUND_ERROR"
        )


class DatabaseError(BaseCustomException):
    """The store rejected or failed a write"""

    def __init__(
        self,
        message: str = "Database operation failed",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
            error_code=error_code or "DATABASE_ERROR"
        )


class ConcurrencyConflictError(DatabaseError):
    """A concurrent writer changed or removed the row between read and save"""

    def __init__(
        self,
        message: str = "Record was modified concurrently",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            details=details,
            error_code=error_code or "CONCURRENCY_CONFLICT"
        )


class DataIntegrityError(BaseCustomException):
    """
    Stored data fails integrity checks on read.

    Distinct from ValidationError: the caller sent nothing wrong, the
    persisted record itself has drifted.
    """

    def __init__(
        self,
        message: str = "Stored data failed integrity checks",
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            details=details,
            error_code=error_code or "DATA_INTEGRITY_ERROR"
        )


# Response models for errors
class ErrorResponse(BaseModel):
    """Standard error response model"""
    error: str
    message: str
    error_code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


class ValidationErrorResponse(BaseModel):
    """Validation error response model"""
    error: str = "Validation Error"
    message: str
    error_code: Optional[str] = None
    validation_errors: Optional[Dict[str, list]] = None
    details: Optional[Dict[str, Any]] = None
    timestamp: Optional[str] = None


# Exception handler functions
def create_error_response(exception: BaseCustomException) -> Dict[str, Any]:
    """Create standardized error response"""
    from datetime import datetime, timezone

    response = {
        "error": exception.__class__.__name__.replace("Error", " Error"),
        "message": exception.message,
        "error_code": exception.error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if exception.details:
        response["details"] = exception.details

    return response


def create_validation_error_response(
    exception: ValidationError,
    validation_errors: Optional[Dict[str, list]] = None
) -> Dict[str, Any]:
    """Create validation error response"""
    response = create_error_response(exception)
    response["error"] = "Validation Error"

    if validation_errors:
        response["validation_errors"] = validation_errors

    return response


def handle_database_error(error: Exception, operation: str = "database operation") -> DatabaseError:
    """Log the driver error and convert it to a DatabaseError safe to show clients"""
    logger.error(f"Database error during {operation}: {error}", exc_info=error)

    error_message = "Database operation failed"
    if "connection" in str(error).lower():
        error_message = "Database connection failed"
    elif "timeout" in str(error).lower():
        error_message = "Database operation timed out"
    elif "constraint" in str(error).lower():
        error_message = "Database constraint violation"

    return DatabaseError(
        message=error_message,
        details={"operation": operation},
        error_code="DATABASE_OPERATION_ERROR"
    )

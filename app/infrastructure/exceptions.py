"""
Custom exception classes for the credit rating application.

Provides structured error handling with user-friendly messages and an HTTP
status per error category so the web layer can render failures uniformly.
"""

from __future__ import annotations

from typing import Any


class CreditRatingError(Exception):
    """Base exception for all application errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        user_message: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.user_message = user_message or self._get_default_user_message()

    def _get_default_user_message(self) -> str:
        """Provide a user-friendly version of the error message."""
        return "An unexpected error occurred. Please try again."

    def __str__(self) -> str:
        return f"{self.__class__.__name__}: {self.message}"


class ValidationError(CreditRatingError):
    """Raised when input validation fails."""

    status_code = 400

    def __init__(
        self, field: str, message: str, value: Any = None, details: dict[str, Any] | None = None
    ):
        self.field = field
        self.value = value
        super().__init__(
            message=f"Validation failed for field '{field}': {message}",
            details=details or {"field": field, "value": value},
            user_message=message,
        )


class NotFoundError(CreditRatingError):
    """Raised when an entity cannot be located by its identifier."""

    status_code = 404

    def __init__(self, entity: str, identifier: Any):
        self.entity = entity
        self.identifier = identifier
        super().__init__(
            message=f"{entity} with id {identifier!r} not found",
            details={"entity": entity, "identifier": identifier},
            user_message=f"{entity} not found",
        )


class TemplateNotFoundError(NotFoundError):
    def __init__(self, template_id: Any):
        super().__init__("Template", template_id)


class AssessmentNotFoundError(NotFoundError):
    def __init__(self, assessment_id: Any):
        super().__init__("Assessment", assessment_id)


class CustomerNotFoundError(NotFoundError):
    def __init__(self, customer_id: Any):
        super().__init__("Customer", customer_id)


class ConflictError(CreditRatingError):
    """Raised on duplicates and on writes against a stale version."""

    status_code = 409

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, details=details, user_message=message)


class StateError(CreditRatingError):
    """Raised when an operation is not allowed in the entity's current lifecycle state."""

    status_code = 400

    def __init__(
        self,
        message: str,
        current_state: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.current_state = current_state
        super().__init__(
            message=message,
            details=details or {"current_state": current_state},
            user_message=message,
        )


class StorageError(CreditRatingError):
    """Raised when database operations fail."""

    def __init__(self, message: str, operation: str, details: dict[str, Any] | None = None):
        self.operation = operation
        super().__init__(
            message=f"Database error during {operation}: {message}",
            details=details or {"operation": operation},
        )

    def _get_default_user_message(self) -> str:
        return "A storage error occurred. Please try again in a moment."


class ConnectionError(StorageError):
    """Raised when database connection fails."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message=message, operation="connection", details=details)

    def _get_default_user_message(self) -> str:
        return "Unable to connect to the database. Please try again later."


class IntegrityError(StorageError):
    """Raised when database integrity constraints are violated."""

    def __init__(
        self,
        message: str,
        constraint: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.constraint = constraint
        super().__init__(
            message=message,
            operation="integrity_check",
            details=details or {"constraint": constraint},
        )

    def _get_default_user_message(self) -> str:
        if self.constraint:
            if "unique" in self.constraint.lower():
                return "This item already exists. Please use a different value."
            elif "foreign" in self.constraint.lower():
                return "Referenced item no longer exists. Please refresh and try again."
        return "Data integrity error. Please check your input and try again."


class ConfigurationError(CreditRatingError):
    """Raised when configuration is invalid."""

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.config_key = config_key
        super().__init__(
            message=message,
            details=details or {"config_key": config_key},
            user_message="Configuration error. Please check your settings.",
        )


class ExportError(CreditRatingError):
    """Raised when an assessment or template export cannot be rendered."""

    status_code = 400

    def __init__(self, message: str, export_format: str | None = None):
        self.export_format = export_format
        super().__init__(
            message=message,
            details={"export_format": export_format},
            user_message=message,
        )


def handle_database_error(e: Exception, operation: str = "database operation") -> StorageError:
    """
    Convert generic database exceptions to appropriate custom exceptions.

    Args:
        e: The original exception
        operation: Description of the operation that failed

    Returns:
        Appropriate StorageError subclass

    Example:
        >>> try:
        ...     session.commit()
        >>> except SQLAlchemyError as e:
        ...     raise handle_database_error(e, "commit transaction")
    """
    error_msg = str(e).lower()

    if "connection" in error_msg or "timeout" in error_msg:
        return ConnectionError(str(e))
    elif "unique constraint" in error_msg or "duplicate" in error_msg:
        return IntegrityError(str(e), constraint="unique")
    elif "foreign key" in error_msg or "foreign_key" in error_msg:
        return IntegrityError(str(e), constraint="foreign_key")
    elif "check constraint" in error_msg:
        return IntegrityError(str(e), constraint="check")
    else:
        return StorageError(str(e), operation)


def create_user_friendly_error_message(error: Exception) -> str:
    """
    Create a user-friendly error message from any exception.

    Example:
        >>> error = ValidationError("name", "Template name is required")
        >>> create_user_friendly_error_message(error)
        'Template name is required'
    """
    if isinstance(error, CreditRatingError):
        return error.user_message

    error_type = type(error).__name__
    messages = {
        "ValueError": "Invalid input provided. Please check your data and try again.",
        "KeyError": "Required information is missing. Please check your input.",
        "TypeError": "Incorrect data type provided. Please check your input format.",
    }
    return messages.get(
        error_type, "An unexpected error occurred. Please try again or contact support."
    )


def log_error_details(error: Exception, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Create structured error details for logging.

    Example:
        >>> error = StorageError("Connection failed", "connect")
        >>> log_error_details(error, {"template_id": 3})["error_type"]
        'StorageError'
    """
    details = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
    }

    if isinstance(error, CreditRatingError):
        details.update({"user_message": error.user_message, "error_details": error.details})

    return details

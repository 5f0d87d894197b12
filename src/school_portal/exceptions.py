"""
School portal exception hierarchy.

Every error raised by the storage core derives from ``PortalError`` and
carries a machine-readable ``error_code``, a severity, a retry
classification and a free-form context dictionary, so callers can map
failures to user-facing messages without string matching.

There is no "not found" error: lookups return
``None`` instead of raising.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RetryPolicy(Enum):
    """Retry classification for exceptions."""

    NEVER = "never"  # Permanent failures (constraint violations, permissions)
    BACKOFF = "backoff"  # Retry with exponential backoff (connection drops)


class PortalError(Exception):
    """
    Base exception class for all school portal errors.

    Attributes
    ----------
    message : str
        Human-readable error message
    error_code : str
        Machine-readable error code for categorization
    severity : ErrorSeverity
        Error severity level
    retry_policy : RetryPolicy
        Retry classification for this error type
    context : Dict[str, Any]
        Additional error context and metadata
    timestamp : datetime
        When the error occurred
    cause : Optional[Exception]
        Original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        error_code: str = "portal_error",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retry_policy: RetryPolicy = RetryPolicy.NEVER,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.severity = severity
        self.retry_policy = retry_policy
        self.context = dict(context or {})  # Create a copy to avoid mutation
        self.timestamp = datetime.now(timezone.utc)
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging and serialization.

        Returns
        -------
        Dict[str, Any]
            Structured error data with all metadata
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "severity": self.severity.value,
            "retry_policy": self.retry_policy.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
            "exception_type": self.__class__.__name__,
        }

    def is_retryable(self) -> bool:
        """Check if this exception should be retried."""
        return self.retry_policy != RetryPolicy.NEVER

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class StorageError(PortalError):
    """Base exception for failures raised by a storage backend."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        error_code: str = "storage_error",
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        retry_policy: RetryPolicy = RetryPolicy.NEVER,
        context: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation

        super().__init__(
            message=message,
            error_code=error_code,
            severity=severity,
            retry_policy=retry_policy,
            context=context,
            cause=cause,
        )
        self.operation = operation


class StorageConfigError(StorageError):
    """Raised when the relational backend cannot be configured."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(
            message,
            error_code="storage_config_invalid",
            severity=ErrorSeverity.HIGH,
            cause=cause,
        )


class UniqueConstraintError(StorageError):
    """
    Raised when a write would duplicate a unique field.

    Callers translate this into an "already exists" outcome.
    """

    def __init__(
        self,
        entity: str,
        field: str,
        value: Any = None,
        message: Optional[str] = None,
        cause: Optional[Exception] = None,
    ) -> None:
        message = message or f"{entity} with {field}={value!r} already exists"
        super().__init__(
            message,
            error_code="unique_violation",
            severity=ErrorSeverity.LOW,
            context={"entity": entity, "field": field, "value": value},
            cause=cause,
        )
        self.entity = entity
        self.field = field
        self.value = value


class DuplicateEmailError(UniqueConstraintError):
    """Raised when a parent registers with an email that is already taken."""

    def __init__(self, email: Any = None, cause: Optional[Exception] = None) -> None:
        super().__init__(
            "parent",
            "email",
            email,
            message=(
                f"Parent with email {email!r} already exists"
                if email is not None
                else "Parent email already exists"
            ),
            cause=cause,
        )


class MissingReferenceError(StorageError):
    """Raised when a record points at a parent or school that does not exist."""

    def __init__(
        self,
        entity: str,
        field: str,
        value: Any = None,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"{entity}.{field} references a missing record ({value!r})",
            error_code="missing_reference",
            severity=ErrorSeverity.LOW,
            context={"entity": entity, "field": field, "value": value},
            cause=cause,
        )
        self.entity = entity
        self.field = field
        self.value = value


class VerificationStateError(StorageError):
    """Raised when a verification token is assigned to a verified parent."""

    def __init__(self, parent_id: int) -> None:
        super().__init__(
            f"Parent {parent_id} is already verified; a verification token cannot be set",
            error_code="verification_state",
            severity=ErrorSeverity.LOW,
            context={"parent_id": parent_id},
        )


class PermissionDeniedError(StorageError):
    """Backend access-control rejection. Never retried."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(
            message,
            error_code="permission_denied",
            severity=ErrorSeverity.HIGH,
            cause=cause,
        )


class TransientStorageError(StorageError):
    """Connection drop, timeout or pool exhaustion; safe to retry."""

    def __init__(self, message: str, cause: Optional[Exception] = None) -> None:
        super().__init__(
            message,
            error_code="storage_transient",
            severity=ErrorSeverity.MEDIUM,
            retry_policy=RetryPolicy.BACKOFF,
            cause=cause,
        )


class StorageUnavailableError(StorageError):
    """Raised once the retry budget for an operation is exhausted."""

    def __init__(
        self,
        operation: str,
        attempts: int,
        cause: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            f"{operation} failed after {attempts} attempts: {cause}",
            operation=operation,
            error_code="storage_unavailable",
            severity=ErrorSeverity.HIGH,
            context={"attempts": attempts},
            cause=cause,
        )
        self.attempts = attempts


__all__ = [
    "ErrorSeverity",
    "RetryPolicy",
    "PortalError",
    "StorageError",
    "StorageConfigError",
    "UniqueConstraintError",
    "DuplicateEmailError",
    "MissingReferenceError",
    "VerificationStateError",
    "PermissionDeniedError",
    "TransientStorageError",
    "StorageUnavailableError",
]

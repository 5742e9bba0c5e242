"""Error handlers with context preservation for deduplication and merge runs."""

import logging
import threading
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification."""
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    PERSISTENCE = "persistence"
    MERGE = "merge"
    UNKNOWN = "unknown"


@dataclass
class ErrorContext:
    """Context information for an error."""
    operation: str
    record_ids: List[str] = field(default_factory=list)
    strategy: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "operation": self.operation,
            "record_ids": list(self.record_ids),
            "strategy": self.strategy,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
        }


class ContactScrubError(Exception):
    """Base exception for all contactscrub errors."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.cause = cause
        self.severity = severity
        self.category = category
        self.retryable = retryable
        self.timestamp = datetime.now(timezone.utc)

        self.stack_trace = traceback.format_exc()

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging."""
        return {
            "error_type": self.__class__.__name__,
            # "message" is reserved on LogRecord
            "error_message": self.message,
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
            "severity": self.severity.value,
            "category": self.category.value,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat(),
        }


class ValidationError(ContactScrubError):
    """Malformed contact input."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[ErrorContext] = None,
    ):
        super().__init__(
            message,
            context=context,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            retryable=False,
        )
        self.field = field
        self.value = value


class ConfigurationError(ContactScrubError):
    """Invalid configuration file or environment value."""

    def __init__(
        self,
        message: str,
        setting: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            retryable=False,
        )
        self.setting = setting


class PersistenceError(ContactScrubError):
    """A contact store failed to create or delete a record."""

    def __init__(
        self,
        message: str,
        operation: str,
        record_ids: Optional[List[str]] = None,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.PERSISTENCE,
            retryable=True,
        )
        self.operation = operation
        self.record_ids = list(record_ids or [])


class MergeError(ContactScrubError):
    """A duplicate group could not be merged."""

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(
            message,
            context=context,
            cause=cause,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.MERGE,
            retryable=False,
        )


class ErrorHandler:
    """Centralized error handler with context preservation."""

    def __init__(self):
        """Initialize error handler."""
        self._context_stack = threading.local()
        self.logger = logging.getLogger(__name__)

        self._error_counts: Dict[str, int] = {}
        self._error_history: List[ContactScrubError] = []
        self._max_history_size = 1000

    @contextmanager
    def error_context(self, **kwargs):
        """Context manager for error context.

        Usage:
            with error_handler.error_context(operation="merge_group", record_ids=ids):
                # Operations that might raise errors
                pass
        """
        if not hasattr(self._context_stack, "contexts"):
            self._context_stack.contexts = []

        context = ErrorContext(**kwargs)
        self._context_stack.contexts.append(context)

        try:
            yield context
        finally:
            if self._context_stack.contexts:
                self._context_stack.contexts.pop()

    def get_current_context(self) -> Optional[ErrorContext]:
        """Get current error context."""
        if hasattr(self._context_stack, "contexts") and self._context_stack.contexts:
            return self._context_stack.contexts[-1]
        return None

    def handle_error(
        self,
        error: Exception,
        operation: Optional[str] = None,
        reraise: bool = True,
    ) -> Optional[ContactScrubError]:
        """Handle an error with context preservation.

        Args:
            error: The error to handle
            operation: Operation being performed
            reraise: Whether to re-raise the error

        Returns:
            Wrapped error if applicable
        """
        context = self.get_current_context()
        if operation and context:
            context.operation = operation

        if isinstance(error, ContactScrubError):
            wrapped_error = error
            if not wrapped_error.context and context:
                wrapped_error.context = context
        else:
            wrapped_error = self._wrap_error(error, context, operation)

        self._log_error(wrapped_error)
        self._update_error_stats(wrapped_error)

        if reraise:
            if wrapped_error is error:
                raise wrapped_error
            raise wrapped_error from error

        return wrapped_error

    def _wrap_error(
        self,
        error: Exception,
        context: Optional[ErrorContext],
        operation: Optional[str],
    ) -> ContactScrubError:
        """Wrap a foreign exception in the matching error type."""
        error_str = str(error) or type(error).__name__

        if isinstance(error, (OSError, ConnectionError, TimeoutError)):
            return PersistenceError(
                error_str,
                operation=operation or (context.operation if context else "unknown"),
                record_ids=context.record_ids if context else None,
                context=context,
                cause=error,
            )
        elif isinstance(error, (ValueError, TypeError)):
            wrapped = ValidationError(error_str, context=context)
            wrapped.cause = error
            return wrapped
        return ContactScrubError(error_str, context=context, cause=error)

    def _log_error(self, error: ContactScrubError) -> None:
        """Log error with appropriate severity."""
        error_dict = error.to_dict()

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"Critical error: {error.message}", extra=error_dict)
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"Error: {error.message}", extra=error_dict)
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"Warning: {error.message}", extra=error_dict)
        else:
            self.logger.info(f"Info: {error.message}", extra=error_dict)

    def _update_error_stats(self, error: ContactScrubError) -> None:
        """Update error statistics."""
        error_type = error.__class__.__name__
        self._error_counts[error_type] = self._error_counts.get(error_type, 0) + 1

        self._error_history.append(error)
        if len(self._error_history) > self._max_history_size:
            self._error_history = self._error_history[-self._max_history_size:]

    def get_error_stats(self) -> Dict[str, Any]:
        """Get error statistics."""
        recent_errors = self._error_history[-100:]

        severity_dist = {severity.value: 0 for severity in ErrorSeverity}
        for error in recent_errors:
            severity_dist[error.severity.value] += 1

        return {
            "total_errors": sum(self._error_counts.values()),
            "error_counts": self._error_counts.copy(),
            "severity_distribution": severity_dist,
            "retryable_errors": sum(1 for e in recent_errors if e.retryable),
        }

    def create_user_friendly_message(self, error: ContactScrubError) -> str:
        """Create user-friendly error message."""
        if isinstance(error, PersistenceError):
            if error.operation == "create":
                return f"Could not save the merged contact: {error.message}"
            if error.operation == "delete":
                remaining = ", ".join(error.record_ids) or "unknown records"
                return f"Merged contact saved, but originals could not be removed ({remaining}): {error.message}"
            return f"Contact store error: {error.message}"
        elif isinstance(error, ValidationError):
            if error.field:
                return f"Invalid value for field '{error.field}': {error.message}"
            return f"Validation error: {error.message}"
        elif isinstance(error, ConfigurationError):
            if error.setting:
                return f"Invalid configuration for '{error.setting}': {error.message}"
            return f"Configuration error: {error.message}"
        elif isinstance(error, MergeError):
            return f"Merge failed: {error.message}"
        return f"An error occurred: {error.message}"

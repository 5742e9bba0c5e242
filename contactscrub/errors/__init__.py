"""Error handling module for contact deduplication."""

from .handlers import (
    ErrorHandler,
    ErrorContext,
    ErrorSeverity,
    ErrorCategory,
    ContactScrubError,
    ValidationError,
    ConfigurationError,
    PersistenceError,
    MergeError,
)

__all__ = [
    "ErrorHandler",
    "ErrorContext",
    "ErrorSeverity",
    "ErrorCategory",
    "ContactScrubError",
    "ValidationError",
    "ConfigurationError",
    "PersistenceError",
    "MergeError",
]

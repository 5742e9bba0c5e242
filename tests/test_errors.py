"""Tests for the error hierarchy and error handler."""

import warnings
from datetime import timezone

import pytest

from contactscrub.errors import (
    ConfigurationError,
    ContactScrubError,
    ErrorCategory,
    ErrorHandler,
    ErrorSeverity,
    MergeError,
    PersistenceError,
    ValidationError,
)
from contactscrub.models import ContactRecord


class TestErrorTypes:
    """Exception classes."""

    def test_hierarchy(self):
        for cls in (ValidationError, ConfigurationError, MergeError):
            assert issubclass(cls, ContactScrubError)
        assert issubclass(PersistenceError, ContactScrubError)

    def test_persistence_error_is_retryable(self):
        error = PersistenceError("store down", operation="create", record_ids=["a"])
        assert error.retryable
        assert error.category == ErrorCategory.PERSISTENCE
        assert error.severity == ErrorSeverity.HIGH

    def test_to_dict(self):
        error = MergeError("nothing to merge", cause=RuntimeError("boom"))
        data = error.to_dict()
        assert data["error_type"] == "MergeError"
        assert data["error_message"] == "nothing to merge"
        assert data["cause"] == "boom"
        assert data["category"] == "merge"
        assert data["context"] is None

    def test_timestamps_are_timezone_aware(self):
        handler = ErrorHandler()
        with warnings.catch_warnings():
            warnings.simplefilter("error", DeprecationWarning)
            with handler.error_context(operation="create") as context:
                error = PersistenceError("x", operation="create", context=context)

        assert error.timestamp.tzinfo == timezone.utc
        assert context.timestamp.tzinfo == timezone.utc
        assert error.to_dict()["timestamp"].endswith("+00:00")
        assert error.to_dict()["context"]["timestamp"].endswith("+00:00")

    def test_invalid_contact_raises_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            ContactRecord.from_dict({"id": "  "})
        assert exc_info.value.field == "id"

    def test_from_dict_accepts_plain_strings(self):
        record = ContactRecord.from_dict({"id": "c1", "emails": ["a@x.com"], "phones": ["555"]})
        assert record.emails[0].value == "a@x.com"
        assert record.phones[0].label is None

    def test_single_channel_value_not_split_into_characters(self):
        record = ContactRecord(id="c1", emails="a@b.com", phones={"value": "555", "label": "work"})
        assert [e.value for e in record.emails] == ["a@b.com"]
        assert [(p.value, p.label) for p in record.phones] == [("555", "work")]

        record = ContactRecord.from_dict({"id": "c2", "emails": "a@b.com", "urls": "https://x.com"})
        assert [e.value for e in record.emails] == ["a@b.com"]
        assert [u.value for u in record.urls] == ["https://x.com"]


class TestErrorHandler:
    """Error wrapping, context and statistics."""

    def test_context_is_attached(self):
        handler = ErrorHandler()

        with handler.error_context(operation="delete", record_ids=["a", "b"]):
            error = handler.handle_error(ConnectionError("reset"), reraise=False)

        assert isinstance(error, PersistenceError)
        assert error.operation == "delete"
        assert error.record_ids == ["a", "b"]
        assert error.context.operation == "delete"
        assert handler.get_current_context() is None

    def test_nested_contexts(self):
        handler = ErrorHandler()
        with handler.error_context(operation="merge_all"):
            with handler.error_context(operation="create"):
                assert handler.get_current_context().operation == "create"
            assert handler.get_current_context().operation == "merge_all"

    def test_value_error_wrapped_as_validation(self):
        error = ErrorHandler().handle_error(ValueError("bad phone"), reraise=False)
        assert isinstance(error, ValidationError)
        assert isinstance(error.cause, ValueError)

    def test_unknown_error_wrapped(self):
        error = ErrorHandler().handle_error(KeyError("x"), reraise=False)
        assert type(error) is ContactScrubError
        assert error.category == ErrorCategory.UNKNOWN

    def test_reraise_chains_original(self):
        handler = ErrorHandler()
        original = TimeoutError("slow")

        with pytest.raises(PersistenceError) as exc_info:
            handler.handle_error(original, operation="create")

        assert exc_info.value.__cause__ is original

    def test_reraise_own_errors_unchanged(self):
        error = MergeError("empty group")
        with pytest.raises(MergeError) as exc_info:
            ErrorHandler().handle_error(error)
        assert exc_info.value is error

    def test_statistics(self):
        handler = ErrorHandler()
        handler.handle_error(ConnectionError("a"), operation="create", reraise=False)
        handler.handle_error(ValueError("b"), reraise=False)

        stats = handler.get_error_stats()

        assert stats["total_errors"] == 2
        assert stats["error_counts"] == {"PersistenceError": 1, "ValidationError": 1}
        assert stats["severity_distribution"]["high"] == 1
        assert stats["retryable_errors"] == 1

    @pytest.mark.parametrize(
        "error, expected",
        [
            (PersistenceError("x", operation="create"), "Could not save the merged contact: x"),
            (
                PersistenceError("x", operation="delete", record_ids=["a", "b"]),
                "Merged contact saved, but originals could not be removed (a, b): x",
            ),
            (ValidationError("x", field="id"), "Invalid value for field 'id': x"),
            (ConfigurationError("x", setting="matching.max_workers"),
             "Invalid configuration for 'matching.max_workers': x"),
            (MergeError("x"), "Merge failed: x"),
            (ContactScrubError("x"), "An error occurred: x"),
        ],
    )
    def test_user_friendly_messages(self, error, expected):
        assert ErrorHandler().create_user_friendly_message(error) == expected

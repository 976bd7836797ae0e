"""Tests for the structured error hierarchy."""

import pytest

from request_queue.core.errors import (
    ClientFailure,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    MaxRetriesExceeded,
    OutcomeAlreadySettled,
    RequestQueueError,
    StrategyError,
    TransientFailure,
    UnknownError,
    UnsupportedMethod,
)


class TestErrorContext:
    def test_to_dict_skips_unset(self):
        ctx = ErrorContext(url="/items", http_status=404)
        assert ctx.to_dict() == {"url": "/items", "http_status": 404}

    def test_metadata_merged(self):
        ctx = ErrorContext(task_id=3, metadata={"body": "nope"})
        assert ctx.to_dict() == {"task_id": 3, "body": "nope"}


class TestRequestQueueError:
    def test_defaults(self):
        error = RequestQueueError("boom")
        assert error.category is ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None
        assert str(error) == "boom"

    def test_with_context_known_and_extra_keys(self):
        error = RequestQueueError("boom").with_context(url="/x", method="GET", region="eu")
        assert error.context.url == "/x"
        assert error.context.method == "GET"
        assert error.context.metadata == {"region": "eu"}

    def test_cause_chained(self):
        cause = OSError("reset")
        error = RequestQueueError("boom", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "reset"

    def test_to_dict(self):
        error = ClientFailure("refused", status_code=403).with_context(url="/admin")
        assert error.to_dict() == {
            "error_type": "ClientFailure",
            "message": "refused",
            "category": "CLIENT",
            "retryable": False,
            "context": {"url": "/admin", "http_status": 403},
        }

    def test_repr(self):
        assert repr(ConfigError("bad")) == "ConfigError('bad', category=CONFIG)"


class TestClassification:
    def test_transient_is_retryable_by_default(self):
        assert TransientFailure("503").retryable is True
        for error in (
            ClientFailure("404"),
            UnsupportedMethod("PATCH"),
            MaxRetriesExceeded(3),
            UnknownError(),
            StrategyError("bad vector"),
            OutcomeAlreadySettled("twice"),
            ConfigError("bad"),
        ):
            assert error.retryable is False, type(error).__name__

    def test_retryable_flag_overrides_default(self):
        assert RequestQueueError("flaky", retryable=True).retryable is True
        assert TransientFailure("503", retryable=False).retryable is False

    @pytest.mark.parametrize(
        "error,category",
        [
            (TransientFailure("503"), ErrorCategory.NETWORK),
            (ClientFailure("404"), ErrorCategory.CLIENT),
            (UnsupportedMethod("PATCH"), ErrorCategory.CLIENT),
            (MaxRetriesExceeded(3), ErrorCategory.RETRY),
            (UnknownError(), ErrorCategory.UNKNOWN),
            (StrategyError("bad vector"), ErrorCategory.INTERNAL),
            (ConfigError("bad"), ErrorCategory.CONFIG),
        ],
    )
    def test_categories(self, error, category):
        assert error.category is category

    def test_status_codes(self):
        assert TransientFailure("503", status_code=503).status_code == 503
        assert ClientFailure("404", status_code=404).status_code == 404
        assert TransientFailure("reset").status_code is None

    @pytest.mark.parametrize(
        "error,message",
        [
            (UnsupportedMethod("PATCH"), "Unknown request method: PATCH"),
            (MaxRetriesExceeded(7), "Max retries reached after 7 attempts"),
            (UnknownError(), "Unknown error"),
        ],
    )
    def test_messages(self, error, message):
        assert str(error) == message

    def test_attributes(self):
        assert UnsupportedMethod("PATCH").context.method == "PATCH"
        assert MaxRetriesExceeded(7).attempts == 7
        assert MaxRetriesExceeded(7).category is ErrorCategory.RETRY

    def test_all_subclass_base(self):
        for cls in (TransientFailure, ClientFailure, UnsupportedMethod, MaxRetriesExceeded,
                    UnknownError, StrategyError, OutcomeAlreadySettled, ConfigError):
            assert issubclass(cls, RequestQueueError)

"""Unit tests for infrastructure.logging.context module.

Tests cover:
- bind_request_context() context manager
- get_correlation_id()
- clear_request_context()
- Context isolation and cleanup
"""

import uuid

import pytest
import structlog

from infrastructure.logging.context import (
    bind_request_context,
    clear_request_context,
    get_correlation_id,
)


@pytest.mark.unit
class TestBindRequestContext:
    """Test suite for bind_request_context context manager."""

    def test_auto_generates_correlation_id(self):
        with bind_request_context(user_id="resident-1"):
            uuid.UUID(get_correlation_id())

    def test_uses_provided_correlation_id(self):
        with bind_request_context(correlation_id="req-123"):
            assert get_correlation_id() == "req-123"

    def test_binds_request_fields(self):
        with bind_request_context(
            user_id="resident-1",
            request_path="/api/v1/notifications",
            request_method="GET",
        ):
            ctx = structlog.contextvars.get_contextvars()
            assert ctx["user_id"] == "resident-1"
            assert ctx["request_path"] == "/api/v1/notifications"
            assert ctx["request_method"] == "GET"

    def test_binds_extra_context(self):
        with bind_request_context(job="notification_sweep"):
            assert structlog.contextvars.get_contextvars()["job"] == "notification_sweep"

    def test_skips_none_values(self):
        with bind_request_context(user_id=None, request_path=None):
            ctx = structlog.contextvars.get_contextvars()
            assert "user_id" not in ctx
            assert "request_path" not in ctx

    def test_clears_after_exit(self):
        with bind_request_context(correlation_id="req-1", user_id="resident-1"):
            pass

        assert get_correlation_id() is None
        assert "user_id" not in structlog.contextvars.get_contextvars()

    def test_clears_after_exception(self):
        with pytest.raises(ValueError):
            with bind_request_context(correlation_id="req-1"):
                raise ValueError("boom")

        assert get_correlation_id() is None

    def test_keeps_outer_context(self):
        structlog.contextvars.bind_contextvars(service="hoa-notify")

        with bind_request_context(correlation_id="req-1"):
            assert structlog.contextvars.get_contextvars()["service"] == "hoa-notify"

        assert structlog.contextvars.get_contextvars() == {"service": "hoa-notify"}


@pytest.mark.unit
class TestCorrelationHelpers:
    def test_get_correlation_id_none_when_unset(self):
        assert get_correlation_id() is None

    def test_clear_request_context(self):
        structlog.contextvars.bind_contextvars(correlation_id="req-1", user_id="u")

        clear_request_context()
        clear_request_context()

        assert structlog.contextvars.get_contextvars() == {}

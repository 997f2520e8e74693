"""Tests for the logging context helpers."""

import structlog

from datagate.core.logging import LoggingContext, bind_correlation_id, clear_context


def test_logging_context_binds_and_unbinds():
    bind_correlation_id("abc123")
    try:
        with LoggingContext(user_id="u1", resource_type="Posts"):
            assert structlog.contextvars.get_contextvars() == {
                "correlation_id": "abc123",
                "user_id": "u1",
                "resource_type": "Posts",
            }

        assert structlog.contextvars.get_contextvars() == {"correlation_id": "abc123"}
    finally:
        clear_context()

    assert structlog.contextvars.get_contextvars() == {}

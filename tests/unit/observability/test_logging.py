"""Unit tests for observability logging."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Iterator

import pytest
import structlog

from mp_eventstore.kernel.ddd import TenantContext
from mp_eventstore.observability.correlation import CorrelationContext, RequestContext
from mp_eventstore.observability.logging import ContextProcessor, JsonLoggerFactory, get_logger


@pytest.fixture
def json_logging() -> Iterator[io.StringIO]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    out = io.StringIO()
    JsonLoggerFactory.configure(logging.DEBUG, stream=out)
    yield out
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


# ---------------------------------------------------------------------------
# ContextProcessor
# ---------------------------------------------------------------------------


class TestContextProcessor:
    def setup_method(self) -> None:
        CorrelationContext.clear()
        TenantContext.clear()

    teardown_method = setup_method

    def test_no_context_leaves_event_untouched(self) -> None:
        assert ContextProcessor()(None, "info", {"event": "x"}) == {"event": "x"}

    def test_injects_request_context(self) -> None:
        CorrelationContext.set(RequestContext(correlation_id="c-1", tenant_id="acme", user_id="u-1"))
        out = ContextProcessor()(None, "info", {"event": "x"})
        assert out == {"event": "x", "correlation_id": "c-1", "user_id": "u-1", "tenant_id": "acme"}

    def test_tenant_context_wins_over_request_tenant(self) -> None:
        CorrelationContext.set(RequestContext(correlation_id="c-1", tenant_id="acme"))
        with TenantContext.using("globex"):
            out = ContextProcessor()(None, "info", {"event": "x"})
        assert out["tenant_id"] == "globex"

    def test_explicit_values_win(self) -> None:
        with TenantContext.using("acme"):
            out = ContextProcessor()(None, "info", {"event": "x", "tenant_id": "other"})
        assert out["tenant_id"] == "other"


# ---------------------------------------------------------------------------
# JsonLoggerFactory / get_logger
# ---------------------------------------------------------------------------


class TestJsonLogging:
    def test_emits_json_with_context(self, json_logging: io.StringIO) -> None:
        with TenantContext.using("acme"):
            get_logger("mp_eventstore.test", component="store").info("event_store.appended", count=2)
        line = json_logging.getvalue().strip().splitlines()[-1]
        record = json.loads(line)
        assert record["event"] == "event_store.appended"
        assert record["count"] == 2
        assert record["component"] == "store"
        assert record["tenant_id"] == "acme"
        assert record["level"] == "info"
        assert record["logger"] == "mp_eventstore.test"
        assert "timestamp" in record

    def test_level_filters(self) -> None:
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        try:
            out = io.StringIO()
            JsonLoggerFactory.configure(logging.WARNING, stream=out)
            get_logger("mp_eventstore.quiet").debug("hidden")
            get_logger("mp_eventstore.quiet").warning("shown")
            assert [json.loads(line)["event"] for line in out.getvalue().splitlines()] == ["shown"]
        finally:
            structlog.reset_defaults()
            root.handlers[:] = handlers
            root.setLevel(level)

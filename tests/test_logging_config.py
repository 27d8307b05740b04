"""Tests for tradejournal.logging_config: structured logging and request context."""

import asyncio
import json
import logging
import sys

import pytest

from tradejournal.logging_config import bind_calendar, bind_user
from tradejournal.logging_config.config import LogFormat, LoggingConfig, LogLevel
from tradejournal.logging_config.context import (
    RequestContext,
    generate_request_id,
    get_context_dict,
    get_request_id,
    get_user_id,
)
from tradejournal.logging_config.middleware import (
    RequestTracingMiddleware,
    calendar_id_from_path,
    share_id_from_path,
)
from tradejournal.logging_config.performance import PerformanceTimer, log_performance
from tradejournal.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)
from tradejournal.settings import Settings


def _record(msg="test", level=logging.INFO, exc_info=None):
    return logging.LogRecord(
        name="tradejournal.test", level=level, pathname="test.py",
        lineno=7, msg=msg, args=(), exc_info=exc_info,
    )


class TestLoggingConfig:
    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.service_name == "tradejournal"
        assert config.exclude_paths == ["/health"]
        assert "sqlalchemy.engine" in config.quiet_loggers

    def test_from_settings(self):
        config = LoggingConfig.from_settings(Settings(log_level="debug", log_format="CONSOLE"))
        assert config.level == LogLevel.DEBUG
        assert config.format == LogFormat.CONSOLE

    def test_unknown_names_fall_back(self):
        config = LoggingConfig.from_settings(Settings(log_level="chatty", log_format="xml"))
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON


class TestRequestContext:
    def test_generated_ids_are_unique(self):
        assert generate_request_id() != generate_request_id()

    def test_sets_and_resets(self):
        with RequestContext(request_id="req-1", user_id="user-1"):
            assert get_request_id() == "req-1"
            assert get_user_id() == "user-1"
        assert get_request_id() == ""

    def test_correlation_defaults_to_request_id(self):
        ctx = RequestContext(request_id="req-1")
        assert ctx.correlation_id == "req-1"

    def test_bind_calendar(self):
        with RequestContext(request_id="req-1"):
            bind_calendar("cal-1")
            bind_user("user-9")
            ctx = get_context_dict()
            assert ctx["calendar_id"] == "cal-1"
            assert ctx["user_id"] == "user-9"
        assert "calendar_id" not in get_context_dict()


class TestStructuredFormatter:
    def test_json_line(self):
        parsed = json.loads(StructuredFormatter().format(_record("hello")))
        assert parsed["message"] == "hello"
        assert parsed["level"] == "INFO"
        assert parsed["service"] == "tradejournal"
        assert parsed["line"] == 7

    def test_without_caller(self):
        parsed = json.loads(StructuredFormatter(include_caller=False).format(_record()))
        assert "line" not in parsed

    def test_includes_context_and_extras(self):
        record = _record()
        record.trade_count = 12
        with RequestContext(request_id="ctx-1"):
            parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["request_id"] == "ctx-1"
        assert parsed["trade_count"] == 12

    def test_exception(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            record = _record(level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"


class TestConsoleFormatter:
    def test_readable_line(self):
        line = ConsoleFormatter().format(_record("imported"))
        assert "imported" in line
        assert "INFO" in line
        assert "\033[32m" in line


class TestConfigureLogging:
    def test_json_handler(self):
        configure_logging(LoggingConfig(level=LogLevel.DEBUG))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("TJ_LOG_FORMAT", "console")
        monkeypatch.setenv("TJ_LOG_LEVEL", "warning")
        configure_logging()
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert root.level == logging.WARNING

    def test_get_logger(self):
        assert get_logger("tradejournal.x").name == "tradejournal.x"


class TestPerformanceLogging:
    def test_decorator_returns_value(self):
        @log_performance(threshold_ms=10_000)
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_decorator_reraises(self, caplog):
        @log_performance()
        def boom():
            raise RuntimeError("nope")

        with caplog.at_level(logging.ERROR), pytest.raises(RuntimeError):
            boom()
        assert "boom failed" in caplog.text

    def test_slow_operation_warns(self, caplog):
        @log_performance(threshold_ms=0)
        def quick():
            return 1

        with caplog.at_level(logging.WARNING):
            quick()
        assert "Slow operation" in caplog.text

    def test_timer(self):
        with PerformanceTimer("import_trades") as timer:
            sum(range(100))
        assert timer.duration_ms >= 0
        assert timer.threshold_ms == 1000.0


class TestMiddleware:
    def _run(self, path, headers=(), status=200, config=None):
        seen = {}
        sent = []

        async def app(scope, receive, send):
            seen.update(get_context_dict())
            await send({"type": "http.response.start", "status": status, "headers": []})
            await send({"type": "http.response.body", "body": b""})

        async def receive():
            return {"type": "http.request"}

        async def send(message):
            sent.append(message)

        scope = {"type": "http", "method": "GET", "path": path, "headers": list(headers)}
        asyncio.run(RequestTracingMiddleware(app, config=config)(scope, receive, send))
        return seen, sent

    def test_path_helpers(self):
        assert calendar_id_from_path("/api/v1/calendars/cal-1/trades/t-1") == "cal-1"
        assert calendar_id_from_path("/api/v1/calendars/cal-1") == "cal-1"
        assert calendar_id_from_path("/api/v1/calendars/trash") == ""
        assert calendar_id_from_path("/api/v1/calendars") == ""
        assert share_id_from_path("/api/v1/shared/share_c_t") == "share_c_t"
        assert share_id_from_path("/api/v1/shared-calendar/calendar_share_c") == "calendar_share_c"
        assert share_id_from_path("/api/v1/shares/trades/share_c_t") == ""

    def test_binds_user_and_calendar(self):
        seen, _ = self._run(
            "/api/v1/calendars/cal-7/stats",
            headers=[(b"x-user-id", b" user-1 "), (b"x-request-id", b"req-9")],
        )
        assert seen["calendar_id"] == "cal-7"
        assert seen["user_id"] == "user-1"
        assert seen["request_id"] == "req-9"

    def test_echoes_request_id(self):
        _, sent = self._run("/api/v1/calendars", headers=[(b"x-request-id", b"req-1")])
        assert (b"x-request-id", b"req-1") in sent[0]["headers"]
        assert (b"x-correlation-id", b"req-1") in sent[0]["headers"]

    def test_keeps_caller_correlation_id(self):
        seen, sent = self._run("/api/v1/calendars", headers=[(b"x-correlation-id", b"corr-1")])
        assert seen["correlation_id"] == "corr-1"
        assert (b"x-correlation-id", b"corr-1") in sent[0]["headers"]

    def test_completion_levels(self, caplog):
        with caplog.at_level(logging.INFO, logger="tradejournal.logging_config.middleware"):
            self._run("/api/v1/calendars", status=200)
            self._run("/api/v1/calendars/x", status=404)
            self._run("/api/v1/calendars/x", status=500)
        assert [r.levelno for r in caplog.records] == [logging.INFO, logging.WARNING, logging.ERROR]
        assert caplog.records[1].status_code == 404

    def test_slow_request_warns(self, caplog):
        with caplog.at_level(logging.INFO, logger="tradejournal.logging_config.middleware"):
            self._run("/api/v1/calendars/x/export", config=LoggingConfig(slow_request_ms=0))
        assert caplog.records[0].levelno == logging.WARNING
        assert caplog.records[0].getMessage() == "Slow request completed"

    def test_share_views_log_share_id(self, caplog):
        with caplog.at_level(logging.INFO, logger="tradejournal.logging_config.middleware"):
            self._run("/api/v1/shared/share_c_t")
        assert caplog.records[0].share_id == "share_c_t"

    def test_excluded_paths_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="tradejournal.logging_config.middleware"):
            self._run("/health")
        assert caplog.records == []

"""Unit tests for gatehouse.core.logging."""

from __future__ import annotations

import io
import json
import logging

import structlog

from gatehouse.core.logging import HANDLER_NAME, QUIET_LOGGERS, configure_logging


def _ours(root: logging.Logger) -> list[logging.Handler]:
    return [h for h in root.handlers if h.get_name() == HANDLER_NAME]


def _lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


class TestConfigureLogging:
    def setup_method(self) -> None:
        root = logging.getLogger()
        for handler in _ours(root):
            root.removeHandler(handler)
        structlog.reset_defaults()

    teardown_method = setup_method

    def test_reconfigure_replaces_handler(self) -> None:
        first, second = io.StringIO(), io.StringIO()
        configure_logging(level="DEBUG", json_output=True, stream=first)
        configure_logging(level="DEBUG", json_output=True, stream=second)

        assert len(_ours(logging.getLogger())) == 1
        logging.getLogger("gatehouse.test.reconfigure").warning("after")
        assert first.getvalue() == ""
        assert _lines(second)[0]["event"] == "after"

    def test_sets_root_level(self) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING
        configure_logging(level="DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_falls_back_to_info(self) -> None:
        configure_logging(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_quiets_http_and_asyncio_loggers(self) -> None:
        stream = io.StringIO()
        configure_logging(level="DEBUG", json_output=True, stream=stream)
        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
        logging.getLogger("httpx").info("HTTP Request: GET http://svc.local/health")
        assert stream.getvalue() == ""

    def test_json_lines_carry_bound_context(self) -> None:
        stream = io.StringIO()
        configure_logging(level="DEBUG", json_output=True, stream=stream)

        log = structlog.get_logger("gatehouse.test.json").bind(execution_id="exec-1a2b")
        log.bind(validator_id="security").info("validator_completed", score=95)

        [record] = _lines(stream)
        assert record["event"] == "validator_completed"
        assert record["execution_id"] == "exec-1a2b"
        assert record["validator_id"] == "security"
        assert record["score"] == 95
        assert record["level"] == "info"
        assert record["logger"] == "gatehouse.test.json"
        assert "timestamp" in record

    def test_stdlib_records_share_the_pipeline(self) -> None:
        stream = io.StringIO()
        configure_logging(level="DEBUG", json_output=True, stream=stream)

        logging.getLogger("gatehouse.test.stdlib").warning("pool %s exhausted", "smtp")

        [record] = _lines(stream)
        assert record["event"] == "pool smtp exhausted"
        assert record["level"] == "warning"
        assert "timestamp" in record

    def test_console_output(self) -> None:
        stream = io.StringIO()
        configure_logging(level="INFO", stream=stream)

        structlog.get_logger("gatehouse.test.console").info(
            "monitoring_tick_completed", config_id="nightly"
        )

        text = stream.getvalue()
        assert "monitoring_tick_completed" in text
        assert "nightly" in text
        assert "\x1b[" not in text  # no colour codes off a terminal


class TestEngineLoggers:
    def test_engines_log_through_structlog(self) -> None:
        import gatehouse.core.monitoring.alerts as alerts_mod
        import gatehouse.core.monitoring.service as service_mod
        import gatehouse.core.validation.runner as runner_mod

        for mod in (runner_mod, service_mod, alerts_mod):
            assert hasattr(mod.logger, "bind")

"""Tests for structlog configuration and run-id injection.

Output is read back from the captured stdout stream that configure_structlog
binds at call time.
"""

import json
import logging

import pytest
import structlog

from sfpublish.core.logging import (
    _inject_run_id,
    bind_run_id,
    configure_structlog,
    get_run_id,
    reset_run_id,
)


def _lines(capsys) -> list[str]:
    return [line for line in capsys.readouterr().out.splitlines() if line.strip()]


@pytest.mark.usefixtures("restore_logging")
class TestConfigureStructlog:
    def test_json_output_renders_parseable_lines(self, capsys) -> None:
        configure_structlog(json_output=True)

        structlog.get_logger("sfpublish.test").info("Upload completed!", resources=["styles"])

        (line,) = _lines(capsys)
        record = json.loads(line)
        assert record["event"] == "Upload completed!"
        assert record["level"] == "info"
        assert record["resources"] == ["styles"]
        assert "timestamp" in record

    def test_json_line_carries_run_id(self, capsys) -> None:
        configure_structlog(json_output=True)
        token = bind_run_id("run-42")
        try:
            structlog.get_logger("sfpublish.test").info("Logging in")
        finally:
            reset_run_id(token)

        (line,) = _lines(capsys)
        assert json.loads(line)["run_id"] == "run-42"

    def test_console_output_is_not_json(self, capsys) -> None:
        configure_structlog(json_output=False)

        structlog.get_logger("sfpublish.test").info("console line")

        (line,) = _lines(capsys)
        assert "console line" in line
        assert not line.lstrip().startswith("{")

    def test_info_level_filters_debug(self, capsys) -> None:
        configure_structlog(debug=False, json_output=True)
        logger = structlog.get_logger("sfpublish.test")

        logger.debug("hidden")
        logger.info("shown")

        events = [json.loads(line)["event"] for line in _lines(capsys)]
        assert events == ["shown"]
        assert logging.getLogger().level == logging.INFO

    def test_debug_level_keeps_debug(self, capsys) -> None:
        configure_structlog(debug=True, json_output=True)

        structlog.get_logger("sfpublish.test").debug("visible")

        (line,) = _lines(capsys)
        assert json.loads(line)["event"] == "visible"
        assert logging.getLogger().level == logging.DEBUG

    def test_stdlib_loggers_share_stdout(self, capsys) -> None:
        configure_structlog(debug=True)

        logging.getLogger("sfpublish.packaging.bundler").debug("Adding css/a.css as a.css")

        assert "Adding css/a.css as a.css" in capsys.readouterr().out

    def test_last_call_wins_for_stdlib_level(self) -> None:
        configure_structlog(debug=False)
        configure_structlog(debug=True)

        assert logging.getLogger().level == logging.DEBUG


class TestRunId:
    def test_default_is_empty(self) -> None:
        assert get_run_id() == ""

    def test_bind_and_reset(self) -> None:
        token = bind_run_id("abc123")
        try:
            assert get_run_id() == "abc123"
        finally:
            reset_run_id(token)
        assert get_run_id() == ""

    def test_processor_injects_run_id(self) -> None:
        token = bind_run_id("run-7")
        try:
            event = _inject_run_id(None, "info", {"event": "hello"})
        finally:
            reset_run_id(token)
        assert event["run_id"] == "run-7"

    def test_processor_skips_empty_run_id(self) -> None:
        event = _inject_run_id(None, "info", {"event": "hello"})
        assert "run_id" not in event

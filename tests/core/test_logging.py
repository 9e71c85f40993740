# tests/core/test_logging.py
"""Tests for structured logging configuration."""

import json
import logging

import pytest

from safemode.contracts.blocklist import Action, BlockData
from tests.conftest import CID_V1, FrozenClock


def _json_lines(out: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in out.strip().splitlines() if line.startswith("{")]


class TestLoggingConfig:
    def test_get_logger_returns_logger(self) -> None:
        from safemode.core.logging import get_logger

        logger = get_logger("test")
        assert hasattr(logger, "info")
        assert hasattr(logger, "bind")

    def test_logger_outputs_structured(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.logging import configure_logging, get_logger

        configure_logging(json_output=True)
        get_logger("test").info("test message", key="value")

        data = _json_lines(capsys.readouterr().out)[-1]
        assert data["event"] == "test message"
        assert data["key"] == "value"
        assert data["level"] == "info"

    def test_logger_console_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.logging import configure_logging, get_logger

        configure_logging(json_output=False)
        get_logger("test").info("test message", key="value")

        captured = capsys.readouterr()
        assert "test message" in captured.out
        assert not captured.out.strip().startswith("{")

    def test_stdlib_logging_shares_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.logging import configure_logging

        configure_logging(json_output=True)
        logging.getLogger("some.library").warning("from stdlib")

        data = _json_lines(capsys.readouterr().out)[-1]
        assert data["event"] == "from stdlib"

    def test_noisy_loggers_silenced(self) -> None:
        from safemode.core.logging import configure_logging

        configure_logging(level="DEBUG")

        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_level_filters(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.logging import configure_logging, get_logger

        configure_logging(json_output=True, level="WARNING")
        get_logger("test").info("hidden")

        assert "hidden" not in capsys.readouterr().out

    def test_unknown_level_rejected(self) -> None:
        from safemode.core.logging import configure_logging

        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging(level="LOUD")

    def test_driver_loggers_follow_stricter_root(self) -> None:
        from safemode.core.logging import configure_logging

        configure_logging(level="ERROR")

        assert logging.getLogger("psycopg2").level == logging.ERROR


class TestConfigureFromSettings:
    def test_applies_level_and_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.config import LoggingSettings
        from safemode.core.logging import configure_from_settings, get_logger

        configure_from_settings(LoggingSettings(level="warning", json_output=True))
        log = get_logger("test")
        log.info("hidden")
        log.warning("shown", key="value")

        lines = _json_lines(capsys.readouterr().out)
        assert [line["event"] for line in lines] == ["shown"]
        assert lines[0]["level"] == "warning"
        assert "_record" not in lines[0]
        assert logging.getLogger().level == logging.WARNING

    def test_defaults_to_console_at_info(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.config import LoggingSettings
        from safemode.core.logging import configure_from_settings, get_logger

        configure_from_settings(LoggingSettings())
        get_logger("test").info("visible")

        out = capsys.readouterr().out
        assert "visible" in out
        assert not out.strip().startswith("{")
        assert logging.getLogger().level == logging.INFO


class TestBlocklistLogEvents:
    """Backends emit their trace through the configured pipeline."""

    def test_add_log_emits_action_event(self, capsys: pytest.CaptureFixture[str]) -> None:
        from safemode.core.blocklist.datastore import DatastoreBlocklist
        from safemode.core.datastore import MemoryDatastore
        from safemode.core.logging import configure_logging

        configure_logging(json_output=True)
        bl = DatastoreBlocklist(MemoryDatastore(), clock=FrozenClock())

        bl.add_log(Action(typ="block", ids=(CID_V1,), reason="DMCA", user="alice@example.com"))

        events = [e for e in _json_lines(capsys.readouterr().out) if e["event"] == "blocklist_action_logged"]
        assert len(events) == 1
        assert events[0]["typ"] == "block"
        assert events[0]["ids"] == [CID_V1]
        assert events[0]["action"] == f"2024-05-01T12:00:00.000000Z\t block by alice@example.com: [{CID_V1}]: DMCA"

    def test_injected_logger_receives_events(self) -> None:
        from structlog.testing import capture_logs

        from safemode.core.blocklist.datastore import DatastoreBlocklist
        from safemode.core.datastore import MemoryDatastore
        from safemode.core.logging import get_logger

        bl = DatastoreBlocklist(MemoryDatastore(), logger=get_logger("compliance"))

        with capture_logs() as logs:
            bl.block(CID_V1, BlockData(user="alice@example.com"))
            bl.block(CID_V1, BlockData(user="bob@example.com"))

        assert [entry["event"] for entry in logs] == ["content_blocked", "content_already_blocked"]

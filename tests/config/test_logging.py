"""Tests for structlog configuration."""

from __future__ import annotations

import io
import json
import logging
from collections.abc import Generator

import pytest
import structlog
from pydantic import BaseModel

from caco3.config.layers import ConfigLayer
from caco3.config.loader import load_config
from caco3.config.logging import LOGGER_NAMESPACE, configure_logging


class LevelSchema(BaseModel):
    level: int = 0


@pytest.fixture(autouse=True)
def _restore_logging() -> Generator[None]:
    """Restore root logger state after each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    caco3 = logging.getLogger(LOGGER_NAMESPACE)
    caco3_level = caco3.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    caco3.setLevel(caco3_level)
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_verbose_enables_debug(self) -> None:
        configure_logging(verbose=True, log_json=False)
        assert logging.getLogger(LOGGER_NAMESPACE).level == logging.DEBUG
        assert logging.getLogger().level == logging.WARNING

    def test_non_verbose_sets_warning(self) -> None:
        configure_logging(verbose=False, log_json=False)
        assert logging.getLogger(LOGGER_NAMESPACE).level == logging.WARNING

    def test_human_mode_output(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=True, log_json=False, stream=out)
        structlog.get_logger("caco3.test").warning("hello world", key="val")
        rendered = out.getvalue()
        assert "hello world" in rendered
        assert "key" in rendered

    def test_json_mode_output(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=out)
        structlog.get_logger("caco3.test").warning("json test", answer=42)
        parsed = json.loads(out.getvalue().strip())
        assert parsed["event"] == "json test"
        assert parsed["answer"] == 42
        assert parsed["level"] == "warning"
        assert parsed["logger"] == "caco3.test"
        assert "timestamp" in parsed

    def test_defaults_to_stderr(self, capfd: pytest.CaptureFixture[str]) -> None:
        configure_logging(verbose=True, log_json=True)
        structlog.get_logger("caco3.test").warning("to stderr")
        captured = capfd.readouterr()
        assert json.loads(captured.err.strip())["event"] == "to stderr"

    def test_stdlib_loader_logger_gets_structured_fields(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=out)

        load_config([ConfigLayer.from_mapping("defaults", {})], LevelSchema)

        lines = [json.loads(line) for line in out.getvalue().splitlines()]
        loaded = [line for line in lines if line["logger"] == "caco3.config.loader"]
        assert loaded
        assert loaded[-1]["level"] == "debug"
        assert loaded[-1]["event"].startswith("Loaded LevelSchema")

    def test_stdlib_and_structlog_records_share_one_shape(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=out)

        logging.getLogger("caco3.config.layers").warning("Parsed %s: %d key(s)", "defaults", 2)
        structlog.get_logger("caco3.app").warning("parsed", layer="defaults")

        stdlib_line, structlog_line = (json.loads(line) for line in out.getvalue().splitlines())
        assert stdlib_line["event"] == "Parsed defaults: 2 key(s)"
        assert set(stdlib_line) == {"event", "level", "logger", "timestamp"}
        assert set(structlog_line) == {"event", "level", "logger", "timestamp", "layer"}

    def test_quiet_suppresses_debug(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=False, log_json=True, stream=out)
        logging.getLogger("caco3.config.loader").debug("noise")
        assert out.getvalue() == ""

    def test_third_party_debug_is_suppressed(self) -> None:
        out = io.StringIO()
        configure_logging(verbose=True, log_json=True, stream=out)
        logging.getLogger("pydantic").debug("validator noise")
        logging.getLogger("urllib3").debug("connection noise")
        assert out.getvalue() == ""

    def test_idempotent_calls(self) -> None:
        """Multiple configure_logging calls don't stack handlers."""
        configure_logging(verbose=True, log_json=False)
        configure_logging(verbose=True, log_json=True)
        root = logging.getLogger()
        assert len(root.handlers) == 1

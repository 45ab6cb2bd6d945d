"""Tests for logging setup."""

import json
import logging
import os
import sys
from datetime import date

import pytest
import structlog

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.errors import ConfigurationError
from core.log_setup import configure_logging, log_file_path


@pytest.fixture
def restore_logging():
    """Undo global logging changes after the test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


class TestLogSetup:

    def test_log_file_name(self, tmp_path):
        today = date(2024, 5, 17)
        assert log_file_path(tmp_path, True, today).name == "DEMO-automation-2024-05-17.log"
        assert log_file_path(tmp_path, False, today).name == "automation-2024-05-17.log"

    def test_writes_json_lines_tagged_with_run_mode(self, tmp_path, restore_logging, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        path = configure_logging(demo_mode=True, logs_dir=tmp_path, level="INFO")

        structlog.get_logger("harness.test").info("setup_starting", parameter="BASE_URL")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = path.read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["event"] == "setup_starting"
        assert record["parameter"] == "BASE_URL"
        assert record["run_mode"] == "demo"
        assert record["level"] == "info"

    def test_reconfiguring_replaces_handlers(self, tmp_path, restore_logging):
        configure_logging(demo_mode=False, logs_dir=tmp_path)
        configure_logging(demo_mode=False, logs_dir=tmp_path)

        ours = [h for h in logging.getLogger().handlers if getattr(h, "_harness_handler", False)]
        assert len(ours) == 2

    def test_unknown_level_is_a_configuration_error(self, tmp_path, restore_logging, monkeypatch):
        """A bad LOG_LEVEL is rejected before any handler is installed."""
        monkeypatch.setenv("LOG_LEVEL", "verbose")
        handlers = list(logging.getLogger().handlers)

        with pytest.raises(ConfigurationError) as exc_info:
            configure_logging(demo_mode=True, logs_dir=tmp_path)

        assert exc_info.value.parameter == "LOG_LEVEL"
        assert logging.getLogger().handlers == handlers

    def test_lowercase_level_accepted(self, tmp_path, restore_logging):
        configure_logging(demo_mode=True, logs_dir=tmp_path, level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unopenable_log_file_is_a_configuration_error(self, tmp_path, restore_logging):
        """The log file cannot be created under a path that is not a directory."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(ConfigurationError) as exc_info:
            configure_logging(demo_mode=False, logs_dir=blocker, level="INFO")

        assert exc_info.value.parameter == "LOGS_FOLDER_PATH"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""Tests for logging configuration (app/logging_setup.py)."""

import logging
from datetime import date

import pytest
from rich.logging import RichHandler

from app.errors import LoggingSetupError
from app.logging_setup import close_logging, configure_logging, log_file_path


@pytest.fixture
def restore_root_level():
    root = logging.getLogger()
    level = root.level
    yield
    root.setLevel(level)


def test_log_file_name():
    path = log_file_path("/var/log/silk", date(2024, 3, 9))
    assert path.name == "audio_converter_2024-03-09.log"


class TestConfigureLogging:
    def test_writes_to_date_named_file(self, tmp_path, restore_root_level):
        handle = configure_logging(tmp_path / "logs", "INFO", color=False)
        try:
            logging.getLogger("app.example").info("hello from test")
        finally:
            close_logging(handle)

        text = handle.log_path.read_text(encoding="utf-8")
        assert handle.log_path.parent == tmp_path / "logs"
        assert "[INFO]" in text
        assert "hello from test" in text

    def test_level_filters_messages(self, tmp_path, restore_root_level):
        handle = configure_logging(tmp_path, "WARNING", color=False)
        try:
            logging.getLogger("app.example").info("quiet")
            logging.getLogger("app.example").warning("loud")
        finally:
            close_logging(handle)

        text = handle.log_path.read_text(encoding="utf-8")
        assert "quiet" not in text
        assert "loud" in text

    def test_color_uses_rich(self, tmp_path, restore_root_level):
        handle = configure_logging(tmp_path, "DEBUG", color=True)
        try:
            assert any(isinstance(h, RichHandler) for h in handle.handlers)
        finally:
            close_logging(handle)

    def test_close_detaches_handlers(self, tmp_path, restore_root_level):
        handle = configure_logging(tmp_path, "DEBUG", color=False)
        installed = list(handle.handlers)
        close_logging(handle)

        assert not any(h in logging.getLogger().handlers for h in installed)
        close_logging(None)

    def test_unknown_level(self, tmp_path):
        with pytest.raises(LoggingSetupError):
            configure_logging(tmp_path, "CHATTY")

    def test_unwritable_log_dir(self, tmp_path):
        blocker = tmp_path / "logs"
        blocker.write_text("not a directory")

        with pytest.raises(LoggingSetupError):
            configure_logging(blocker, "DEBUG", color=False)

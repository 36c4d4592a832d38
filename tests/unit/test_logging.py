from __future__ import annotations

import logging

import pytest

from moodsort.config import ConfigError, LoggingConfig
from moodsort.logging import ConsoleFormatter, configure_logging, log_duration


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    logging.captureWarnings(False)


def test_configure_logging_creates_log_files(tmp_path) -> None:
    log_dir = configure_logging(LoggingConfig(level="debug", debug_file=True), tmp_path)

    logging.getLogger("moodsort.test").info("hello from the test")

    assert log_dir == tmp_path / "logs"
    assert "hello from the test" in (log_dir / "moodsort.log").read_text(encoding="utf-8")
    assert (log_dir / "debug.log").exists()


def test_unknown_level_is_config_error(tmp_path) -> None:
    with pytest.raises(ConfigError):
        configure_logging(LoggingConfig(level="chatty"), tmp_path)


def test_log_duration_reports_phase(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("moodsort.test")

    with caplog.at_level(logging.INFO, logger="moodsort.test"):
        with log_duration(logger, "model selection"):
            pass

    messages = [record.getMessage() for record in caplog.records]
    assert messages[0] == "Starting model selection..."
    assert messages[1].startswith("Model selection took ")
    assert messages[1].endswith(" ms")


def test_console_formatter_without_colour() -> None:
    record = logging.LogRecord("moodsort", logging.WARNING, __file__, 1, "careful", None, None)

    assert ConsoleFormatter(use_color=False).format(record) == "! careful"

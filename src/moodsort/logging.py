"""Structured logging helpers for moodsort."""

from __future__ import annotations

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import ConfigError, LoggingConfig

FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
MAIN_LOG_NAME = "moodsort.log"
DEBUG_LOG_NAME = "debug.log"
# scikit-learn reports non-converged solvers through the warnings module.
WARNINGS_LOGGER = "py.warnings"


class ConsoleFormatter(logging.Formatter):
    """Formatter that prepends colourised level symbols."""

    SYMBOLS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[36m"),
        logging.INFO: ("I", "\x1b[32m"),
        logging.WARNING: ("!", "\x1b[33m"),
        logging.ERROR: ("X", "\x1b[31m"),
        logging.CRITICAL: ("X", "\x1b[35m"),
    }

    RESET = "\x1b[0m"

    def __init__(self, use_color: bool) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        symbol, color = self.SYMBOLS.get(record.levelno, ("?", "\x1b[37m"))
        base_message = super().format(record)
        if self.use_color:
            return f"{color}{symbol}{self.RESET} {base_message}"
        return f"{symbol} {base_message}"


def configure_logging(logging_config: LoggingConfig, root_dir: Path) -> Path:
    """Initialise logging handlers and return the log directory."""

    level = _level_from_string(logging_config.level)
    log_dir = (root_dir / "logs").expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = [
        _build_file_handler(log_dir / MAIN_LOG_NAME, level=logging.INFO),
        _build_console_handler(),
    ]
    if logging_config.debug_file:
        handlers.append(_build_file_handler(log_dir / DEBUG_LOG_NAME, level=logging.DEBUG))

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    # Solver warnings repeat once per fold; keep them out of the console.
    logging.getLogger(WARNINGS_LOGGER).setLevel(
        logging.DEBUG if level <= logging.DEBUG else logging.ERROR
    )
    return log_dir


@contextmanager
def log_duration(logger: logging.Logger, phase: str) -> Iterator[None]:
    """Log how long the wrapped block took, in milliseconds."""

    logger.info("Starting %s...", phase)
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.info("%s took %.0f ms", phase.capitalize(), elapsed_ms)


def _build_file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _build_console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(ConsoleFormatter(_stream_supports_color(handler)))
    return handler


def _stream_supports_color(handler: logging.Handler) -> bool:
    stream = getattr(handler, "stream", None)
    return bool(getattr(stream, "isatty", lambda: False)())


def _level_from_string(level: str) -> int:
    normalized = level.strip().upper()
    mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    try:
        return mapping[normalized]
    except KeyError as exc:
        raise ConfigError(f"Unknown log level: {level}") from exc


__all__ = ["configure_logging", "log_duration"]

"""Logging setup shared by the CLI and the daemon."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

_LOGGER_NAME = "starter"

_CLI_FORMAT = "[starter] %(levelname)s %(message)s"
_DAEMON_FORMAT = "%(asctime)s [starter] %(levelname)s %(threadName)s %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Server loggers that follow the starter handlers in daemon mode.
_DAEMON_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``starter`` hierarchy (``get_logger("registry")`` -> ``starter.registry``)."""
    full_name = f"{_LOGGER_NAME}.{name}" if name else _LOGGER_NAME
    return logging.getLogger(full_name)


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None, daemon: bool = False
) -> logging.Logger:
    """Attach console (and optional file) handlers to the ``starter`` logger.

    The CLI prints terse ``[starter] LEVEL message`` lines. Daemon mode adds
    timestamps and the worker thread name and sends uvicorn's own loggers
    through the same handlers.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logger = logging.getLogger(_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    # Calling twice in one process (tests, daemon restarts) must not duplicate output.
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers: List[logging.Handler] = []
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter(_DAEMON_FORMAT if daemon else _CLI_FORMAT))
    handlers.append(console)

    if log_file is not None:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(level)
        logger.addHandler(handler)

    if daemon:
        for name in _DAEMON_LOGGERS:
            server_logger = logging.getLogger(name)
            server_logger.handlers = list(handlers)
            server_logger.setLevel(level)
            server_logger.propagate = False

    return logger


__all__ = ["configure_logging", "get_logger"]

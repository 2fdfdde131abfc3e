"""Crash reports for failures that escape the typed error handling."""

from __future__ import annotations

import json
import os
import platform
import sys
import traceback
from datetime import UTC, datetime
from pathlib import Path
from typing import Mapping, Optional

from . import __version__
from .logging import get_logger

CHANNEL_ENV = "STARTER_CHANNEL"


def capture_exception(
    exc: BaseException,
    report_dir: Path,
    *,
    context: Optional[Mapping[str, object]] = None,
) -> Optional[Path]:
    """Write a JSON diagnostic report for ``exc`` and return its path.

    Reports are skipped on the ``dev`` channel. Failing to write a report is
    logged and never masks the original failure.
    """
    logger = get_logger("reporting")
    logger.debug("Unexpected failure", exc_info=(type(exc), exc, exc.__traceback__))
    if os.environ.get(CHANNEL_ENV, "").lower() == "dev":
        return None

    timestamp = datetime.now(UTC)
    report = {
        "version": __version__,
        "channel": os.environ.get(CHANNEL_ENV, "stable"),
        "platform": sys.platform,
        "architecture": platform.machine(),
        "python": platform.python_version(),
        "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
        "error": f"{type(exc).__name__}: {exc}",
        "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
        "context": {key: str(value) for key, value in (context or {}).items()},
    }
    output = Path(report_dir).expanduser() / f"crash-{timestamp.strftime('%Y%m%dT%H%M%S%f')}.json"
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(json.dumps(report, indent=2, sort_keys=True), encoding="utf-8")
    except OSError as write_error:
        logger.warning("Unable to write crash report to %s: %s", output, write_error)
        return None
    logger.error("Crash report written to %s", output)
    return output


__all__ = ["CHANNEL_ENV", "capture_exception"]

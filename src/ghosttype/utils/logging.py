"""Logging setup shared by the desktop app and the provider clients."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "resolve_level", "get_log_path"]

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_NAME = "ghosttype.log"

_DEFAULT_LOG_DIR = Path.home() / ".ghosttype" / "logs"
# Third-party loggers that chatter at DEBUG on every request.
_QUIET_LOGGERS: tuple[str, ...] = ("asyncio", "qasync", "httpx", "httpcore", "openai")
_LOG_PATH: Path | None = None


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 512_000,
    backup_count: int = 2,
    force: bool = False,
) -> Path:
    """Install a rotating log file (plus stderr when ``console``) on the root logger.

    Calling this twice is a no-op unless ``force`` is set, which lets the app
    bump the level after settings have been read.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    directory = Path(log_dir or os.environ.get("GHOSTTYPE_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    rotating = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    rotating.setFormatter(formatter)
    handlers: list[logging.Handler] = [rotating]
    if console:
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        handlers.append(stream)
    for handler in handlers:
        handler.setLevel(level)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)

    quiet_level = max(level, logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)

    _LOG_PATH = log_path
    return log_path


def resolve_level(debug: bool) -> int:
    """Map the debug flag (or ``GHOSTTYPE_LOG_LEVEL``) onto a logging level."""

    if debug:
        return logging.DEBUG
    named = os.environ.get("GHOSTTYPE_LOG_LEVEL", "").strip().upper()
    if named:
        value = logging.getLevelName(named)
        if isinstance(value, int):
            return value
    return logging.INFO


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _LOG_PATH

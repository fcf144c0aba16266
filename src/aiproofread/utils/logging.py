"""Logging setup shared by the CLI and the composer."""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path

__all__ = ["setup_logging", "get_log_path"]

LOG_FILE_NAME = "ai-proofread.log"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOG_DIR_ENV = "AI_PROOFREAD_LOG_DIR"
# Third-party loggers that are chatty at DEBUG (HTTP wire logs, loop internals).
_THIRD_PARTY_LOGGERS = ("asyncio", "qasync", "httpx", "httpcore", "openai")

_active_log_path: Path | None = None
_installed_handlers: list[logging.Handler] = []


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route the root logger to ``ai-proofread.log`` (rotated) and the console.

    Only the first call installs handlers; pass ``force=True`` to replace them.
    """

    global _active_log_path, _installed_handlers
    if _active_log_path is not None and not force:
        return _active_log_path

    directory = Path(log_dir or os.environ.get(_LOG_DIR_ENV) or default_log_dir()).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for stale in _installed_handlers:
        root.removeHandler(stale)
        stale.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(True)
    for name in _THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    _active_log_path = log_path
    _installed_handlers = handlers
    return log_path


def default_log_dir() -> Path:
    return Path.home() / ".ai-proofread" / "logs"


def get_log_path() -> Path | None:
    return _active_log_path

from __future__ import annotations

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from kiosk_media.config.models import FileLoggingSettings, LoggingSettings

LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _resolve_level(name: str) -> int:
    level = logging.getLevelNamesMapping().get(name.strip().upper())
    if level is None:
        raise ValueError(f"Invalid logging level: {name}")
    return level


def _daily_file_handler(settings: FileLoggingSettings) -> Optional[logging.Handler]:
    raw_path = settings.path.strip()
    if not raw_path:
        return None
    path = Path(raw_path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = TimedRotatingFileHandler(
            filename=str(path),
            when="midnight",
            backupCount=settings.rotation.backup_count,
            encoding="utf-8",
        )
    except OSError:
        # A read-only log directory must not stop the kiosk.
        logging.getLogger(__name__).error("logging.file_handler_failed path=%s", path, exc_info=True)
        return None
    handler.suffix = "%Y-%m-%d"
    return handler


def init_logging(settings: LoggingSettings) -> None:
    """
    Route all records to the console and, when `file.path` is set, to a file
    rotated at midnight. Replaces any handlers already on the root logger.
    """
    level = _resolve_level(settings.level)
    library_level = _resolve_level(settings.library_level)

    root = logging.getLogger()
    root.setLevel(level)
    for existing in list(root.handlers):
        root.removeHandler(existing)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    file_handler = _daily_file_handler(settings.file)
    if file_handler is not None:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in settings.quiet_loggers:
        logging.getLogger(name).setLevel(library_level)


__all__ = ["init_logging"]

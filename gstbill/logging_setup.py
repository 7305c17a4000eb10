from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from gstbill.config import Settings, load_settings


_LOG_FILE_NAME = "gstbill.log"
_MAX_LOG_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 5
_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Library loggers that are only useful while debugging a billing run.
_QUIET_LOGGERS = ("PIL", "reportlab")


def _tune_library_loggers(debug: bool) -> None:
    # SQL statements are logged in debug mode only.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO if debug else logging.WARNING)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(settings: Settings | None = None) -> Path:
    """Route gstbill logs to stdout and a rotating file; returns the log file path."""
    settings = settings or load_settings()
    log_level = logging.DEBUG if settings.debug else logging.INFO
    log_path = settings.log_dir / _LOG_FILE_NAME
    root_logger = logging.getLogger()
    _tune_library_loggers(settings.debug)

    if getattr(root_logger, "_gstbill_logging_configured", False):
        root_logger.setLevel(log_level)
        for handler in root_logger.handlers:
            handler.setLevel(log_level)
        return log_path

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    formatter = logging.Formatter(_FORMAT)

    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        RotatingFileHandler(log_path, maxBytes=_MAX_LOG_BYTES, backupCount=_BACKUP_COUNT, encoding="utf-8"),
    ]
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)
    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    root_logger._gstbill_logging_configured = True
    logging.getLogger(__name__).debug("logging.ready path=%s level=%s", log_path, logging.getLevelName(log_level))
    return log_path

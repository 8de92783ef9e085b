"""Logging setup for the package.

Library code only ever logs through ``logging.getLogger(__name__)``; the
package logger carries a ``NullHandler`` so an embedding host sees nothing
unless it opts in. File logging is switched on with ``MCPING_LOG_FILE_DIR``
or by the CLI.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import constants as const

PACKAGE_LOGGER = "mcpingwidget"
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"

logger = logging.getLogger(PACKAGE_LOGGER)
logger.addHandler(logging.NullHandler())


def configure_file_logging(directory: str) -> Optional[RotatingFileHandler]:
    """Attach a rotating log file under ``directory``.

    Returns the handler, or ``None`` when the file could not be set up; a
    logging problem never breaks status resolution.
    """
    try:
        log_dir = Path(directory).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / const.LOG_FILE_NAME,
            maxBytes=const.LOG_FILE_MAX_BYTES,
            backupCount=const.LOG_FILE_BACKUPS,
            encoding="utf-8",
        )
    except OSError:
        logger.exception("Failed to configure file logging in %s.", directory)
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > logging.INFO:
        logger.setLevel(logging.INFO)
    return handler


def configure_console_logging(verbose: bool = False) -> logging.Handler:
    level = logging.DEBUG if verbose else logging.WARNING
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    if logger.level == logging.NOTSET or logger.level > level:
        logger.setLevel(level)
    return handler


if const.LOG_FILE_DIR:
    configure_file_logging(const.LOG_FILE_DIR)

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

from PVLENS.server.utils.constants import LOGS_PATH

LOGGER_NAME = "PVLENS"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILENAME = "pvlens.log"
LOG_MAX_BYTES = 5 * 1024 * 1024
LOG_BACKUP_COUNT = 3


# -----------------------------------------------------------------------------
def build_file_handler(formatter: logging.Formatter) -> logging.Handler | None:
    try:
        os.makedirs(LOGS_PATH, exist_ok=True)
        handler = RotatingFileHandler(
            os.path.join(LOGS_PATH, LOG_FILENAME),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        # read-only installs still get console logging
        return None
    handler.setFormatter(formatter)
    return handler


# -----------------------------------------------------------------------------
def configure_logger(level: int = logging.INFO) -> logging.Logger:
    configured = logging.getLogger(LOGGER_NAME)
    if configured.handlers:
        return configured
    configured.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    configured.addHandler(console_handler)
    file_handler = build_file_handler(formatter)
    if file_handler is not None:
        configured.addHandler(file_handler)
    configured.propagate = False
    return configured


logger = configure_logger()

"""Logging setup: console plus a size-rotated daily file."""
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler

from medstock.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_configured = False


def setup_logging(log_dir: str | None = None) -> None:
    """Attach console and file handlers to the root logger once."""
    global _configured
    if _configured:
        return

    log_dir = log_dir or settings.LOG_DIR
    os.makedirs(log_dir, exist_ok=True)
    log_filename = os.path.join(log_dir, f"medstock_{datetime.now().strftime('%Y%m%d')}.log")
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    file_handler = RotatingFileHandler(
        log_filename,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.DEBUG else log_level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    # Chatty at DEBUG; every sheet call would be logged twice
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    _configured = True

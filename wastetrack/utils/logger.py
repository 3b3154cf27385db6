# wastetrack/utils/logger.py
"""
Logging setup shared by every module: console plus a rotating file under
LOG_DIR. Configured on first get_logger() call.
"""

import logging
import os
from logging.handlers import RotatingFileHandler

from wastetrack.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_FILE = "wastetrack.log"

# Chatty libraries kept at WARNING unless LOG_LEVEL is DEBUG
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "websockets", "httpx")

_configured = False


def _file_handler(level: str, formatter: logging.Formatter):
    log_dir = settings.LOG_DIR
    if not os.path.isabs(log_dir):
        project_root = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
        log_dir = os.path.join(project_root, log_dir)
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        filename=os.path.join(log_dir, LOG_FILE),
        maxBytes=5 * 1024 * 1024,
        backupCount=10,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: str = None) -> logging.Logger:
    """Attach wastetrack handlers to the root logger once. Returns the root logger."""
    global _configured
    root = logging.getLogger()
    if _configured:
        return root
    _configured = True

    level = (level or settings.LOG_LEVEL).upper()
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(level)
    console.setFormatter(formatter)
    root.setLevel(level)
    root.addHandler(console)

    if settings.LOG_TO_FILE:
        try:
            root.addHandler(_file_handler(level, formatter))
        except OSError as e:
            root.warning(f"File logging disabled ({settings.LOG_DIR}): {e}")

    if level != "DEBUG":
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
    return root


def get_logger(name: str) -> logging.Logger:
    """Named logger for a module: logger = get_logger(__name__)."""
    configure_logging()
    return logging.getLogger(name)

"""Logging configuration"""

import logging
import sys

from learning_assistant.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "apscheduler", "urllib3")


def setup_logging(level: str = None):
    """
    Configure root logging for the application

    Args:
        level: Log level name (default: settings.LOG_LEVEL)
    """
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(f"Logging configured at {level_name}")

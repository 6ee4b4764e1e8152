import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = None) -> logging.Logger:
    """Configure the ``taskboard`` logger with a single console handler."""
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    root_logger = logging.getLogger("taskboard")
    root_logger.setLevel(level)

    if not any(getattr(h, "_taskboard", False) for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._taskboard = True
        root_logger.addHandler(handler)

    return root_logger

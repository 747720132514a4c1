"""
Study AI - Logging Setup
Single stdout handler for the service loggers.
"""
import logging
import sys


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int | str = "INFO") -> logging.Logger:
    """
    Configure root logging to stdout.

    Args:
        level: Logging level as int or string (e.g. logging.INFO or "INFO").

    Returns:
        The "study_ai" logger.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("study_ai")

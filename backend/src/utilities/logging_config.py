"""
Logging setup for the relay hub.

Every module logs through ``logging.getLogger(__name__)``; this only wires
the root handler once at process start.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Configure the root logger with a human readable stderr handler.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ...). Defaults to INFO.

    Returns:
        logging.Logger: the root logger
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))

    # calling twice (tests, reload) must not duplicate output
    if not any(getattr(h, "_relay_hub", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._relay_hub = True
        root.addHandler(handler)

    return root

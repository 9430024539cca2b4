"""Logging utilities."""

import logging
import sys
from typing import Optional, TextIO


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# The kubernetes client logs every request and watch reconnect at INFO/DEBUG
NOISY_LOGGERS = ("asyncio", "kubernetes", "urllib3")


def setup_logging(level: str = "INFO", stream: Optional[TextIO] = None):
    """Configure the root logger for the operator process."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(stream or sys.stdout)],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

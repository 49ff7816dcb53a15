# Logging setup: one named logger per module, one stream handler on the package root.

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
ROOT_LOGGER = "gemini_flash_mcp"


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> logging.Logger:
    """Attach a single StreamHandler to the package logger (idempotent).

    The stdio transport passes ``sys.stderr`` so stdout stays reserved for protocol frames.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if not logger.handlers:
        h = logging.StreamHandler(stream or sys.stderr)
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(h)
    logger.setLevel(level.upper())
    return logger

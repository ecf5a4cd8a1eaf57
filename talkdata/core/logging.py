"""
Structured logging for the query pipeline.

Every module calls ``get_logger(__name__)``; handlers are attached once
per logger and write to stdout so uvicorn / streamlit capture them.
"""
from __future__ import annotations

import logging
import sys

from talkdata.core.config import get_settings

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Return a stdout logger; *level* overrides ``LOG_LEVEL``."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
    level_name = (level or get_settings().log_level).upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))
    return logger

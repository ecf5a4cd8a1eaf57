"""
Small shared utilities.
"""
from __future__ import annotations

import datetime
import time
from contextlib import contextmanager
from typing import Generator


@contextmanager
def timer() -> Generator[dict, None, None]:
    """Context manager that records elapsed wall-clock milliseconds."""
    result: dict = {}
    start = time.perf_counter()
    try:
        yield result
    finally:
        result["elapsed_ms"] = int((time.perf_counter() - start) * 1000)


def today() -> datetime.date:
    """Default clock for date-window calculations (local calendar date)."""
    return datetime.date.today()

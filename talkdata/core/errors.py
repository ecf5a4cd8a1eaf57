"""
Exception hierarchy for infrastructure failures.

Translation misses, guard rejections and execution errors are values,
not exceptions; only failures that make a request impossible are raised.
"""
from __future__ import annotations


class TalkDataError(Exception):
    """Base class for errors raised by talkdata."""


class StorageError(TalkDataError):
    """The database could not be reached or introspected."""

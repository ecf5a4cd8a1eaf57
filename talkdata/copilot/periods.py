"""
Relative-period resolution -- turns phrases like "last month" into date windows.

Windows are half-open ``[start, end)`` so every handler can emit the same
``date >= :start_date AND date < :end_date`` filter and bind the ISO dates
as parameters.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date  # exclusive
    label: str

    def params(self) -> dict[str, str]:
        return {"start_date": self.start.isoformat(), "end_date": self.end.isoformat()}


def _shift_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:  # Feb 29
        return day.replace(year=day.year + years, day=28)


def previous_month(today: date) -> DateWindow:
    this_month = today.replace(day=1)
    start = (this_month - timedelta(days=1)).replace(day=1)
    return DateWindow(start, this_month, "last month")


def current_month(today: date) -> DateWindow:
    return DateWindow(today.replace(day=1), today + timedelta(days=1), "this month")


def trailing_year(today: date) -> DateWindow:
    return DateWindow(_shift_years(today, -1), today + timedelta(days=1), "in the last year")


def current_year(today: date) -> DateWindow:
    return DateWindow(today.replace(month=1, day=1), today + timedelta(days=1), "this year")


def calendar_year(year: int) -> DateWindow:
    return DateWindow(date(year, 1, 1), date(year + 1, 1, 1), f"in {year}")


def trailing_days(today: date, n: int) -> DateWindow:
    return DateWindow(today - timedelta(days=n), today + timedelta(days=1), f"in the last {n} days")


# Order matters: "in the last year" must win over a bare "in 2024"-style match
_PERIOD_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"\b(?:in\s+the\s+)?(?:last|past)\s+(\d+)\s+days?\b"), "days"),
    (re.compile(r"\b(?:in\s+the\s+)?(?:last|past)\s+year\b"), "trailing_year"),
    (re.compile(r"\b(?:last|previous|past)\s+month\b"), "previous_month"),
    (re.compile(r"\bthis\s+month\b"), "current_month"),
    (re.compile(r"\bthis\s+year\b|\byear\s+to\s+date\b|\bytd\b"), "current_year"),
    (re.compile(r"\b(?:in|during)\s+((?:19|20)\d{2})\b"), "calendar_year"),
]


def find_period(text: str, today: date) -> DateWindow | None:
    """Return the first period phrase found in *text* (lower-cased), if any."""
    for pattern, kind in _PERIOD_PATTERNS:
        m = pattern.search(text)
        if not m:
            continue
        if kind == "days":
            return trailing_days(today, int(m.group(1)))
        if kind == "trailing_year":
            return trailing_year(today)
        if kind == "previous_month":
            return previous_month(today)
        if kind == "current_month":
            return current_month(today)
        if kind == "current_year":
            return current_year(today)
        return calendar_year(int(m.group(1)))
    return None


def period_pattern() -> str:
    """Regex alternation matching any supported period phrase (for extractors)."""
    return "|".join(p.pattern for p, _ in _PERIOD_PATTERNS)

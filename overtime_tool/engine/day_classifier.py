"""Calendar day classification.

Dates are plain calendar days. String input is parsed as YYYY-MM-DD
components and never goes through a timezone-aware timestamp.
"""

from __future__ import annotations

import calendar
from datetime import date
from typing import Iterable, Union

from overtime_tool.models import DayType, parse_day

DayLike = Union[date, str]


def classify_day(value: DayLike, holidays: Iterable[DayLike] = ()) -> DayType:
    day = parse_day(value)
    if day in {parse_day(h) for h in holidays}:
        return DayType.HOLIDAY
    weekday = day.weekday()  # Monday=0, Sunday=6
    if weekday == 6:
        return DayType.SUNDAY
    if weekday == 5:
        return DayType.SATURDAY
    return DayType.WEEKDAY


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def day_label(day: date) -> str:
    """Column label such as ``Sat, 29th``."""
    return f"{calendar.day_abbr[day.weekday()]}, {ordinal(day.day)}"

from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterable, List, Optional, Set, Tuple

from .utils import format_iso, parse_iso_date

WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _require_date(value: str) -> date:
    parsed = parse_iso_date(value)
    if parsed is None:
        raise ValueError(f"Invalid date: {value!r} (expected YYYY-MM-DD)")
    return parsed


def add_months(d: date, months: int) -> date:
    """First day of the month `months` away from d."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_range(year: int, month: int) -> Tuple[str, str]:
    last_day = calendar.monthrange(year, month)[1]
    return (format_iso(date(year, month, 1)), format_iso(date(year, month, last_day)))


def quarter_range(year: int, quarter: int) -> Tuple[str, str]:
    start_month = (quarter - 1) * 3 + 1
    start, _ = month_range(year, start_month)
    _, end = month_range(year, start_month + 2)
    return (start, end)


def is_valid_calendar_date(year: int, month: int, day: int) -> bool:
    if month < 1 or month > 12 or day < 1:
        return False
    return day <= calendar.monthrange(year, month)[1]


def get_working_days(start_date: str, end_date: str,
                     holidays: Optional[Iterable[str]] = None) -> List[str]:
    """Mon-Fri dates in [start_date, end_date], minus holidays, ascending."""
    holiday_set: Set[str] = set(holidays or ())
    current = _require_date(start_date)
    end = _require_date(end_date)
    days: List[str] = []
    while current <= end:
        if current.weekday() < 5:
            value = format_iso(current)
            if value not in holiday_set:
                days.append(value)
        current += timedelta(days=1)
    return days


def day_of_week(date_str: str) -> str:
    return WEEKDAY_NAMES[_require_date(date_str).weekday()]


def weekday_index(name: str) -> Optional[int]:
    key = (name or "").strip().lower().rstrip("s")
    for index, weekday in enumerate(WEEKDAY_NAMES):
        if weekday.lower() == key:
            return index
    return None


def format_date_nice(date_str: str) -> str:
    """"2026-03-04" -> "Wednesday, Mar 4"."""
    d = _require_date(date_str)
    return f"{WEEKDAY_NAMES[d.weekday()]}, {d.strftime('%b')} {d.day}"

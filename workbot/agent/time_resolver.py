from __future__ import annotations

import re
from datetime import date, timedelta
from typing import Dict, Optional

from ..models import DateRange
from ..utils import format_iso, parse_iso_date, today_local
from ..working_days import add_months, is_valid_calendar_date, month_range, quarter_range
from .schemas import Extraction

MONTH_NAMES: Dict[str, int] = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}

_WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
_MONTH_ALT = ("january|february|march|april|may|june|july|august|september|october|november|december"
              "|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec")
_MONTH_ALT_NO_MAY = ("january|february|march|april|june|july|august|september|october|november|december"
                     "|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec")

_ISO_RE = re.compile(r"\b(\d{4}-\d{2}-\d{2})\b")
_PAST_N_RE = re.compile(r"(?:past|last)\s+(\d+)\s+days")
_NEXT_N_RE = re.compile(r"next\s+(\d+)\s+days")
_WEEKDAY_RE = re.compile(r"\b(" + "|".join(_WEEKDAYS) + r")\b")
_MONTH_DAY_RE = re.compile(r"\b(" + _MONTH_ALT + r")\s+(\d{1,2})(?:st|nd|rd|th)?\b")
_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(" + _MONTH_ALT + r")\b")
_MAY_RE = re.compile(r"(?:in|for|during|month of)\s+(may)\b")
_MONTH_ONLY_RE = re.compile(r"\b(" + _MONTH_ALT_NO_MAY + r")\b")
_EXPLICIT_RANGE_RE = re.compile(r"(\d{4}-\d{2}-\d{2})\s*(?:to|–|-)\s*(\d{4}-\d{2}-\d{2})")


def _literal_range(start: str, end: str, label: str) -> Optional[DateRange]:
  first, last = parse_iso_date(start), parse_iso_date(end)
  if first is None or last is None or first > last:
    return None
  return DateRange(start=format_iso(first), end=format_iso(last), label=label)


def _single(day: date, label: str) -> DateRange:
  value = format_iso(day)
  return DateRange(start=value, end=value, label=label)


def _month(year: int, month: int, label: str) -> DateRange:
  start, end = month_range(year, month)
  return DateRange(start=start, end=end, label=label)


def _week(monday: date, label: str) -> DateRange:
  return DateRange(start=format_iso(monday), end=format_iso(monday + timedelta(days=4)), label=label)


def _resolve_weekday(q: str, name: str, today: date) -> DateRange:
  target = _WEEKDAYS.index(name)
  this_monday = today - timedelta(days=today.weekday())

  if re.search(r"\bnext month\b", q):
    first = add_months(today, 1)
    return _single(first + timedelta(days=(target - first.weekday()) % 7), f"{name} next month")

  if re.search(r"\blast week\b", q):
    return _single(this_monday - timedelta(days=7) + timedelta(days=target), f"{name} last week")

  if re.search(r"\bnext week\b", q):
    return _single(this_monday + timedelta(days=7 + target), f"{name} next week")

  # Upcoming occurrence, today included.
  return _single(today + timedelta(days=(target - today.weekday()) % 7), name)


def resolve_time_period(text: Optional[str], today: Optional[date] = None) -> DateRange:
  """Turn a free-text time phrase into a concrete inclusive range. Never fails."""
  q = (text or "").lower()
  today = today or today_local()
  year = today.year

  # Literal dates must be real calendar days, and a range must run forwards;
  # anything else falls through to the phrase rules.
  match = _EXPLICIT_RANGE_RE.search(q)
  if match:
    explicit = _literal_range(match.group(1), match.group(2), f"{match.group(1)} to {match.group(2)}")
    if explicit is not None:
      return explicit
  else:
    for literal in _ISO_RE.findall(q):
      single = _literal_range(literal, literal, literal)
      if single is not None:
        return single

  if re.search(r"\byesterday\b", q):
    return _single(today - timedelta(days=1), "yesterday")
  if re.search(r"\btomorrow\b", q):
    return _single(today + timedelta(days=1), "tomorrow")
  if re.search(r"\btoday\b", q):
    return _single(today, "today")

  # N days, inclusive of today
  match = _PAST_N_RE.search(q)
  if match:
    n = int(match.group(1))
    return DateRange(start=format_iso(today - timedelta(days=max(n - 1, 0))),
                     end=format_iso(today), label=f"last {n} days")
  match = _NEXT_N_RE.search(q)
  if match:
    n = int(match.group(1))
    return DateRange(start=format_iso(today),
                     end=format_iso(today + timedelta(days=max(n - 1, 0))), label=f"next {n} days")

  match = _WEEKDAY_RE.search(q)
  if match:
    return _resolve_weekday(q, match.group(1), today)

  this_monday = today - timedelta(days=today.weekday())
  if re.search(r"\blast week\b", q):
    return _week(this_monday - timedelta(days=7), "last week")
  if re.search(r"\bnext week\b", q):
    return _week(this_monday + timedelta(days=7), "next week")
  if re.search(r"\bthis week\b", q):
    return _week(this_monday, "this week")

  if re.search(r"\blast month\b", q):
    prev = add_months(today, -1)
    return _month(prev.year, prev.month, "last month")
  if re.search(r"\bnext month\b", q):
    nxt = add_months(today, 1)
    return _month(nxt.year, nxt.month, "next month")

  if re.search(r"\bthis quarter\b", q):
    quarter = (today.month - 1) // 3 + 1
    start, end = quarter_range(year, quarter)
    return DateRange(start=start, end=end, label=f"Q{quarter} {year}")
  if re.search(r"\blast quarter\b", q):
    quarter = (today.month - 1) // 3
    q_year = year
    if quarter == 0:
      quarter, q_year = 4, year - 1
    start, end = quarter_range(q_year, quarter)
    return DateRange(start=start, end=end, label=f"Q{quarter} {q_year}")

  if re.search(r"\bthis year\b", q):
    return DateRange(start=f"{year}-01-01", end=f"{year}-12-31", label="this year")
  if re.search(r"\blast year\b", q):
    return DateRange(start=f"{year - 1}-01-01", end=f"{year - 1}-12-31", label="last year")

  # "March 10" / "10th March"; impossible dates fall through
  match = _MONTH_DAY_RE.search(q)
  if match:
    month = MONTH_NAMES[match.group(1)]
    day = int(match.group(2))
    if is_valid_calendar_date(year, month, day):
      return _single(date(year, month, day), f"{match.group(1)} {day}")
  match = _DAY_MONTH_RE.search(q)
  if match:
    day = int(match.group(1))
    month = MONTH_NAMES[match.group(2)]
    if is_valid_calendar_date(year, month, day):
      return _single(date(year, month, day), f"{match.group(2)} {day}")

  # "may" only counts with a preposition in front of it
  match = _MAY_RE.search(q) or _MONTH_ONLY_RE.search(q)
  if match:
    return _month(year, MONTH_NAMES[match.group(1)], match.group(1))

  return _month(year, today.month, "this month")


def resolve_from_extraction(extraction: Extraction,
                            question: str,
                            today: Optional[date] = None) -> DateRange:
  time_range = (extraction.time_range or "").strip()
  if time_range:
    match = _EXPLICIT_RANGE_RE.search(time_range)
    if match:
      explicit = _literal_range(match.group(1), match.group(2), time_range)
      if explicit is not None:
        return explicit
    return resolve_time_period(time_range, today=today)
  return resolve_time_period(question, today=today)

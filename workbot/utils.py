from __future__ import annotations

from datetime import datetime, date
from typing import Any, Optional

from .config import LLM_DEBUG, LOCAL_TZ, ISO_DATE_RE


def _log_debug(message: str) -> None:
    if LLM_DEBUG:
        print(message, flush=True)


def today_local() -> date:
    return datetime.now(LOCAL_TZ).date()


def parse_iso_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if not ISO_DATE_RE.match(raw):
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        return None


def format_iso(d: date) -> str:
    return d.strftime("%Y-%m-%d")


def plural(count: float, word: str, plural_word: Optional[str] = None) -> str:
    if count == 1:
        return word
    return plural_word or f"{word}s"


def format_number(value: float) -> str:
    """Render 3.0 as "3" and 2.5 as "2.5"."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, List, Optional

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")


def sanitize_for_prompt(value: Any) -> str:
  """Strip control characters and backticks from user text before it is sent to a model."""
  if not isinstance(value, str):
    return ""
  return _CONTROL_CHARS_RE.sub("", value).replace("`", "'").strip()


def clean_str(value: Any) -> Optional[str]:
  if not isinstance(value, str):
    return None
  text = value.strip()
  return text or None


def normalize_string_list(value: Any) -> List[str]:
  if not isinstance(value, list):
    return []
  out: List[str] = []
  seen: set[str] = set()
  for raw in value:
    text = clean_str(raw)
    if not text:
      continue
    lowered = text.lower()
    if lowered in seen:
      continue
    seen.add(lowered)
    out.append(text)
  return out


def try_parse_date(value: Any) -> Optional[date]:
  if not isinstance(value, str):
    return None
  cleaned = value.strip()
  if not cleaned:
    return None
  # "2026-02-01T00:00:00Z" -> "2026-02-01"
  if "T" in cleaned:
    cleaned = cleaned.split("T")[0]
  try:
    return datetime.strptime(cleaned, "%Y-%m-%d").date()
  except Exception:
    return None

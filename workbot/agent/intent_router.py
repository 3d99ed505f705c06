from __future__ import annotations

import logging
import re
from typing import List, Tuple

from .schemas import RoutingDecision, SimpleIntent

logger = logging.getLogger(__name__)

_I = re.IGNORECASE

_EVENT_RE = re.compile(
    r"\b(event|party|town hall|offsite|mandatory office|highlighted|company event|deadline|office closed)\b", _I)
_SELF_RE = re.compile(r"\b(my|i(?=\s|$)|i'm|am i|do i)\b", _I)
_PERSONAL_CONTEXT_RE = re.compile(
    r"\b(office|leave|wfh|work from home|attendance|percentage|percent|days|schedule|coming|in office|mostly)\b", _I)
_PRESENCE_SUBJECT_RE = re.compile(
    r"\b(who is|who's|is \w+(?=\s|$)|when is|when's|when will|where is|\w+ coming|list .* office|list .* leave)\b", _I)
_PRESENCE_CONTEXT_RE = re.compile(
    r"\b(office|leave|wfh|tomorrow|today|monday|tuesday|wednesday|thursday|friday"
    r"|next week|next month|this week|this month)\b", _I)
_BROAD_PRESENCE_SUBJECT_RE = re.compile(r"\b(who|is \w+)\b", _I)
_BROAD_PRESENCE_CONTEXT_RE = re.compile(r"\b(in office|on leave|wfh|working from home|on vacation)\b", _I)
_BROAD_PERSONAL_CONTEXT_RE = re.compile(r"\b(calendar|schedule|office days|leave days)\b", _I)

# Shared by the router and the extraction heuristic.
_AGGREGATE_TERMS_RE = re.compile(
    r"\b(most|least|highest|lowest|busiest|quietest|peak|crowded|fewest|maximum|minimum"
    r"|which day|which weekday|average attendance|how many people|how many employees|everyone|all)\b", _I)
_AGGREGATE_CONTEXT_RE = re.compile(r"\b(office|attendance|presence|in office|coming|weekday|week)\b", _I)

COMPLEXITY_SIGNALS: List[Tuple[str, re.Pattern]] = [
    # second branch needs attendance context so "pros and cons" does not fire
    ("multi_person", re.compile(
        r"\b(compare|vs\.?|versus|and\s+\w+(?:'s)?)\b.*\b(office|attendance|days|schedule|overlap)\b"
        r"|\b(me\s+and\s+\w+|I\s+and\s+\w+|\w+\s+and\s+\w+(?:'s)?)\b.*"
        r"\b(office|attendance|days|schedule|overlap|leave|in today|coming in)\b", _I)),
    ("optimization", re.compile(
        r"\b(avoid|minimize|maximize|overlap|best day|optimal|suggest\s+(?:a\s+)?(?:day|office)"
        r"|recommend|cluster|good day for)\b", _I)),
    ("simulation", re.compile(
        r"\b(if I\s+go|what if|suppose|assuming|hypothetically|if I\s+went|would I|will I have)\b", _I)),
    ("comparative", re.compile(
        r"\b(more than|less than|better|worse|beat|higher|lower|trend|increasing|decreasing"
        r"|compared to|comparison)\b", _I)),
    ("constraint", re.compile(r"\b(but avoid|except|not on|only on|without|but not)\b", _I)),
    ("ambiguous_goal", re.compile(r"\b(good day|good time|should I|best time|right time)\b", _I)),
    ("meeting_plan", re.compile(
        r"\b(meeting with|meet with|in-person meeting|face to face|work together in office)\b", _I)),
    ("team_avg_comparison", re.compile(
        r"\b(team average|average|below|above|ahead|behind)\b.*\b(attendance|office|days)\b", _I)),
    ("explain_previous", re.compile(
        r"\b(why did you|why that|explain|reason for)\b.*\b(recommend|suggest|choose|pick)\b", _I)),
    ("multi_coordination", re.compile(r"\b(when will|when are)\b.*\b(both|all)\b.*\b(office|in)\b", _I)),
]

# Aggregate phrasing such as "highest average attendance" trips these two
# signals without needing the model.
_BENIGN_AGGREGATE_SIGNALS = frozenset({"comparative", "team_avg_comparison"})


def is_team_aggregate_question(question: str) -> bool:
  """Team-level aggregate wording (busiest day, average attendance, how many people)."""
  q = question or ""
  return bool(_AGGREGATE_TERMS_RE.search(q) and _AGGREGATE_CONTEXT_RE.search(q))


def classify_intent(question: str) -> SimpleIntent:
  q = question or ""

  if _EVENT_RE.search(q):
    return "event_query"

  if _SELF_RE.search(q) and _PERSONAL_CONTEXT_RE.search(q):
    return "personal_attendance"

  if is_team_aggregate_question(q):
    return "team_analytics"

  if _PRESENCE_SUBJECT_RE.search(q) and _PRESENCE_CONTEXT_RE.search(q):
    return "team_presence"

  if _BROAD_PRESENCE_SUBJECT_RE.search(q) and _BROAD_PRESENCE_CONTEXT_RE.search(q):
    return "team_presence"

  if _SELF_RE.search(q) and _BROAD_PERSONAL_CONTEXT_RE.search(q):
    return "personal_attendance"

  return "unknown"


def check_complexity_signals(question: str) -> List[str]:
  q = question or ""
  return [name for name, pattern in COMPLEXITY_SIGNALS if pattern.search(q)]


def route_question(question: str) -> RoutingDecision:
  """Pick the deterministic path only when the intent is known and nothing looks complex."""
  simple_intent = classify_intent(question)
  signals = check_complexity_signals(question)
  is_complex = bool(signals)

  path = "slow"
  if simple_intent != "unknown" and not is_complex:
    path = "fast"
  elif simple_intent == "team_analytics" and set(signals) <= _BENIGN_AGGREGATE_SIGNALS:
    path = "fast"

  logger.info("[ROUTER] path=%s intent=%s signals=%s", path, simple_intent, ",".join(signals) or "-")
  return RoutingDecision(path=path, simple_intent=simple_intent, is_complex=is_complex, signals=signals)

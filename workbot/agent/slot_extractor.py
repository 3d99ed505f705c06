from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from ..config import EXTRACTION_TIMEOUT_SECONDS, HISTORY_WINDOW
from ..models import HistoryMessage
from .coreference import PRONOUNS, contains_pronouns, resolve_pronouns
from .intent_router import is_team_aggregate_question
from .llm_provider import complete, parse_json_object
from .normalizer import clean_str, normalize_string_list, sanitize_for_prompt
from .schemas import (
    COMPLEX_INTENTS,
    OPTIMIZATION_GOALS,
    Ambiguity,
    ComplexIntent,
    Extraction,
    OptimizationGoal,
    SimulationParams,
)

logger = logging.getLogger(__name__)

_EXTRACTION_SYSTEM = """Structured extractor for a workplace attendance assistant. Return JSON only. No markdown.
You never answer the question; you only describe it.

Domain: day-level office attendance. Statuses are office, wfh and leave (full or half day).
Planned future schedules, holidays and office events are in scope.
Out of scope: HR data (salary, performance), private information, editing schedules,
time-of-day meeting booking, predictions without data, anything unrelated to attendance.

Output exactly these keys:
{
  "intent": "comparison|overlap|avoid|optimize|simulate|meeting_plan|trend|multi_person_coordination|team_analytics|clarify_needed|out_of_scope|explain_previous",
  "people": ["me", "<names as written>"],
  "timeRange": "<phrase such as 'this month', 'next week', 'March', or 'YYYY-MM-DD to YYYY-MM-DD'>",
  "constraints": ["<free text such as 'not Fridays' or 'only Tuesdays'>"],
  "optimizationGoal": "minimize_overlap|maximize_overlap|minimize_commute|least_crowded|maximize_team_presence|null",
  "simulationParams": {"proposedDays": ["YYYY-MM-DD"], "proposedDayOfWeek": ["tuesday"]},
  "needsClarification": false,
  "ambiguities": [{"type": "goal|time|group|person", "question": "...", "options": ["..."]}],
  "outOfScopeReason": null
}

Intents:
- comparison: two people, or one person against the team average.
- overlap: days two people are both in the office.
- avoid: pick office days that avoid someone.
- optimize: pick office days for a goal (overlap with someone, fewer commutes, quiet days).
- simulate: hypothetical schedule ("if I go every Tuesday", "what if").
- meeting_plan: find a day to meet someone in person.
- trend: the same person's attendance across two periods.
- multi_person_coordination: days when 2+ other people are all in.
- team_analytics: aggregate team stats (busiest weekday, peak attendance, average attendance).
- explain_previous: follow-up asking why an earlier answer was given.
- clarify_needed: only when the question cannot be reasonably interpreted.

Rules:
- "if" plus a modification is always simulate. Priority: simulate > team_analytics > trend.
- Include "me" for me/my/I. "my team" stays "my team". Assume ["me"] when nobody is named.
- Replace pronouns (him, her, them, that person) with names from the conversation.
  Never output a pronoun in people. If it cannot be resolved, set needsClarification
  and add a "person" ambiguity.
"""

_FALLBACK_PEOPLE_STOP = frozenset({
    "the", "a", "my", "this", "that", "it", "them", "him", "her", "office", "leave",
})

_DAY_WORD = r"(?:mon|tues|wednes|thurs|fri|satur|sun)days?"
_DAY_CONSTRAINT_RE = re.compile(
    r"\b(?:only|avoid|avoiding|not|no|except|excluding|skip|skipping|without)\s+(?:on\s+)?"
    + _DAY_WORD + r"(?:\s*(?:,|and|or|&)\s*" + _DAY_WORD + r")*",
    re.IGNORECASE,
)
_DAY_NAME_RE = re.compile(r"\b(mon|tues|wednes|thurs|fri)days?\b", re.IGNORECASE)
_ISO_IN_TEXT_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\b")
_EXPLICIT_RANGE_RE = re.compile(r"\b\d{4}-\d{2}-\d{2}\s*(?:to|–|-)\s*\d{4}-\d{2}-\d{2}\b")

_TIME_PHRASES = [
    (phrase, re.compile(r"\b" + phrase.replace(" ", r"\s+") + r"\b"))
    for phrase in ("next month", "this month", "next week", "this week",
                   "tomorrow", "last month", "last week")
]

_PEOPLE_INTENTS = frozenset({
    "comparison", "overlap", "avoid", "simulate", "meeting_plan", "multi_person_coordination",
})


# ---------------------------------------------------------------------------
#  Heuristics
# ---------------------------------------------------------------------------

def heuristic_intent_fallback(question: str) -> Optional[ComplexIntent]:
  """Regex classification used when the model fails or looks wrong."""
  q = (question or "").lower()

  if (re.search(r"\b(if\s+we|if\s+everyone|if\s+\w+\s+(skip|shift|add|remove|cancel|redistribute)|what\s+if"
                r"|if\s+we\s+(remove|shift|cancel|require|avoid|redistribute))\b", q)
      and re.search(r"\b(attendance|office|day|week|month|peak|busiest|crowded|average|holiday)\b", q)):
    return "simulate"
  if re.search(r"\b(if\s+i\s+go|what\s+if)\b", q):
    return "simulate"

  if re.search(r"\b(minim\w*|least|avoid|without)\b", q) and re.search(r"\boverlap\b", q):
    return "avoid"
  if (re.search(r"\b(avoid|stay away|not.*(same|overlap))\b", q)
      and re.search(r"\b(with|from)\b", q) and re.search(r"\b(office|day|go)\b", q)):
    return "avoid"
  if re.search(r"\b(maxim\w*|most|best)\b", q) and re.search(r"\boverlap\b", q):
    return "optimize"
  if re.search(r"\bshould\s+i\s+go\b", q) and re.search(r"\b(with|to avoid|overlap)\b", q):
    return "avoid"
  if re.search(r"\b(meet|meeting)\s+with\b", q):
    return "meeting_plan"
  if re.search(r"\b(compare|vs\.?|versus)\b", q) and re.search(r"\b(office|attendance|days)\b", q):
    return "comparison"
  if re.search(r"\boverlap\b", q) and re.search(r"\b(between|with)\b", q):
    return "overlap"

  if is_team_aggregate_question(q):
    return "team_analytics"

  if re.search(r"\b(trend|increasing|decreasing|over\s+time)\b", q):
    return "trend"
  return None


def heuristic_optimization_goal(question: str) -> Optional[OptimizationGoal]:
  q = (question or "").lower()
  if re.search(r"\b(minim\w*|least|avoid|without)\b", q) and re.search(r"\boverlap\b", q):
    return "minimize_overlap"
  if re.search(r"\b(maxim\w*|most|best)\b", q) and re.search(r"\boverlap\b", q):
    return "maximize_overlap"
  if re.search(r"\b(least\s+crowded|empty|quiet)\b", q):
    return "least_crowded"
  if re.search(r"\b(commute|fewer trips|cluster)\b", q):
    return "minimize_commute"
  return None


def extract_people_heuristic(question: str,
                             history: Optional[Sequence[HistoryMessage]] = None) -> List[str]:
  people: List[str] = ["me"]
  q = (question or "").lower()
  for match in re.finditer(r"\b(?:with|avoid|from|and|than|vs\.?|versus)\s+([a-z]+)\b", q):
    word = match.group(1)
    if word in _FALLBACK_PEOPLE_STOP or word in PRONOUNS or word in ("me", "i", "team", "everyone"):
      continue
    name = word[:1].upper() + word[1:]
    if name.lower() not in (p.lower() for p in people):
      people.append(name)
  if re.search(r"\bmy\s+team\b", q):
    people.append("my team")
  return resolve_pronouns(people, question, history)


def extract_time_range_heuristic(question: str) -> str:
  q = (question or "").lower()
  explicit = _EXPLICIT_RANGE_RE.search(q)
  if explicit:
    return explicit.group(0)
  for phrase, pattern in _TIME_PHRASES:
    if pattern.search(q):
      return phrase
  return "this month"


def extract_constraints_heuristic(question: str) -> List[str]:
  return normalize_string_list([m.group(0) for m in _DAY_CONSTRAINT_RE.finditer(question or "")])


def extract_simulation_params_heuristic(question: str) -> Optional[SimulationParams]:
  q = (question or "").lower()
  days = _ISO_IN_TEXT_RE.findall(q)
  weekdays: List[str] = []
  # Weekdays named inside an avoid/only phrase are constraints, not proposals.
  stripped = _DAY_CONSTRAINT_RE.sub(" ", q)
  for match in _DAY_NAME_RE.finditer(stripped):
    name = f"{match.group(1)}day"
    if name not in weekdays:
      weekdays.append(name)
  if not days and not weekdays:
    return None
  return SimulationParams(proposed_days=days, proposed_day_of_week=weekdays)


# ---------------------------------------------------------------------------
#  Model payload validation
# ---------------------------------------------------------------------------

def _validate_simulation_params(raw: Any) -> Optional[SimulationParams]:
  if not isinstance(raw, dict):
    return None
  raw_days = raw.get("proposedDays")
  raw_dow = raw.get("proposedDayOfWeek")
  proposed_days = [d for d in raw_days if isinstance(d, str)] if isinstance(raw_days, list) else []
  proposed_dow = [d for d in raw_dow if isinstance(d, str)] if isinstance(raw_dow, list) else []
  if not proposed_days and not proposed_dow:
    return None
  return SimulationParams(proposed_days=proposed_days, proposed_day_of_week=proposed_dow)


def _validate_ambiguities(raw: Any) -> List[Ambiguity]:
  out: List[Ambiguity] = []
  if not isinstance(raw, list):
    return out
  for item in raw:
    if not isinstance(item, dict):
      continue
    question = clean_str(item.get("question"))
    if not question:
      continue
    options = item.get("options") if isinstance(item.get("options"), list) else []
    out.append(Ambiguity(
        type=clean_str(item.get("type")) or "person",
        question=question,
        options=[str(o) for o in options if isinstance(o, (str, int, float))],
    ))
  return out


def _needs_heuristic_check(intent: str, question: str) -> bool:
  if intent in ("out_of_scope", "clarify_needed"):
    return True
  if intent == "trend":
    if re.search(r"\b(if\s+we|if\s+everyone|if\s+\w+\s+skip|remove|shift|cancel)\b", question, re.IGNORECASE):
      return True
    if is_team_aggregate_question(question):
      return True
  return False


def _with_unresolved_pronoun(extraction: Extraction, question: str, had_pronoun: bool) -> Extraction:
  if extraction.intent not in _PEOPLE_INTENTS:
    return extraction
  if not (had_pronoun or contains_pronouns(question)):
    return extraction
  others = [p for p in extraction.people if p.lower() not in ("me", "my", "i", "myself", "mine")]
  if others:
    return extraction
  ambiguity = Ambiguity(type="person", question="Who are you referring to? Please mention the person by name.")
  return extraction.model_copy(update={
      "needs_clarification": True,
      "ambiguities": [*extraction.ambiguities, ambiguity],
  })


def parse_extraction_payload(payload: Dict[str, Any],
                             question: str,
                             history: Optional[Sequence[HistoryMessage]] = None) -> Extraction:
  """Validate a model payload against the closed sets and apply the local overrides."""
  raw_intent = payload.get("intent")
  intent = raw_intent if isinstance(raw_intent, str) and raw_intent in COMPLEX_INTENTS else "out_of_scope"
  model_intent = intent

  if _needs_heuristic_check(intent, question):
    heuristic = heuristic_intent_fallback(question)
    if heuristic and heuristic != intent:
      intent = heuristic
      logger.info("[EXTRACTOR] heuristic override: model=%s -> %s", model_intent, heuristic)

  raw_people = payload.get("people") if isinstance(payload.get("people"), list) else []
  people_in = normalize_string_list(raw_people)
  had_pronoun = any(p.lower() in PRONOUNS for p in people_in)
  people = resolve_pronouns(people_in, question, history)

  raw_goal = payload.get("optimizationGoal")
  goal = raw_goal if isinstance(raw_goal, str) and raw_goal in OPTIMIZATION_GOALS else heuristic_optimization_goal(question)

  simulation_params = _validate_simulation_params(payload.get("simulationParams"))
  if intent == "simulate" and simulation_params is None:
    simulation_params = extract_simulation_params_heuristic(question)

  extraction = Extraction(
      intent=intent,
      people=people,
      time_range=clean_str(payload.get("timeRange")) or "this month",
      constraints=normalize_string_list(payload.get("constraints")) or extract_constraints_heuristic(question),
      optimization_goal=goal,
      simulation_params=simulation_params,
      needs_clarification=bool(payload.get("needsClarification")),
      ambiguities=_validate_ambiguities(payload.get("ambiguities")),
      out_of_scope_reason=clean_str(payload.get("outOfScopeReason")) if intent == "out_of_scope" else None,
  )
  return _with_unresolved_pronoun(extraction, question, had_pronoun)


def heuristic_extraction(question: str,
                         history: Optional[Sequence[HistoryMessage]] = None) -> Extraction:
  intent = heuristic_intent_fallback(question)
  if intent is None:
    logger.info("[EXTRACTOR] no heuristic match, returning out_of_scope")
    return Extraction()
  extraction = Extraction(
      intent=intent,
      people=extract_people_heuristic(question, history),
      time_range=extract_time_range_heuristic(question),
      constraints=extract_constraints_heuristic(question),
      optimization_goal=heuristic_optimization_goal(question),
      simulation_params=extract_simulation_params_heuristic(question) if intent == "simulate" else None,
  )
  logger.info("[EXTRACTOR] heuristic fallback: intent=%s people=%s time=%r",
              extraction.intent, extraction.people, extraction.time_range)
  return _with_unresolved_pronoun(extraction, question, False)


# ---------------------------------------------------------------------------
#  Entry point
# ---------------------------------------------------------------------------

def _build_messages(question: str, history: Optional[Sequence[HistoryMessage]]) -> List[Dict[str, str]]:
  messages: List[Dict[str, str]] = [{"role": "system", "content": _EXTRACTION_SYSTEM}]
  for turn in list(history or [])[-HISTORY_WINDOW:]:
    messages.append({"role": turn.role, "content": sanitize_for_prompt(turn.text)})
  messages.append({"role": "user", "content": sanitize_for_prompt(question)})
  return messages


async def extract(question: str, history: Optional[Sequence[HistoryMessage]] = None) -> Extraction:
  """Structured reading of a complex question. Never raises."""
  messages = _build_messages(question, history)
  try:
    raw = await complete(
        messages,
        max_tokens=1024,
        temperature=0.1,
        timeout_s=EXTRACTION_TIMEOUT_SECONDS,
        json_mode=True,
        log_prefix="EXTRACTOR",
    )
  except asyncio.TimeoutError:
    logger.warning("[EXTRACTOR] model call timed out after %ss", EXTRACTION_TIMEOUT_SECONDS)
    return heuristic_extraction(question, history)
  except Exception as exc:
    logger.warning("[EXTRACTOR] model call failed: %s", exc)
    return heuristic_extraction(question, history)

  payload = parse_json_object(raw)
  if payload is None:
    logger.warning("[EXTRACTOR] could not parse model output as JSON")
    return heuristic_extraction(question, history)

  try:
    extraction = parse_extraction_payload(payload, question, history)
  except Exception as exc:
    logger.warning("[EXTRACTOR] invalid model payload: %s", exc)
    return heuristic_extraction(question, history)

  logger.info("[EXTRACTOR] intent=%s people=%s time=%r goal=%s",
              extraction.intent, extraction.people, extraction.time_range,
              extraction.optimization_goal or "none")
  return extraction

from __future__ import annotations

import asyncio
import logging
import re
from datetime import date
from typing import List, Optional, Sequence

from ..config import PARAPHRASE_ENABLED, TEAM_USER_LIMIT
from ..models import DateRange, HistoryMessage, Person
from ..store import AttendanceStore, get_store
from ..utils import today_local
from ..working_days import add_months, month_range
from .fast_path import answer_simple
from .intent_router import route_question
from .normalizer import try_parse_date
from .person_resolver import resolve_people
from .reasoning import (
    compute_comparison,
    compute_multi_person_overlap,
    compute_overlap,
    compute_team_avg_comparison,
    compute_trend,
    expand_day_of_week,
    find_optimal_days,
    simulate_schedule,
)
from .relevance_guard import check_relevance
from .response_agent import build_clarification_response, build_out_of_scope_response, render
from .schedule_provider import get_multiple_schedules, get_schedule, get_team_presence
from .schemas import Coverage, Extraction, PersonSchedule, PipelineOutput, ReasoningResult
from .slot_extractor import extract
from .time_resolver import resolve_from_extraction

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = ("Sorry, I encountered an error processing your question. "
                   "Please try again or rephrase your query.")
NO_PREVIOUS_MESSAGE = "I don't have a previous response to explain. Could you ask a new question?"
GENERIC_FALLBACK = "I couldn't process that query. Please try rephrasing."

_TEAM_AVERAGE_RE = re.compile(r"\b(team average|average|below|above)\b", re.IGNORECASE)
_WEEKDAY_WORD_RE = re.compile(r"\b(?:every\s+)?(?:mon|tues|wednes|thurs|fri|satur|sun)days?\b", re.IGNORECASE)

# Intents that plan the caller's own office days against other people.
_CALLER_PLAN_INTENTS = frozenset({"avoid", "optimize", "meeting_plan", "simulate"})


def _split_caller(schedules: List[PersonSchedule], caller: Person):
  mine = next((s for s in schedules if s.user_id == caller.id), None)
  if mine is None:
    # Trend and team-average questions about someone else are about the first person named.
    return (schedules[0] if schedules else None), schedules[1:]
  return mine, [s for s in schedules if s.user_id != caller.id]


async def _compute_team_avg_for(store: AttendanceStore,
                                target: PersonSchedule,
                                date_range: DateRange) -> ReasoningResult:
  people = await store.list_active_users(limit=TEAM_USER_LIMIT)
  schedules = await get_multiple_schedules(store, people, date_range)
  return compute_team_avg_comparison(target, schedules)


def _trend_periods(date_range: DateRange, today: date):
  """Current and previous month. A question about one whole month compares it with the month before."""
  start = try_parse_date(date_range.start)
  current_start = today.replace(day=1)
  current_label, previous_label = "this month", "last month"
  if start is not None and start.day == 1 and (date_range.start, date_range.end) == month_range(start.year, start.month):
    if (start.year, start.month) != (today.year, today.month):
      current_start = start
      current_label = start.strftime("%B %Y")
      previous_label = add_months(start, -1).strftime("%B %Y")
  previous_start = add_months(current_start, -1)
  current = DateRange(start=month_range(current_start.year, current_start.month)[0],
                      end=month_range(current_start.year, current_start.month)[1],
                      label=current_label)
  previous = DateRange(start=month_range(previous_start.year, previous_start.month)[0],
                       end=month_range(previous_start.year, previous_start.month)[1],
                       label=previous_label)
  return current, previous


def _resolve_range(extraction: Extraction, question: str, today: date) -> DateRange:
  params = extraction.simulation_params
  if extraction.intent == "simulate" and params is not None and params.proposed_day_of_week:
    # "every Tuesday next month" is a pattern over next month, not one Tuesday.
    time_range = _WEEKDAY_WORD_RE.sub(" ", extraction.time_range or "").strip()
    stripped_question = _WEEKDAY_WORD_RE.sub(" ", question)
    extraction = extraction.model_copy(update={"time_range": time_range})
    return resolve_from_extraction(extraction, stripped_question, today=today)
  return resolve_from_extraction(extraction, question, today=today)


def _proposed_days(extraction: Extraction, working_days: List[str]) -> List[str]:
  params = extraction.simulation_params
  if params is None:
    return []
  if params.proposed_day_of_week:
    return expand_day_of_week(params.proposed_day_of_week, working_days)
  allowed = set(working_days)
  days: List[str] = []
  for raw in params.proposed_days:
    parsed = try_parse_date(raw)
    if parsed is None:
      continue
    value = parsed.isoformat()
    if value in allowed and value not in days:
      days.append(value)
  return days


async def _reason(extraction: Extraction,
                  question: str,
                  caller: Person,
                  store: AttendanceStore,
                  date_range: DateRange,
                  schedules: List[PersonSchedule],
                  coverages: List[Coverage],
                  today: date) -> Optional[ReasoningResult]:
  intent = extraction.intent

  if intent == "comparison":
    if len(schedules) >= 2 and not _TEAM_AVERAGE_RE.search(question):
      return compute_comparison(schedules[0], schedules[1])
    if schedules:
      mine, _ = _split_caller(schedules, caller)
      return await _compute_team_avg_for(store, mine, date_range)
    return None

  if intent == "overlap":
    if len(schedules) >= 2:
      return compute_overlap(schedules[0], schedules[1])
    return None

  if intent == "multi_person_coordination":
    if len(schedules) >= 2:
      return compute_multi_person_overlap(schedules)
    return None

  if intent in ("avoid", "optimize", "meeting_plan"):
    mine, targets = _split_caller(schedules, caller)
    if mine is None:
      return None
    if intent == "avoid":
      goal = "minimize_overlap"
    elif intent == "meeting_plan":
      goal = "meeting_plan"
    else:
      goal = extraction.optimization_goal or "maximize_overlap"
    team_presence = await get_team_presence(store, date_range)
    return find_optimal_days(
        user_schedule=mine,
        target_schedules=targets,
        team_presence=team_presence,
        goal=goal,
        constraints=extraction.constraints,
        answers_intent=intent,
    )

  if intent == "simulate":
    mine, targets = _split_caller(schedules, caller)
    if mine is None or not targets or extraction.simulation_params is None:
      return None
    return simulate_schedule(_proposed_days(extraction, mine.working_days), targets[0])

  if intent == "trend":
    mine, _ = _split_caller(schedules, caller)
    if mine is None:
      return None
    current_range, previous_range = _trend_periods(date_range, today)
    current, previous = await asyncio.gather(
        get_schedule(store, mine.person, current_range),
        get_schedule(store, mine.person, previous_range),
    )
    # Trend coverage replaces the coverage of the originally resolved range.
    coverages[:] = [current.coverage, previous.coverage]
    return compute_trend(current, previous, current_range.label, previous_range.label)

  return None


async def _handle_complex_query(question: str,
                                caller: Person,
                                history: Optional[Sequence[HistoryMessage]],
                                store: AttendanceStore,
                                today: date,
                                allow_paraphrase: bool) -> PipelineOutput:
  extraction = await extract(question, history)

  if extraction.intent == "out_of_scope":
    return PipelineOutput(answer=build_out_of_scope_response(extraction.out_of_scope_reason),
                          intent="out_of_scope", used_llm=True)

  if extraction.needs_clarification and extraction.ambiguities:
    return PipelineOutput(answer=build_clarification_response(extraction.ambiguities),
                          intent="clarify_needed", used_llm=True)

  if extraction.intent == "explain_previous":
    last_assistant = next((h for h in reversed(list(history or [])) if h.role == "assistant"), None)
    if last_assistant is not None:
      return PipelineOutput(answer=f"Here's what I previously said:\n\n{last_assistant.text}",
                            intent="explain_previous", used_llm=False)
    return PipelineOutput(answer=NO_PREVIOUS_MESSAGE, intent="explain_previous", used_llm=False)

  if extraction.intent == "team_analytics":
    answer = await answer_simple(question, caller, store=store, today=today, intent="team_analytics")
    if answer is None:
      guard = check_relevance("team_analytics", None)
      answer = guard.fallback_message or GENERIC_FALLBACK
    return PipelineOutput(answer=answer, intent="team_analytics", used_llm=True)

  if extraction.intent == "clarify_needed":
    return PipelineOutput(
        answer="Could you tell me a bit more about what you'd like to know? "
               "For example, which people and which time period?",
        intent="clarify_needed", used_llm=True)

  references = extraction.people or ["me"]
  resolution = await resolve_people(references, caller, store)
  others = [p for p in resolution.resolved if p.id != caller.id]
  if resolution.clarification and not others:
    return PipelineOutput(answer=resolution.clarification, intent="clarify_needed", used_llm=True)

  people = list(resolution.resolved)
  if extraction.intent in _CALLER_PLAN_INTENTS and not any(p.id == caller.id for p in people):
    # "avoid Rahul" plans the caller's days; Rahul is only ever a target.
    people.insert(0, caller)

  date_range = _resolve_range(extraction, question, today)
  schedules = await get_multiple_schedules(store, people, date_range)
  coverages: List[Coverage] = [s.coverage for s in schedules]

  try:
    result = await _reason(extraction, question, caller, store, date_range, schedules, coverages, today)
  except Exception:
    logger.exception("[PIPELINE] reasoning failed: question=%r intent=%s", question, extraction.intent)
    raise

  guard = check_relevance(extraction.intent, result)
  if not guard.passed or result is None:
    logger.info("[PIPELINE] relevance guard rejected intent=%s", extraction.intent)
    return PipelineOutput(answer=guard.fallback_message or GENERIC_FALLBACK,
                          intent=extraction.intent, used_llm=True)

  answer = await render(result, coverages, question, allow_paraphrase=allow_paraphrase)
  if resolution.clarification:
    answer = f"Note: {resolution.clarification}\n\n{answer}"
  return PipelineOutput(answer=answer, intent=extraction.intent, used_llm=True)


async def process_question(question: str,
                           caller: Person,
                           history: Optional[Sequence[HistoryMessage]] = None,
                           *,
                           store: Optional[AttendanceStore] = None,
                           today: Optional[date] = None,
                           allow_paraphrase: Optional[bool] = None) -> PipelineOutput:
  """Answer one attendance question. Always returns an answer; internal failures become an apology."""
  store = store or get_store()
  today = today or today_local()
  paraphrase = PARAPHRASE_ENABLED if allow_paraphrase is None else allow_paraphrase
  q = (question or "").strip()

  routing = route_question(q)
  if routing.path == "fast":
    try:
      answer = await answer_simple(q, caller, store=store, today=today, intent=routing.simple_intent)
    except Exception:
      logger.warning("[FAST PATH] handler failed, falling through to slow path", exc_info=True)
      answer = None
    if answer:
      logger.info("[PIPELINE] fast path answered intent=%s", routing.simple_intent)
      return PipelineOutput(answer=answer, intent=routing.simple_intent, used_llm=False)
    logger.info("[FAST PATH] no deterministic answer, using slow path")

  try:
    return await _handle_complex_query(q, caller, history, store, today, paraphrase)
  except Exception:
    logger.exception("[PIPELINE] slow path failed: question=%r user=%s", q, caller.id)
    return PipelineOutput(answer=APOLOGY_MESSAGE, intent="unknown", used_llm=True)

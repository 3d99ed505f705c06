from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable, Dict, List, Optional, Sequence

from ..config import PARAPHRASE_TIMEOUT_SECONDS
from ..utils import format_number, plural
from ..working_days import format_date_nice
from .llm_provider import complete
from .normalizer import sanitize_for_prompt
from .schemas import (
    Ambiguity,
    ComparisonResult,
    Coverage,
    MultiPersonOverlapResult,
    OptimizationResult,
    OverlapResult,
    SimulationResult,
    TeamAvgComparisonResult,
    TrendResult,
)

logger = logging.getLogger(__name__)

PARAPHRASE_SYSTEM_PROMPT = """You are formatting a workplace attendance answer.
Rewrite the computed data below as a short, natural reply to the user's question.
Do not add information that is not in the data. Keep every number as given.

Computed data:
{data}
"""

OUT_OF_SCOPE_CAPABILITIES = [
    "attendance comparisons between team members",
    "scheduling suggestions and optimal office days",
    "team presence and overlap analysis",
    "attendance trends over time",
    "simulating hypothetical schedule scenarios",
    "questions about holidays and events",
]

_GOAL_HEADERS = {
    "minimize_overlap": "Best days to avoid overlap",
    "maximize_overlap": "Best days for maximum overlap",
    "meeting_plan": "Best days to meet in person",
    "minimize_commute": "Days that keep your office days together",
    "least_crowded": "Least crowded days",
    "maximize_team_presence": "Days with highest team presence",
}


def _pct(value: float) -> str:
  return f"{round(value)}%"


def _bullets(days: Sequence[str], suffix: str = "") -> str:
  return "\n".join(f"• {format_date_nice(d)}{suffix}" for d in days)


# ---------------------------------------------------------------------------
#  Templates
# ---------------------------------------------------------------------------

def format_comparison(result: ComparisonResult) -> str:
  a, b = result.user_a, result.user_b
  if result.who_has_more == "tied":
    return (f"{a.name} and {b.name} both have {format_number(a.stats.office_days)} office days "
            f"({_pct(a.stats.office_percent)} and {_pct(b.stats.office_percent)}).")
  more, less = (a, b) if result.who_has_more == a.name else (b, a)
  diff = format_number(result.diff)
  return (
      f"{more.name} has {diff} more office {plural(result.diff, 'day')} than {less.name}.\n\n"
      f"• {more.name}: {format_number(more.stats.office_days)} office days ({_pct(more.stats.office_percent)})\n"
      f"• {less.name}: {format_number(less.stats.office_days)} office days ({_pct(less.stats.office_percent)})\n"
      f"• Difference: {round(result.percentage_diff)} percentage points"
  )


def format_team_avg_comparison(result: TeamAvgComparisonResult) -> str:
  user = result.user
  if result.above_or_below == "at":
    return (f"{user.name} is right at the team average for office attendance: "
            f"{_pct(user.stats.office_percent)}.")
  rounded = round(result.diff)
  gap = "less than 1 percentage point" if rounded == 0 else f"{rounded} {plural(rounded, 'percentage point')}"
  return (
      f"{user.name} is {result.above_or_below} the team average by {gap}.\n\n"
      f"• {user.name}'s office attendance: {_pct(user.stats.office_percent)} "
      f"({format_number(user.stats.office_days)} days)\n"
      f"• Team average ({result.team_size} {plural(result.team_size, 'person', 'people')}): "
      f"{_pct(result.team_avg_office_percent)}"
  )


def format_overlap(result: OverlapResult) -> str:
  total = format_number(result.total_overlap)
  text = (f"{result.user_a} and {result.user_b} have {total} overlapping office "
          f"{plural(result.total_overlap, 'day')} out of {result.working_days_count} working days.")
  if result.full_overlap_days:
    text += f"\n\nFull overlap days:\n{_bullets(result.full_overlap_days)}"
  if result.partial_overlap_days:
    text += f"\n\nPartial overlap days:\n{_bullets(result.partial_overlap_days, ' (partial, half-day)')}"
  return text


def format_multi_person_overlap(result: MultiPersonOverlapResult) -> str:
  names = ", ".join(result.people)
  days = result.all_in_office_days
  if not days:
    return (f"There are no days where {names} are all in the office "
            f"out of {result.working_days_count} working days.")
  return f"Days where {names} are all in the office ({len(days)} {plural(len(days), 'day')}):\n{_bullets(days)}"


def format_optimization(result: OptimizationResult) -> str:
  if not result.recommendations:
    return "No suitable days found matching your criteria."
  header = _GOAL_HEADERS.get(result.goal, "Recommended days")
  if result.constraints:
    header += f" (constraints: {', '.join(result.constraints)})"
  lines = []
  for i, rec in enumerate(result.recommendations, start=1):
    line = f"{i}. {format_date_nice(rec.date)} ({rec.day})"
    if rec.reasons:
      line += "\n" + "\n".join(f"  • {reason}" for reason in rec.reasons)
    lines.append(line)
  return f"{header}:\n\n" + "\n\n".join(lines)


def format_simulation(result: SimulationResult) -> str:
  text = (f"If you go on those {result.total_proposed} {plural(result.total_proposed, 'day')}, "
          f"you'll overlap with {result.target_name} on {result.overlap_count} "
          f"{plural(result.overlap_count, 'day')} ({_pct(result.overlap_percent)}).")
  if result.overlap_days:
    text += f"\n\nOverlap days:\n{_bullets(result.overlap_days)}"
  if result.overlap_count == 0:
    text += f"\n\n{result.target_name} is not scheduled to be in the office on any of those days."
  return text


def format_trend(result: TrendResult) -> str:
  current, previous = result.current, result.previous
  if result.direction == "same":
    return (f"{result.user_name}'s office attendance is the same: {format_number(current.office_days)} days "
            f"in both {result.current_label} and {result.previous_label}.")
  sign = "+" if result.direction == "more" else "-"
  return (
      f"{result.user_name} is going to the office {result.direction} {result.current_label} "
      f"compared to {result.previous_label}.\n\n"
      f"• {result.current_label}: {format_number(current.office_days)} office days ({_pct(current.office_percent)})\n"
      f"• {result.previous_label}: {format_number(previous.office_days)} office days ({_pct(previous.office_percent)})\n"
      f"• Change: {sign}{format_number(result.diff)} {plural(result.diff, 'day')}"
  )


_FORMATTERS: Dict[str, Callable] = {
    "comparison": format_comparison,
    "team_avg_comparison": format_team_avg_comparison,
    "overlap": format_overlap,
    "multi_person_coordination": format_multi_person_overlap,
    "optimize": format_optimization,
    "avoid": format_optimization,
    "meeting_plan": format_optimization,
    "simulate": format_simulation,
    "trend": format_trend,
}


# ---------------------------------------------------------------------------
#  Coverage disclaimers
# ---------------------------------------------------------------------------

def build_coverage_warnings(coverages: Sequence[Coverage]) -> str:
  warnings: List[str] = []
  for c in coverages:
    percent = round(c.ratio * 100)
    if c.level == "none":
      warnings.append(f"⚠️ {c.name} hasn't set their schedule for this period yet.")
    elif c.level == "low":
      warnings.append(f"⚠️ {c.name}'s schedule is only {percent}% set "
                      f"({c.days_with_entries} of {c.total_working_days} days). Results may change.")
    elif c.level == "medium":
      warnings.append(f"Note: {c.name}'s schedule is {percent}% set "
                      f"({c.days_with_entries} of {c.total_working_days} days). Some data may be incomplete.")
  return "\n".join(warnings)


# ---------------------------------------------------------------------------
#  Rendering
# ---------------------------------------------------------------------------

async def paraphrase(result, question: str) -> Optional[str]:
  data = json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)
  messages = [
      {"role": "system", "content": PARAPHRASE_SYSTEM_PROMPT.format(data=data)},
      {"role": "user", "content": sanitize_for_prompt(question)},
  ]
  text = await complete(
      messages,
      max_tokens=512,
      temperature=0.3,
      timeout_s=PARAPHRASE_TIMEOUT_SECONDS,
      log_prefix="PARAPHRASE",
  )
  return text.strip() or None


async def render(result,
                 coverages: Sequence[Coverage],
                 question: str,
                 allow_paraphrase: bool = False) -> str:
  """Template answer for a reasoning result, plus optional summary and coverage notes."""
  formatter = _FORMATTERS.get(result.answers_intent)
  text = formatter(result) if formatter else "Here are the results based on your query."

  if allow_paraphrase:
    try:
      summary = await paraphrase(result, question)
    except asyncio.TimeoutError:
      logger.warning("[PARAPHRASE] timed out after %ss", PARAPHRASE_TIMEOUT_SECONDS)
      summary = None
    except Exception as exc:
      logger.warning("[PARAPHRASE] failed: %s", exc)
      summary = None
    if summary:
      text += "\n\n**Summary:** " + summary

  warnings = build_coverage_warnings(coverages)
  if warnings:
    text += "\n\n" + warnings
  return text


def build_out_of_scope_response(reason: Optional[str] = None) -> str:
  text = "I can only analyze recorded and planned attendance data."
  if reason:
    text += f" I can't {reason.rstrip('.')}."
  text += "\n\nHere's what I can help with:\n" + "\n".join(f"• {c}" for c in OUT_OF_SCOPE_CAPABILITIES)
  return text


def build_clarification_response(ambiguities: Sequence[Ambiguity]) -> str:
  parts: List[str] = []
  for ambiguity in ambiguities:
    text = ambiguity.question
    if ambiguity.options:
      text += "\n" + "\n".join(f"  {i}. {option}" for i, option in enumerate(ambiguity.options, start=1))
    parts.append(text)
  return "\n\n".join(parts)

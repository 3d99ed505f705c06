from __future__ import annotations

import math
import re
from typing import Dict, List, Optional, Set, Tuple

from ..config import MAX_RECOMMENDATIONS
from ..working_days import WEEKDAY_NAMES, day_of_week
from .schedule_provider import is_full_leave, presence_score
from .schemas import (
    ComparisonResult,
    MultiPersonOverlapResult,
    NamedStats,
    OptimizationResult,
    OverlapResult,
    PersonSchedule,
    Recommendation,
    SimulationResult,
    TeamAvgComparisonResult,
    TeamPresenceDay,
    TrendResult,
)

_DAY_WORD = r"(?:mon|tues|wednes|thurs|fri|satur|sun)days?"
_DAY_LIST = r"((?:" + _DAY_WORD + r"(?:\s*(?:,|and|or|&)\s*)?)+)"
_EXCLUDE_DAYS_RE = re.compile(r"\b(?:avoid|avoiding|not|no|except|excluding|skip|skipping|without)\s+(?:on\s+)?" + _DAY_LIST)
_ONLY_DAYS_RE = re.compile(r"\bonly\s+(?:on\s+)?" + _DAY_LIST)
_DAY_NAME_RE = re.compile(r"(mon|tues|wednes|thurs|fri|satur|sun)day")


def _is_zero(value: float) -> bool:
  return math.isclose(value, 0.0, abs_tol=1e-9)


def _day_names(fragment: str) -> List[str]:
  return [f"{m.capitalize()}day" for m in _DAY_NAME_RE.findall(fragment)]


def parse_day_constraints(constraints: List[str]) -> Tuple[Set[str], Set[str]]:
  """Weekday names to exclude, and the only weekday names allowed (empty = no restriction)."""
  excluded: Set[str] = set()
  only: Set[str] = set()
  for constraint in constraints or []:
    text = (constraint or "").lower()
    for match in _ONLY_DAYS_RE.finditer(text):
      only.update(_day_names(match.group(1)))
    for match in _EXCLUDE_DAYS_RE.finditer(text):
      excluded.update(_day_names(match.group(1)))
  return excluded, only


# ---------------------------------------------------------------------------
#  Comparison
# ---------------------------------------------------------------------------

def compute_comparison(schedule_a: PersonSchedule, schedule_b: PersonSchedule) -> ComparisonResult:
  diff = schedule_a.stats.office_days - schedule_b.stats.office_days
  if _is_zero(diff):
    who_has_more = "tied"
  elif diff > 0:
    who_has_more = schedule_a.name
  else:
    who_has_more = schedule_b.name
  return ComparisonResult(
      user_a=NamedStats(name=schedule_a.name, stats=schedule_a.stats),
      user_b=NamedStats(name=schedule_b.name, stats=schedule_b.stats),
      diff=abs(diff),
      who_has_more=who_has_more,
      percentage_diff=abs(schedule_a.stats.office_percent - schedule_b.stats.office_percent),
  )


def compute_team_avg_comparison(user_schedule: PersonSchedule,
                                all_schedules: List[PersonSchedule]) -> TeamAvgComparisonResult:
  # The person being compared never counts toward the average.
  others = [s for s in all_schedules if s.user_id != user_schedule.user_id]
  if others:
    team_avg_percent = sum(s.stats.office_percent for s in others) / len(others)
    team_avg_days = sum(s.stats.office_days for s in others) / len(others)
  else:
    team_avg_percent = 0.0
    team_avg_days = 0.0

  diff = user_schedule.stats.office_percent - team_avg_percent
  if _is_zero(diff):
    above_or_below = "at"
    diff = 0.0
  else:
    above_or_below = "above" if diff > 0 else "below"
  return TeamAvgComparisonResult(
      user=NamedStats(name=user_schedule.name, stats=user_schedule.stats),
      team_size=len(others),
      team_avg_office_percent=team_avg_percent,
      team_avg_office_days=team_avg_days,
      diff=abs(diff),
      above_or_below=above_or_below,
  )


# ---------------------------------------------------------------------------
#  Overlap
# ---------------------------------------------------------------------------

def compute_overlap(schedule_a: PersonSchedule, schedule_b: PersonSchedule) -> OverlapResult:
  b_days = set(schedule_b.working_days)
  working_days = [d for d in schedule_a.working_days if d in b_days]

  total = 0.0
  full: List[str] = []
  partial: List[str] = []
  zero: List[str] = []
  for day in working_days:
    score = min(presence_score(schedule_a.entry_map.get(day)),
                presence_score(schedule_b.entry_map.get(day)))
    if score >= 1:
      full.append(day)
      total += 1
    elif score > 0:
      partial.append(day)
      total += score
    else:
      zero.append(day)

  return OverlapResult(
      user_a=schedule_a.name,
      user_b=schedule_b.name,
      total_overlap=total,
      full_overlap_days=full,
      partial_overlap_days=partial,
      zero_overlap_days=zero,
      working_days_count=len(working_days),
  )


def compute_multi_person_overlap(schedules: List[PersonSchedule]) -> MultiPersonOverlapResult:
  if not schedules:
    return MultiPersonOverlapResult()
  working_days = schedules[0].working_days
  all_in = [
      day for day in working_days
      if all(presence_score(s.entry_map.get(day)) >= 1 for s in schedules)
  ]
  return MultiPersonOverlapResult(
      people=[s.name for s in schedules],
      all_in_office_days=all_in,
      working_days_count=len(working_days),
  )


# ---------------------------------------------------------------------------
#  Day recommendation
# ---------------------------------------------------------------------------

def _score_targets_min(day: str, targets: List[PersonSchedule]) -> Tuple[float, List[str]]:
  score = 0.0
  reasons: List[str] = []
  for target in targets:
    target_score = presence_score(target.entry_map.get(day))
    score += 1 - target_score
    if target_score == 0:
      reasons.append(f"{target.name} is NOT in office")
    elif target_score < 1:
      reasons.append(f"{target.name} is only half-day in office")
    else:
      reasons.append(f"{target.name} is in office")
  return score, reasons


def _score_targets_max(day: str, targets: List[PersonSchedule]) -> Tuple[float, List[str]]:
  score = 0.0
  reasons: List[str] = []
  for target in targets:
    target_score = presence_score(target.entry_map.get(day))
    score += target_score
    if target_score >= 1:
      reasons.append(f"{target.name} is in office")
    elif target_score > 0:
      reasons.append(f"{target.name} is half-day in office")
  return score, reasons


def _score_commute(day: str, user_schedule: PersonSchedule) -> Tuple[float, List[str]]:
  # Days next to an existing office day keep trips clustered.
  index = user_schedule.working_days.index(day)
  neighbours = []
  if index > 0:
    neighbours.append(user_schedule.working_days[index - 1])
  if index + 1 < len(user_schedule.working_days):
    neighbours.append(user_schedule.working_days[index + 1])
  adjacent = [d for d in neighbours if presence_score(user_schedule.entry_map.get(d)) >= 1]
  if presence_score(user_schedule.entry_map.get(day)) >= 1:
    return 1.0, ["You are already planning to be in office"]
  if adjacent:
    return 0.75, [f"Next to your office day on {day_of_week(adjacent[0])}"]
  return 0.5, ["No office days next to it yet"]


def _team_ratio(tp: Optional[TeamPresenceDay]) -> Optional[float]:
  if tp is None:
    return None
  return tp.count / tp.total_team if tp.total_team > 0 else 0.0


def find_optimal_days(*,
                      user_schedule: PersonSchedule,
                      target_schedules: List[PersonSchedule],
                      team_presence: List[TeamPresenceDay],
                      goal: str,
                      constraints: Optional[List[str]] = None,
                      answers_intent: Optional[str] = None,
                      required_days: Optional[int] = None) -> OptimizationResult:
  constraints = list(constraints or [])
  presence_by_date: Dict[str, TeamPresenceDay] = {tp.date: tp for tp in team_presence}
  excluded, only = parse_day_constraints(constraints)
  if answers_intent is None:
    answers_intent = "meeting_plan" if goal == "meeting_plan" else "optimize"

  scored: List[Recommendation] = []
  for day in user_schedule.working_days:
    weekday = day_of_week(day)
    if weekday in excluded:
      continue
    if only and weekday not in only:
      continue
    if is_full_leave(user_schedule.entry_map.get(day)):
      continue

    tp = presence_by_date.get(day)
    ratio = _team_ratio(tp)
    if goal == "minimize_overlap":
      score, reasons = _score_targets_min(day, target_schedules)
    elif goal in ("maximize_overlap", "meeting_plan"):
      score, reasons = _score_targets_max(day, target_schedules)
    elif goal == "minimize_commute":
      score, reasons = _score_commute(day, user_schedule)
    elif goal == "least_crowded":
      if tp is None:
        score, reasons = 0.5, ["No attendance data for this day"]
      else:
        score, reasons = 1 - ratio, [f"{tp.count} of {tp.total_team} people in office"]
    elif goal == "maximize_team_presence":
      score, reasons = 0.0, []
      if tp is not None:
        score, reasons = ratio, [f"{tp.count} of {tp.total_team} people in office"]
    elif target_schedules:
      score, reasons = _score_targets_max(day, target_schedules)
    else:
      score, reasons = (ratio or 0.0), []

    reasons.append(weekday)
    scored.append(Recommendation(date=day, day=weekday, score=round(score, 4), reasons=reasons))

  # Stable sort: equal scores keep calendar order.
  scored.sort(key=lambda r: r.score, reverse=True)
  count = required_days if required_days is not None else min(MAX_RECOMMENDATIONS, len(scored))
  return OptimizationResult(
      answers_intent=answers_intent,
      goal=goal,
      recommendations=scored[:count],
      constraints=constraints,
  )


# ---------------------------------------------------------------------------
#  Simulation + trend
# ---------------------------------------------------------------------------

def expand_day_of_week(day_names: List[str], working_days: List[str]) -> List[str]:
  wanted = set()
  for name in day_names or []:
    key = (name or "").strip().lower()
    for weekday in WEEKDAY_NAMES:
      if key in (weekday.lower(), weekday.lower() + "s", weekday.lower()[:3]):
        wanted.add(weekday)
  return [d for d in working_days if day_of_week(d) in wanted]


def simulate_schedule(proposed_days: List[str], target_schedule: PersonSchedule) -> SimulationResult:
  overlap_days = [d for d in proposed_days if presence_score(target_schedule.entry_map.get(d)) > 0]
  total = len(proposed_days)
  return SimulationResult(
      proposed_days=list(proposed_days),
      target_name=target_schedule.name,
      overlap_days=overlap_days,
      overlap_count=len(overlap_days),
      total_proposed=total,
      overlap_percent=(len(overlap_days) / total * 100) if total > 0 else 0.0,
  )


def compute_trend(current: PersonSchedule,
                  previous: PersonSchedule,
                  current_label: str,
                  previous_label: str) -> TrendResult:
  diff = current.stats.office_days - previous.stats.office_days
  if _is_zero(diff):
    direction = "same"
    diff = 0.0
  else:
    direction = "more" if diff > 0 else "less"
  return TrendResult(
      user_name=current.name,
      current=current.stats,
      previous=previous.stats,
      current_label=current_label,
      previous_label=previous_label,
      diff=abs(diff),
      direction=direction,
  )

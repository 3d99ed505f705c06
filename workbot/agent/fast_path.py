from __future__ import annotations

import logging
import re
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

from ..models import AttendanceEntry, DateRange, Person
from ..store import AttendanceStore
from ..utils import format_number, plural
from ..working_days import WEEKDAY_NAMES, day_of_week, format_date_nice, get_working_days
from .intent_router import classify_intent
from .person_resolver import resolve_people
from .schedule_provider import get_holiday_set, get_schedule, get_team_presence, presence_score
from .schemas import SimpleIntent
from .time_resolver import resolve_time_period

logger = logging.getLogger(__name__)

_NAME_PATTERNS = [
    re.compile(r"\bis\s+(\w+)\s+(?:on|in|coming|going|working)", re.IGNORECASE),
    re.compile(r"\bwhen\s+is\s+(\w+)\s+(?:coming|going|in)", re.IGNORECASE),
    re.compile(r"\bwhen\s+will\s+(\w+)\s+(?:be|come)", re.IGNORECASE),
    re.compile(r"\bwhere\s+is\s+(\w+)", re.IGNORECASE),
    re.compile(r"\b(\w+)\s+coming\s+to\s+office", re.IGNORECASE),
    re.compile(r"\b(\w+)'s\s+(?:schedule|office days|leave days|leaves)", re.IGNORECASE),
]
_NAME_STOP_WORDS = frozenset({
    "there", "anyone", "everyone", "someone", "somebody", "the", "any", "most", "many",
    "that", "this", "next", "all", "who", "it", "he", "she", "they", "office", "team",
})


def _period(date_range: DateRange) -> str:
  label = date_range.label
  if label in ("today", "tomorrow", "yesterday") or label.startswith(("this ", "next ", "last ")):
    return label
  if date_range.start == date_range.end:
    return f"on {format_date_nice(date_range.start)}"
  return f"for {label[:1].upper()}{label[1:]}"


def extract_person_name(question: str) -> Optional[str]:
  for pattern in _NAME_PATTERNS:
    match = pattern.search(question)
    if match:
      name = match.group(1).lower()
      if name not in _NAME_STOP_WORDS:
        return name
  return None


def _half_day_portion(entry: AttendanceEntry) -> str:
  return "in the office" if entry.working_portion == "office" else "working from home"


# ---------------------------------------------------------------------------
#  Personal attendance
# ---------------------------------------------------------------------------

async def answer_personal_attendance(question: str,
                                     caller: Person,
                                     store: AttendanceStore,
                                     today: Optional[date] = None) -> str:
  date_range = resolve_time_period(question, today=today)
  schedule = await get_schedule(store, caller, date_range)
  stats = schedule.stats
  period = _period(date_range)
  q = question.lower()

  office = format_number(stats.office_days)
  leave = format_number(stats.leave_days)
  wfh = format_number(stats.wfh_days)
  percent = round(stats.office_percent)
  total = stats.total_working_days

  if date_range.start == date_range.end:
    if not schedule.working_days:
      return f"{format_date_nice(date_range.start)} is not a working day (it may be a weekend or holiday)."
    entry = schedule.entry_map.get(schedule.working_days[0])
    if entry is not None and entry.status == "office":
      return f"Yes, you are scheduled to be in the office {period}."
    if entry is not None and entry.status == "leave":
      if entry.leave_duration == "half":
        return f"You are on half-day leave {period}. You'll be {_half_day_portion(entry)} for the remaining half."
      return f"You are on leave {period}."
    if entry is None:
      return f"You are working from home (WFH) {period}. No office or leave entry found."
    return f"You are working from home (WFH) {period}."

  if re.search(r"percent|%", q):
    return (f"Your in-office percentage {period} is {percent}%.\n\n"
            f"You are scheduled to be in the office for {office} of {total} working days.")

  if re.search(r"how many.*office", q):
    return f"You have {office} office days {period} (out of {total} working days, {percent}%)."

  if re.search(r"how many.*leave", q):
    return f"You have {leave} leave days {period} (out of {total} working days)."

  if re.search(r"mostly.*(wfh|work from home)", q):
    if stats.wfh_days > stats.office_days and stats.wfh_days > stats.leave_days:
      return (f"Yes, you are mostly working from home {period}. You have {wfh} WFH days, "
              f"{office} office days, and {leave} leave days out of {total} working days.")
    return (f"No, you are not mostly WFH {period}. You have {office} office days, "
            f"{wfh} WFH days, and {leave} leave days out of {total} working days.")

  return (f"Here's your attendance summary {period}:\n\n"
          f"• Office: {office} days ({percent}%)\n"
          f"• WFH: {wfh} days\n"
          f"• Leave: {leave} days\n"
          f"• Total working days: {total}\n\n"
          "Note: Half-day leave counts as 0.5 leave day, with the working portion "
          "contributing to office or WFH.")


# ---------------------------------------------------------------------------
#  Team presence
# ---------------------------------------------------------------------------

async def _answer_named_person(question: str,
                               name: str,
                               caller: Person,
                               store: AttendanceStore,
                               date_range: DateRange) -> str:
  resolution = await resolve_people([name], caller, store)
  if not resolution.resolved:
    return resolution.clarification or f'I couldn\'t find anyone named "{name}".'

  person = resolution.resolved[0]
  schedule = await get_schedule(store, person, date_range)
  who = person.display_name
  period = _period(date_range)
  q = question.lower()

  if date_range.start == date_range.end:
    if not schedule.working_days:
      return f"{format_date_nice(date_range.start)} is not a working day (it may be a weekend or holiday)."
    day_text = format_date_nice(date_range.start)
    entry = schedule.entry_map.get(date_range.start)
    if entry is not None and entry.status == "office":
      return f"{who} is scheduled to be in the office on {day_text}."
    if entry is not None and entry.status == "leave":
      if entry.leave_duration == "half":
        return f"{who} is on half-day leave on {day_text}, and {_half_day_portion(entry)} for the remaining half."
      return f"{who} is on leave on {day_text}."
    return f"{who} is working from home (WFH) on {day_text}."

  office_dates = [d for d in schedule.working_days
                  if d in schedule.entry_map and schedule.entry_map[d].status == "office"]
  leave_dates = [d for d in schedule.working_days
                 if d in schedule.entry_map and schedule.entry_map[d].status == "leave"]

  if "leave" in q:
    if not leave_dates:
      return f"{who} has no leave days {period}."
    return f"{who}'s leave days {period}:\n" + "\n".join(f"• {format_date_nice(d)}" for d in leave_dates)

  if re.search(r"office|coming", q):
    if not office_dates:
      return f"{who} has no office days planned {period}."
    return (f"{who}'s office days {period} ({len(office_dates)} {plural(len(office_dates), 'day')}):\n"
            + "\n".join(f"• {format_date_nice(d)}" for d in office_dates))

  other = len(schedule.working_days) - len(office_dates) - len(leave_dates)
  return (f"{who}'s schedule {period}: {len(office_dates)} office, {len(leave_dates)} leave, "
          f"{other} WFH out of {len(schedule.working_days)} working days.")


async def _answer_who(question: str, store: AttendanceStore, date_range: DateRange) -> str:
  period = _period(date_range)
  users = await store.list_active_users()
  holiday_set = await get_holiday_set(store, date_range)
  working_days = get_working_days(date_range.start, date_range.end, holiday_set)
  if not working_days:
    return f"There are no working days in the requested period ({date_range.label}). It may be a weekend or holiday."

  entries = await store.get_entries([u.id for u in users], date_range.start, date_range.end)
  by_day: Dict[str, Dict[str, AttendanceEntry]] = defaultdict(dict)
  for entry in entries:
    by_day[entry.date][entry.user_id] = entry

  if len(working_days) == 1:
    day = working_days[0]
    day_text = format_date_nice(day)
    office_users: List[str] = []
    leave_users: List[str] = []
    for user in users:
      entry = by_day[day].get(user.id)
      if entry is None:
        continue
      if entry.status == "office":
        office_users.append(user.display_name)
      elif entry.status == "leave":
        if entry.leave_duration == "half":
          portion = "office" if entry.working_portion == "office" else "WFH"
          leave_users.append(f"{user.display_name} (½ leave, {portion} other half)")
        else:
          leave_users.append(user.display_name)

    if "leave" in question.lower():
      if not leave_users:
        return f"No one is on leave on {day_text}."
      return f"People on leave on {day_text} ({len(leave_users)}):\n" + "\n".join(f"• {n}" for n in leave_users)
    if not office_users:
      return f"No one is scheduled to be in the office on {day_text}."
    return f"People in office on {day_text} ({len(office_users)}):\n" + "\n".join(f"• {n}" for n in office_users)

  lines = []
  for day in working_days:
    count = sum(1 for e in by_day[day].values() if presence_score(e) > 0)
    lines.append(f"• {format_date_nice(day)}: {count} in office")
  return f"Office attendance {period}:\n" + "\n".join(lines)


async def answer_team_presence(question: str,
                               caller: Person,
                               store: AttendanceStore,
                               today: Optional[date] = None) -> str:
  date_range = resolve_time_period(question, today=today)
  name = extract_person_name(question)
  if name:
    return await _answer_named_person(question, name, caller, store, date_range)
  if re.search(r"\bwho\b", question, re.IGNORECASE):
    return await _answer_who(question, store, date_range)
  return (f"I understood you're asking about team presence {_period(date_range)}, but I need a bit more "
          'detail. Try asking "Who is in office today?" or "Is [name] on leave tomorrow?"')


# ---------------------------------------------------------------------------
#  Team analytics
# ---------------------------------------------------------------------------

def _people(count: int) -> str:
  return f"{count} {plural(count, 'person', 'people')}"


async def answer_team_analytics(question: str,
                                store: AttendanceStore,
                                today: Optional[date] = None) -> str:
  date_range = resolve_time_period(question, today=today)
  period = _period(date_range)
  q = question.lower()
  presence = await get_team_presence(store, date_range)
  if not presence:
    return f"There are no working days in the requested period ({date_range.label})."

  team_size = presence[0].total_team
  if len(presence) == 1:
    day = presence[0]
    verb = "is" if day.count == 1 else "are"
    return (f"{_people(day.count)} {verb} scheduled to be in the office on {format_date_nice(day.date)} "
            f"(out of {team_size} team members).")

  least = bool(re.search(r"\b(least|lowest|minimum|fewest|quietest)\b", q))

  if re.search(r"\b(weekday|which day of the week|day of week)\b", q):
    totals: Dict[str, List[int]] = defaultdict(list)
    for day in presence:
      totals[day_of_week(day.date)].append(day.count)
    averages = {name: sum(counts) / len(counts) for name, counts in totals.items()}
    ordered = [name for name in WEEKDAY_NAMES if name in averages]
    target = min(averages.values()) if least else max(averages.values())
    winners = [name for name in ordered if averages[name] == target]
    lines = "\n".join(f"• {name}: {averages[name]:.1f} on average" for name in ordered)
    which = "lowest" if least else "highest"
    return (f"{', '.join(winners)} {'has' if len(winners) == 1 else 'have'} the {which} average office "
            f"attendance {period}.\n\n{lines}")

  if re.search(r"how many (people|employees)", q):
    average = sum(d.count for d in presence) / len(presence)
    peak = max(presence, key=lambda d: d.count)
    lines = "\n".join(f"• {format_date_nice(d.date)}: {_people(d.count)}" for d in presence)
    return (f"Office attendance {period} ({len(presence)} working days, avg {average:.1f}/day, "
            f"peak {peak.count} on {format_date_nice(peak.date)}):\n{lines}")

  target = min(d.count for d in presence) if least else max(d.count for d in presence)
  days = [d for d in presence if d.count == target]
  lines = "\n".join(
      f"• {format_date_nice(d.date)} ({d.count} {plural(d.count, 'employee')})" for d in days)
  which = "lowest" if least else "highest"
  return f"The {which} office attendance {period} is on:\n{lines}"


# ---------------------------------------------------------------------------
#  Events
# ---------------------------------------------------------------------------

def _event_line(event, with_type: bool = False) -> str:
  line = f"• {format_date_nice(event.date)}: {event.title}"
  if event.description:
    line += f" ({event.description})"
  if with_type and event.event_type:
    line += f" [{event.event_type}]"
  return line


async def answer_event_query(question: str,
                             store: AttendanceStore,
                             today: Optional[date] = None) -> str:
  date_range = resolve_time_period(question, today=today)
  period = _period(date_range)
  events = await store.get_events(date_range.start, date_range.end)
  if not events:
    return f"There are no events scheduled {period}."

  q = question.lower()
  if re.search(r"mandatory office|must be in office", q):
    mandatory = [e for e in events
                 if (e.event_type or "").lower() == "mandatory-office" or "mandatory" in e.title.lower()]
    if not mandatory:
      return f"There are no mandatory office days {period}."
    return f"Mandatory office days {period}:\n" + "\n".join(_event_line(e) for e in mandatory)

  if "party" in q:
    parties = [e for e in events
               if "party" in e.title.lower() or (e.event_type or "").lower() == "team-party"]
    if not parties:
      return f"No team party events found {period}."
    return f"Team party events {period}:\n" + "\n".join(_event_line(e) for e in parties)

  return f"Events {period} ({len(events)}):\n" + "\n".join(_event_line(e, with_type=True) for e in events)


# ---------------------------------------------------------------------------
#  Entry point
# ---------------------------------------------------------------------------

async def answer_simple(question: str,
                        caller: Person,
                        *,
                        store: AttendanceStore,
                        today: Optional[date] = None,
                        intent: Optional[SimpleIntent] = None) -> Optional[str]:
  """Deterministic answer for a simple question, or None when it should go to the full pipeline."""
  q = (question or "").strip()
  resolved_intent = intent or classify_intent(q)
  try:
    if resolved_intent == "personal_attendance":
      return await answer_personal_attendance(q, caller, store, today)
    if resolved_intent == "team_presence":
      return await answer_team_presence(q, caller, store, today)
    if resolved_intent == "team_analytics":
      return await answer_team_analytics(q, store, today)
    if resolved_intent == "event_query":
      return await answer_event_query(q, store, today)
    return None
  except Exception:
    logger.exception("[FAST PATH] handler failed: intent=%s user=%s question=%r",
                     resolved_intent, caller.id, q)
    return None

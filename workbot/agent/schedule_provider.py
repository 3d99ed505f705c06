from __future__ import annotations

import asyncio
from typing import Dict, Iterable, List, Optional, Set

from ..models import AttendanceEntry, DateRange, Person
from ..store import AttendanceStore
from ..working_days import get_working_days
from .schemas import AttendanceStats, Coverage, PersonSchedule, TeamPresenceDay


def presence_score(entry: Optional[AttendanceEntry]) -> float:
  """1 for an office day, 0.5 for half-day leave with the other half in office, else 0."""
  if entry is None:
    return 0.0
  if entry.status == "office":
    return 1.0
  if entry.status == "leave" and entry.leave_duration == "half" and entry.working_portion == "office":
    return 0.5
  return 0.0


def is_full_leave(entry: Optional[AttendanceEntry]) -> bool:
  return entry is not None and entry.status == "leave" and entry.leave_duration != "half"


def compute_attendance_stats(entry_map: Dict[str, AttendanceEntry],
                             working_days: List[str]) -> AttendanceStats:
  office_days = 0.0
  leave_days = 0.0
  for day in working_days:
    entry = entry_map.get(day)
    if entry is None:
      continue
    if entry.status == "office":
      office_days += 1
    elif entry.status == "leave":
      if entry.leave_duration == "half":
        leave_days += 0.5
        if entry.working_portion == "office":
          office_days += 0.5
      else:
        leave_days += 1
  total = len(working_days)
  return AttendanceStats(
      total_working_days=total,
      office_days=office_days,
      leave_days=leave_days,
      wfh_days=total - office_days - leave_days,
      office_percent=(office_days / total * 100) if total > 0 else 0.0,
  )


def compute_coverage(person: Person,
                     entry_map: Dict[str, AttendanceEntry],
                     working_days: List[str]) -> Coverage:
  days_with_entries = sum(1 for d in working_days if d in entry_map)
  total = len(working_days)
  ratio = days_with_entries / total if total > 0 else 0.0
  if days_with_entries == 0:
    level = "none"
  elif ratio < 0.4:
    level = "low"
  elif ratio < 0.8:
    level = "medium"
  else:
    level = "high"
  return Coverage(
      user_id=person.id,
      name=person.display_name,
      ratio=ratio,
      days_with_entries=days_with_entries,
      total_working_days=total,
      level=level,
  )


async def get_holiday_set(store: AttendanceStore, date_range: DateRange) -> Set[str]:
  holidays = await store.get_holidays(date_range.start, date_range.end)
  return {h.date for h in holidays}


async def get_schedule(store: AttendanceStore,
                       person: Person,
                       date_range: DateRange,
                       holidays: Optional[Iterable[str]] = None) -> PersonSchedule:
  if holidays is None:
    holiday_set, entries = await asyncio.gather(
        get_holiday_set(store, date_range),
        store.get_entries([person.id], date_range.start, date_range.end),
    )
  else:
    holiday_set = set(holidays)
    entries = await store.get_entries([person.id], date_range.start, date_range.end)

  working_days = get_working_days(date_range.start, date_range.end, holiday_set)
  entry_map = {e.date: e for e in entries}
  return PersonSchedule(
      person=person,
      date_range=date_range,
      entry_map=entry_map,
      stats=compute_attendance_stats(entry_map, working_days),
      working_days=working_days,
      coverage=compute_coverage(person, entry_map, working_days),
  )


async def get_multiple_schedules(store: AttendanceStore,
                                 people: List[Person],
                                 date_range: DateRange) -> List[PersonSchedule]:
  # Holidays are fetched once for everyone.
  holiday_set = await get_holiday_set(store, date_range)
  return list(await asyncio.gather(
      *(get_schedule(store, p, date_range, holiday_set) for p in people)))


async def get_team_presence(store: AttendanceStore, date_range: DateRange) -> List[TeamPresenceDay]:
  users = await store.list_active_users()
  names = {u.id: u.display_name for u in users}
  holiday_set, entries = await asyncio.gather(
      get_holiday_set(store, date_range),
      store.get_entries(list(names.keys()), date_range.start, date_range.end),
  )
  working_days = get_working_days(date_range.start, date_range.end, holiday_set)

  by_date: Dict[str, Dict[str, AttendanceEntry]] = {}
  for entry in entries:
    by_date.setdefault(entry.date, {})[entry.user_id] = entry

  presence: List[TeamPresenceDay] = []
  for day in working_days:
    office_users = [
        names.get(uid, uid)
        for uid, entry in by_date.get(day, {}).items()
        if presence_score(entry) > 0
    ]
    presence.append(TeamPresenceDay(
        date=day,
        office_users=office_users,
        count=len(office_users),
        total_team=len(users),
    ))
  return presence

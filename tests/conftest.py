from __future__ import annotations

import json
from datetime import date

import pytest

from workbot.models import AttendanceEntry, Holiday, OfficeEvent, Person, UserRecord
from workbot.store import InMemoryStore

# Wednesday. March 2026 has 22 weekdays; the 20th is a holiday.
TODAY = date(2026, 3, 4)


def _office(user_id: str, *days: str):
  return [AttendanceEntry(user_id=user_id, date=d, status="office") for d in days]


@pytest.fixture
def today() -> date:
  return TODAY


@pytest.fixture
def store() -> InMemoryStore:
  users = [
      UserRecord(id="u1", name="Alice Fernandes", favorites=["u2", "u3"]),
      UserRecord(id="u2", name="Rahul Verma"),
      UserRecord(id="u3", name="Bala Subramanian"),
      UserRecord(id="u4", name="Priya Nair"),
      UserRecord(id="u5", name="Priya Sharma"),
      UserRecord(id="u6", name="Rahul Old", is_active=False),
  ]
  entries = [
      *_office("u1", "2026-03-02", "2026-03-03", "2026-03-04", "2026-03-05", "2026-03-09", "2026-03-10"),
      AttendanceEntry(user_id="u1", date="2026-03-11", status="leave", leave_duration="half",
                      half_day_portion="first-half", working_portion="office"),
      *_office("u2", "2026-03-02", "2026-03-03", "2026-03-09"),
      AttendanceEntry(user_id="u2", date="2026-03-04", status="leave", leave_duration="full"),
      *_office("u3", "2026-03-03", "2026-03-10", "2026-04-07", "2026-04-14"),
      *_office("u4", "2026-03-05"),
      AttendanceEntry(user_id="u5", date="2026-03-05", status="wfh"),
  ]
  holidays = [Holiday(date="2026-03-20", name="Spring holiday")]
  events = [
      OfficeEvent(date="2026-03-27", title="Team party", event_type="team-party"),
      OfficeEvent(date="2026-03-12", title="Town hall", description="All hands",
                  event_type="mandatory-office"),
  ]
  return InMemoryStore(users=users, entries=entries, holidays=holidays, events=events)


@pytest.fixture
def alice() -> Person:
  return Person(id="u1", display_name="Alice Fernandes")


def _model_reply(**fields) -> str:
  payload = {
      "intent": "out_of_scope",
      "people": [],
      "timeRange": "this month",
      "constraints": [],
      "optimizationGoal": None,
      "simulationParams": {"proposedDays": [], "proposedDayOfWeek": []},
      "needsClarification": False,
      "ambiguities": [],
      "outOfScopeReason": None,
  }
  payload.update(fields)
  return json.dumps(payload)


@pytest.fixture
def model_reply():
  """Build the JSON string an extraction model would return."""
  return _model_reply

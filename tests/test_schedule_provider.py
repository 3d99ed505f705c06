import pytest

from workbot.agent.schedule_provider import (
    compute_coverage,
    get_multiple_schedules,
    get_schedule,
    get_team_presence,
    presence_score,
)
from workbot.models import AttendanceEntry, DateRange, Person

MARCH = DateRange(start="2026-03-01", end="2026-03-31", label="this month")
APRIL = DateRange(start="2026-04-01", end="2026-04-30", label="next month")


@pytest.mark.asyncio
async def test_schedule_stats_use_half_days(store, alice):
  schedule = await get_schedule(store, alice, MARCH)
  stats = schedule.stats
  assert stats.total_working_days == 21
  assert "2026-03-20" not in schedule.working_days
  assert stats.office_days == 6.5
  assert stats.leave_days == 0.5
  assert stats.wfh_days == 14
  assert stats.office_percent == pytest.approx(6.5 / 21 * 100)


@pytest.mark.asyncio
async def test_coverage_levels(store, alice):
  march = await get_schedule(store, alice, MARCH)
  assert march.coverage.level == "low"
  assert march.coverage.days_with_entries == 7
  april = await get_schedule(store, alice, APRIL)
  assert april.coverage.level == "none"


def test_coverage_thresholds():
  person = Person(id="x", display_name="X")
  days = [f"2026-03-{d:02d}" for d in (2, 3, 4, 5, 6, 9, 10, 11, 12, 13)]

  def level(n):
    entries = {d: AttendanceEntry(user_id="x", date=d, status="wfh") for d in days[:n]}
    return compute_coverage(person, entries, days).level

  assert level(0) == "none"
  assert level(3) == "low"
  assert level(4) == "medium"
  assert level(7) == "medium"
  assert level(8) == "high"


def test_presence_score():
  half_office = AttendanceEntry(user_id="x", date="2026-03-02", status="leave",
                                leave_duration="half", working_portion="office")
  half_wfh = AttendanceEntry(user_id="x", date="2026-03-02", status="leave",
                             leave_duration="half", working_portion="wfh")
  assert presence_score(None) == 0
  assert presence_score(half_office) == 0.5
  assert presence_score(half_wfh) == 0


@pytest.mark.asyncio
async def test_multiple_schedules_keep_order(store, alice):
  bala = Person(id="u3", display_name="Bala Subramanian")
  schedules = await get_multiple_schedules(store, [bala, alice], MARCH)
  assert [s.user_id for s in schedules] == ["u3", "u1"]
  assert schedules[0].working_days == schedules[1].working_days


@pytest.mark.asyncio
async def test_team_presence_counts_people_in_office(store):
  presence = await get_team_presence(store, DateRange(start="2026-03-02", end="2026-03-11", label="x"))
  by_date = {p.date: p for p in presence}
  assert by_date["2026-03-03"].count == 3
  assert set(by_date["2026-03-03"].office_users) == {"Alice Fernandes", "Rahul Verma", "Bala Subramanian"}
  assert by_date["2026-03-03"].total_team == 5
  # Rahul is on leave on the 4th
  assert by_date["2026-03-04"].office_users == ["Alice Fernandes"]
  # half-day leave with the other half in office still counts as present
  assert by_date["2026-03-11"].count == 1

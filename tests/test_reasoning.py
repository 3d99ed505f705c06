import pytest

from workbot.agent.reasoning import (
    compute_comparison,
    compute_multi_person_overlap,
    compute_overlap,
    compute_team_avg_comparison,
    compute_trend,
    expand_day_of_week,
    find_optimal_days,
    parse_day_constraints,
    simulate_schedule,
)
from workbot.agent.schedule_provider import get_multiple_schedules, get_schedule, get_team_presence
from workbot.models import DateRange, Person

MARCH = DateRange(start="2026-03-01", end="2026-03-31", label="this month")
FEBRUARY = DateRange(start="2026-02-01", end="2026-02-28", label="last month")
APRIL = DateRange(start="2026-04-01", end="2026-04-30", label="next month")

RAHUL = Person(id="u2", display_name="Rahul Verma")
BALA = Person(id="u3", display_name="Bala Subramanian")
PRIYA_N = Person(id="u4", display_name="Priya Nair")
PRIYA_S = Person(id="u5", display_name="Priya Sharma")


@pytest.mark.asyncio
async def test_comparison_is_symmetric(store, alice):
  a = await get_schedule(store, alice, MARCH)
  r = await get_schedule(store, RAHUL, MARCH)
  forward = compute_comparison(a, r)
  backward = compute_comparison(r, a)
  assert forward.who_has_more == backward.who_has_more == "Alice Fernandes"
  assert forward.diff == backward.diff == 3.5
  assert forward.percentage_diff == pytest.approx(backward.percentage_diff)


@pytest.mark.asyncio
async def test_equal_office_days_are_tied(store):
  a, b = await get_multiple_schedules(store, [PRIYA_N, PRIYA_S], APRIL)
  result = compute_comparison(a, b)
  assert result.who_has_more == "tied"
  assert result.diff == 0


@pytest.mark.asyncio
async def test_team_average_excludes_the_person(store, alice):
  people = [alice, RAHUL, BALA, PRIYA_N, PRIYA_S]
  schedules = await get_multiple_schedules(store, people, MARCH)
  result = compute_team_avg_comparison(schedules[0], schedules)
  assert result.team_size == 4
  assert result.team_avg_office_days == pytest.approx(1.5)
  assert result.above_or_below == "above"
  assert result.answers_intent == "team_avg_comparison"


@pytest.mark.asyncio
async def test_team_average_alone_is_at(store, alice):
  mine = await get_schedule(store, alice, APRIL)
  result = compute_team_avg_comparison(mine, [mine])
  assert result.above_or_below == "at"
  assert result.diff == 0


@pytest.mark.asyncio
async def test_overlap_bounds(store, alice):
  a = await get_schedule(store, alice, MARCH)
  r = await get_schedule(store, RAHUL, MARCH)
  result = compute_overlap(a, r)
  assert result.full_overlap_days == ["2026-03-02", "2026-03-03", "2026-03-09"]
  assert result.total_overlap == 3
  assert result.total_overlap <= min(a.stats.office_days, r.stats.office_days)
  assert result.total_overlap <= result.working_days_count


@pytest.mark.asyncio
async def test_overlap_reports_half_days_as_partial(store, alice):
  a = await get_schedule(store, alice, MARCH)
  result = compute_overlap(a, a)
  assert result.partial_overlap_days == ["2026-03-11"]
  assert result.total_overlap == 6.5


@pytest.mark.asyncio
async def test_multi_person_overlap(store, alice):
  schedules = await get_multiple_schedules(store, [alice, RAHUL, BALA], MARCH)
  result = compute_multi_person_overlap(schedules)
  assert result.all_in_office_days == ["2026-03-03"]
  assert result.working_days_count == 21


def test_day_constraint_parsing():
  excluded, only = parse_day_constraints(["not on Fridays", "only Tuesdays and Thursdays"])
  assert excluded == {"Friday"}
  assert only == {"Tuesday", "Thursday"}


@pytest.mark.asyncio
async def test_only_constraint_is_never_violated(store, alice):
  mine, bala = await get_multiple_schedules(store, [alice, BALA], MARCH)
  presence = await get_team_presence(store, MARCH)
  result = find_optimal_days(user_schedule=mine, target_schedules=[bala], team_presence=presence,
                             goal="maximize_overlap", constraints=["only Tuesdays"])
  assert result.recommendations
  assert all(r.day == "Tuesday" for r in result.recommendations)
  assert all(MARCH.start <= r.date <= MARCH.end for r in result.recommendations)
  assert [r.date for r in result.recommendations[:2]] == ["2026-03-03", "2026-03-10"]


@pytest.mark.asyncio
async def test_excluded_days_and_full_leave_are_skipped(store):
  rahul = await get_schedule(store, RAHUL, MARCH)
  presence = await get_team_presence(store, MARCH)
  result = find_optimal_days(user_schedule=rahul, target_schedules=[], team_presence=presence,
                             goal="least_crowded", constraints=["avoid Fridays"])
  dates = [r.date for r in result.recommendations]
  assert "2026-03-04" not in dates
  assert all(r.day != "Friday" for r in result.recommendations)
  assert len(dates) <= 5


@pytest.mark.asyncio
async def test_avoid_ranks_days_without_the_target_first(store, alice):
  mine, rahul = await get_multiple_schedules(store, [alice, RAHUL], MARCH)
  presence = await get_team_presence(store, MARCH)
  result = find_optimal_days(user_schedule=mine, target_schedules=[rahul], team_presence=presence,
                             goal="minimize_overlap", answers_intent="avoid")
  assert result.answers_intent == "avoid"
  assert result.recommendations[0].date not in {"2026-03-02", "2026-03-03", "2026-03-09"}
  assert "Rahul Verma is NOT in office" in result.recommendations[0].reasons


@pytest.mark.asyncio
async def test_impossible_constraints_give_empty_list(store, alice):
  mine = await get_schedule(store, alice, MARCH)
  result = find_optimal_days(user_schedule=mine, target_schedules=[], team_presence=[],
                             goal="minimize_commute", constraints=["only Saturdays"])
  assert result.recommendations == []


@pytest.mark.asyncio
async def test_simulation_over_weekday_pattern(store, alice):
  mine, bala = await get_multiple_schedules(store, [alice, BALA], APRIL)
  proposed = expand_day_of_week(["tuesday"], mine.working_days)
  assert proposed == ["2026-04-07", "2026-04-14", "2026-04-21", "2026-04-28"]
  result = simulate_schedule(proposed, bala)
  assert result.overlap_days == ["2026-04-07", "2026-04-14"]
  assert result.overlap_percent == 50


@pytest.mark.asyncio
async def test_trend_direction(store, alice):
  current = await get_schedule(store, alice, MARCH)
  previous = await get_schedule(store, alice, FEBRUARY)
  result = compute_trend(current, previous, "this month", "last month")
  assert result.direction == "more"
  assert result.diff == 6.5
  same = compute_trend(previous, previous, "this month", "last month")
  assert same.direction == "same"
  assert same.diff == 0

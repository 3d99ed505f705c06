from unittest.mock import AsyncMock, patch

import pytest

from workbot.agent.response_agent import (
    build_clarification_response,
    build_coverage_warnings,
    build_out_of_scope_response,
    format_comparison,
    format_simulation,
    format_team_avg_comparison,
    render,
)
from workbot.agent.schemas import (
    Ambiguity,
    AttendanceStats,
    ComparisonResult,
    Coverage,
    NamedStats,
    OverlapResult,
    SimulationResult,
    TeamAvgComparisonResult,
)

COMPLETE = "workbot.agent.response_agent.complete"


def _stats(office: float, total: int = 20) -> AttendanceStats:
  return AttendanceStats(total_working_days=total, office_days=office, leave_days=0,
                         wfh_days=total - office, office_percent=office / total * 100)


def _coverage(name: str, days: int, level: str, total: int = 20) -> Coverage:
  return Coverage(user_id=name.lower(), name=name, ratio=days / total, days_with_entries=days,
                  total_working_days=total, level=level)


def test_comparison_leads_with_the_difference():
  result = ComparisonResult(user_a=NamedStats(name="Alice", stats=_stats(8)),
                            user_b=NamedStats(name="Rahul", stats=_stats(10)),
                            diff=2, who_has_more="Rahul", percentage_diff=10)
  text = format_comparison(result)
  assert text.startswith("Rahul has 2 more office days than Alice.")
  assert "• Rahul: 10 office days (50%)" in text
  assert "Difference: 10 percentage points" in text


def test_comparison_tied():
  result = ComparisonResult(user_a=NamedStats(name="Alice", stats=_stats(5)),
                            user_b=NamedStats(name="Rahul", stats=_stats(5)),
                            diff=0, who_has_more="tied", percentage_diff=0)
  assert format_comparison(result) == "Alice and Rahul both have 5 office days (25% and 25%)."


def test_team_average_small_gap():
  result = TeamAvgComparisonResult(user=NamedStats(name="Alice", stats=_stats(10)), team_size=4,
                                   team_avg_office_percent=49.8, team_avg_office_days=9.96,
                                   diff=0.2, above_or_below="above")
  text = format_team_avg_comparison(result)
  assert text.startswith("Alice is above the team average by less than 1 percentage point.")
  assert "Team average (4 people): 50%" in text


def test_simulation_without_overlap():
  result = SimulationResult(proposed_days=["2026-03-03"], target_name="Bala", total_proposed=1)
  text = format_simulation(result)
  assert text.startswith("If you go on those 1 day, you'll overlap with Bala on 0 days (0%).")
  assert "Bala is not scheduled to be in the office on any of those days." in text


def test_coverage_warnings():
  text = build_coverage_warnings([
      _coverage("Alice", 0, "none"),
      _coverage("Rahul", 5, "low"),
      _coverage("Bala", 12, "medium"),
      _coverage("Priya", 19, "high"),
  ])
  lines = text.split("\n")
  assert lines == [
      "⚠️ Alice hasn't set their schedule for this period yet.",
      "⚠️ Rahul's schedule is only 25% set (5 of 20 days). Results may change.",
      "Note: Bala's schedule is 60% set (12 of 20 days). Some data may be incomplete.",
  ]


def test_out_of_scope_lists_capabilities():
  text = build_out_of_scope_response("share salary details")
  assert "I can't share salary details." in text
  assert "• attendance trends over time" in text
  assert "I can't" not in build_out_of_scope_response()


def test_clarification_numbers_options():
  text = build_clarification_response([
      Ambiguity(type="person", question="Which Priya?", options=["Priya Nair", "Priya Sharma"]),
  ])
  assert text == "Which Priya?\n  1. Priya Nair\n  2. Priya Sharma"


OVERLAP = OverlapResult(user_a="Alice", user_b="Rahul", total_overlap=1.5,
                        full_overlap_days=["2026-03-02"], partial_overlap_days=["2026-03-11"],
                        working_days_count=21)


@pytest.mark.asyncio
async def test_render_without_paraphrase_skips_model():
  with patch(COMPLETE, new=AsyncMock(return_value="unused")) as mock:
    text = await render(OVERLAP, [_coverage("Rahul", 5, "low")], "overlap?")
  mock.assert_not_awaited()
  assert text.startswith("Alice and Rahul have 1.5 overlapping office days out of 21 working days.")
  assert "• Monday, Mar 2" in text
  assert "• Wednesday, Mar 11 (partial, half-day)" in text
  assert text.endswith("Results may change.")


@pytest.mark.asyncio
async def test_render_appends_summary():
  with patch(COMPLETE, new=AsyncMock(return_value="You two share one and a half days.")):
    text = await render(OVERLAP, [], "overlap?", allow_paraphrase=True)
  assert text.endswith("\n\n**Summary:** You two share one and a half days.")


@pytest.mark.asyncio
async def test_render_survives_paraphrase_failure():
  with patch(COMPLETE, new=AsyncMock(side_effect=RuntimeError("down"))):
    text = await render(OVERLAP, [], "overlap?", allow_paraphrase=True)
  assert "**Summary:**" not in text
  assert text.startswith("Alice and Rahul have 1.5")

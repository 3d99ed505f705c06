from workbot.agent.relevance_guard import NO_RESULT_MESSAGE, check_relevance
from workbot.agent.schemas import (
    AttendanceStats,
    ComparisonResult,
    NamedStats,
    OptimizationResult,
    OverlapResult,
    Recommendation,
    SimulationResult,
    TeamAvgComparisonResult,
)

STATS = AttendanceStats(total_working_days=20, office_days=10, leave_days=0, wfh_days=10, office_percent=50)


def _overlap():
  return OverlapResult(user_a="A", user_b="B", total_overlap=2, working_days_count=20)


def _team_avg():
  return TeamAvgComparisonResult(user=NamedStats(name="A", stats=STATS), team_size=3,
                                 team_avg_office_percent=40, team_avg_office_days=8,
                                 diff=10, above_or_below="above")


def test_missing_result_fails():
  result = check_relevance("comparison", None)
  assert not result.passed
  assert result.fallback_message == NO_RESULT_MESSAGE


def test_incompatible_tag_fails():
  result = check_relevance("optimize", _overlap())
  assert not result.passed
  assert result.fallback_message


def test_comparison_accepts_team_average():
  assert check_relevance("comparison", _team_avg()).passed
  direct = ComparisonResult(user_a=NamedStats(name="A", stats=STATS), user_b=NamedStats(name="B", stats=STATS),
                            diff=0, who_has_more="tied", percentage_diff=0)
  assert check_relevance("comparison", direct).passed


def test_optimization_family_is_interchangeable():
  result = OptimizationResult(answers_intent="optimize", goal="least_crowded",
                              recommendations=[Recommendation(date="2026-03-02", day="Monday", score=1)])
  assert check_relevance("avoid", result).passed
  assert check_relevance("meeting_plan", result).passed


def test_empty_recommendations_fail():
  result = check_relevance("avoid", OptimizationResult(answers_intent="avoid", goal="minimize_overlap"))
  assert not result.passed
  assert "relaxing your constraints" in result.fallback_message


def test_simulation_without_proposed_days_fails():
  empty = SimulationResult(target_name="Bala", total_proposed=0)
  result = check_relevance("simulate", empty)
  assert not result.passed
  assert "working days" in result.fallback_message


def test_unknown_intent_fails():
  assert not check_relevance("team_analytics", _overlap()).passed

import pytest

from workbot.agent.intent_router import (
    check_complexity_signals,
    classify_intent,
    is_team_aggregate_question,
    route_question,
)


@pytest.mark.parametrize("question,intent", [
    ("Am I in office today?", "personal_attendance"),
    ("How many office days do I have this month?", "personal_attendance"),
    ("Who is in office tomorrow?", "team_presence"),
    ("Is Rahul on leave today?", "team_presence"),
    ("When is the team party?", "event_query"),
    ("Which day has the most people in office this month?", "team_analytics"),
    ("Tell me a joke", "unknown"),
])
def test_classify_intent(question, intent):
  assert classify_intent(question) == intent


@pytest.mark.parametrize("question", [
    "Am I in office today?",
    "Who is in office tomorrow?",
    "Is Rahul on leave today?",
    "When is the team party?",
])
def test_simple_questions_take_fast_path(question):
  decision = route_question(question)
  assert decision.path == "fast"
  assert not decision.is_complex
  assert decision.signals == []


def test_unknown_intent_goes_slow():
  decision = route_question("Compare me and Rahul this month")
  assert decision.simple_intent == "unknown"
  assert decision.path == "slow"


def test_optimization_wording_goes_slow():
  decision = route_question("Which days should I go to avoid Rahul?")
  assert decision.path == "slow"
  assert "optimization" in decision.signals
  assert "ambiguous_goal" in decision.signals


def test_aggregate_wording_stays_fast():
  decision = route_question("Which weekday has the highest average attendance this month?")
  assert decision.simple_intent == "team_analytics"
  assert decision.signals == ["team_avg_comparison"]
  assert decision.path == "fast"


def test_hypothetical_team_question_goes_slow():
  decision = route_question("What if everyone skips Friday next week?")
  assert decision.simple_intent == "team_analytics"
  assert "simulation" in decision.signals
  assert decision.path == "slow"


def test_signals():
  assert "simulation" in check_complexity_signals("What if I go on Tuesdays?")
  assert "meeting_plan" in check_complexity_signals("When can I meet with Bala?")
  assert check_complexity_signals("Show me the pros and cons") == []


def test_team_aggregate_predicate():
  assert is_team_aggregate_question("Which day had the most people in office?")
  assert is_team_aggregate_question("How many employees are coming next week?")
  assert not is_team_aggregate_question("Is Rahul in office today?")
  assert not is_team_aggregate_question("What is the most popular lunch spot?")

from __future__ import annotations

from typing import Optional

from .schemas import GuardResult, OptimizationResult, ReasoningResult, SimulationResult

NO_RESULT_MESSAGE = "I don't have enough data to answer that question. Could you rephrase or provide more details?"

OPTIMIZATION_TAGS = frozenset({"optimize", "avoid", "meeting_plan"})

# Which result tags can answer each intent.
COMPATIBLE_TAGS = {
    "comparison": frozenset({"comparison", "team_avg_comparison"}),
    "overlap": frozenset({"overlap"}),
    "multi_person_coordination": frozenset({"multi_person_coordination"}),
    "optimize": OPTIMIZATION_TAGS,
    "avoid": OPTIMIZATION_TAGS,
    "meeting_plan": OPTIMIZATION_TAGS,
    "simulate": frozenset({"simulate"}),
    "trend": frozenset({"trend"}),
}

MISMATCH_MESSAGES = {
    "comparison": "I couldn't retrieve data for both people to make a comparison.",
    "overlap": "I couldn't compute the overlap. Please make sure both people have schedule data.",
    "multi_person_coordination": "I couldn't line up everyone's schedules. Please name at least two people who have schedule data.",
    "optimize": "Not enough schedule data to make recommendations.",
    "avoid": "Not enough schedule data to make recommendations.",
    "meeting_plan": "Not enough schedule data to make recommendations.",
    "simulate": "I couldn't run the simulation. Please make sure you specified valid days and a target person.",
    "trend": "I couldn't compare your attendance across the two periods.",
}


def check_relevance(intent: str, result: Optional[ReasoningResult]) -> GuardResult:
  """Reject results that don't answer the requested intent. Pure, no side effects."""
  if result is None:
    return GuardResult(passed=False, fallback_message=NO_RESULT_MESSAGE)

  tag = result.answers_intent
  allowed = COMPATIBLE_TAGS.get(intent)
  if allowed is None or tag not in allowed:
    return GuardResult(
        passed=False,
        fallback_message=MISMATCH_MESSAGES.get(intent, "I couldn't process that query. Please try rephrasing."),
    )

  if isinstance(result, OptimizationResult) and not result.recommendations:
    return GuardResult(
        passed=False,
        fallback_message="No suitable days found matching your criteria. Try relaxing your constraints.",
    )

  if isinstance(result, SimulationResult) and result.total_proposed == 0:
    return GuardResult(
        passed=False,
        fallback_message="No proposed days fell within the working days of the given period.",
    )

  return GuardResult(passed=True)

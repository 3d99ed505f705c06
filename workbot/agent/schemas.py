from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union, get_args

from pydantic import BaseModel, ConfigDict, Field

from ..models import AttendanceEntry, DateRange, Person

SimpleIntent = Literal[
    "personal_attendance",
    "team_presence",
    "team_analytics",
    "event_query",
    "unknown",
]

ComplexIntent = Literal[
    "comparison",
    "overlap",
    "avoid",
    "optimize",
    "simulate",
    "meeting_plan",
    "trend",
    "multi_person_coordination",
    "team_analytics",
    "clarify_needed",
    "out_of_scope",
    "explain_previous",
]

OptimizationGoal = Literal[
    "minimize_overlap",
    "maximize_overlap",
    "minimize_commute",
    "least_crowded",
    "maximize_team_presence",
]

COMPLEX_INTENTS = frozenset(get_args(ComplexIntent))
OPTIMIZATION_GOALS = frozenset(get_args(OptimizationGoal))


# ---------------------------------------------------------------------------
#  Router
# ---------------------------------------------------------------------------

class RoutingDecision(BaseModel):
  path: Literal["fast", "slow"]
  simple_intent: SimpleIntent
  is_complex: bool
  signals: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
#  Extraction
# ---------------------------------------------------------------------------

class Ambiguity(BaseModel):
  model_config = ConfigDict(extra="ignore")

  type: str = "person"
  question: str
  options: List[str] = Field(default_factory=list)


class SimulationParams(BaseModel):
  proposed_days: List[str] = Field(default_factory=list)
  proposed_day_of_week: List[str] = Field(default_factory=list)


class Extraction(BaseModel):
  intent: ComplexIntent = "out_of_scope"
  people: List[str] = Field(default_factory=list)
  time_range: str = "this month"
  constraints: List[str] = Field(default_factory=list)
  optimization_goal: Optional[OptimizationGoal] = None
  simulation_params: Optional[SimulationParams] = None
  needs_clarification: bool = False
  ambiguities: List[Ambiguity] = Field(default_factory=list)
  out_of_scope_reason: Optional[str] = None


# ---------------------------------------------------------------------------
#  Resolution + data
# ---------------------------------------------------------------------------

class PersonResolution(BaseModel):
  resolved: List[Person] = Field(default_factory=list)
  clarification: Optional[str] = None


class AttendanceStats(BaseModel):
  total_working_days: int
  office_days: float
  leave_days: float
  wfh_days: float
  office_percent: float  # unrounded


class Coverage(BaseModel):
  user_id: str
  name: str
  ratio: float
  days_with_entries: int
  total_working_days: int
  level: Literal["none", "low", "medium", "high"]


class PersonSchedule(BaseModel):
  person: Person
  date_range: DateRange
  entry_map: Dict[str, AttendanceEntry] = Field(default_factory=dict)
  stats: AttendanceStats
  working_days: List[str] = Field(default_factory=list)
  coverage: Coverage

  @property
  def user_id(self) -> str:
    return self.person.id

  @property
  def name(self) -> str:
    return self.person.display_name


class TeamPresenceDay(BaseModel):
  date: str
  office_users: List[str] = Field(default_factory=list)
  count: int = 0
  total_team: int = 0


# ---------------------------------------------------------------------------
#  Reasoning results (tagged by answers_intent)
# ---------------------------------------------------------------------------

class NamedStats(BaseModel):
  name: str
  stats: AttendanceStats


class ComparisonResult(BaseModel):
  answers_intent: Literal["comparison"] = "comparison"
  user_a: NamedStats
  user_b: NamedStats
  diff: float
  who_has_more: str  # a name, or "tied"
  percentage_diff: float


class TeamAvgComparisonResult(BaseModel):
  answers_intent: Literal["team_avg_comparison"] = "team_avg_comparison"
  user: NamedStats
  team_size: int
  team_avg_office_percent: float
  team_avg_office_days: float
  diff: float
  above_or_below: Literal["above", "below", "at"]


class OverlapResult(BaseModel):
  answers_intent: Literal["overlap"] = "overlap"
  user_a: str
  user_b: str
  total_overlap: float
  full_overlap_days: List[str] = Field(default_factory=list)
  partial_overlap_days: List[str] = Field(default_factory=list)
  zero_overlap_days: List[str] = Field(default_factory=list)
  working_days_count: int


class MultiPersonOverlapResult(BaseModel):
  answers_intent: Literal["multi_person_coordination"] = "multi_person_coordination"
  people: List[str] = Field(default_factory=list)
  all_in_office_days: List[str] = Field(default_factory=list)
  working_days_count: int = 0


class Recommendation(BaseModel):
  date: str
  day: str
  score: float
  reasons: List[str] = Field(default_factory=list)


class OptimizationResult(BaseModel):
  answers_intent: Literal["optimize", "avoid", "meeting_plan"]
  goal: str
  recommendations: List[Recommendation] = Field(default_factory=list)
  constraints: List[str] = Field(default_factory=list)


class SimulationResult(BaseModel):
  answers_intent: Literal["simulate"] = "simulate"
  proposed_days: List[str] = Field(default_factory=list)
  target_name: str
  overlap_days: List[str] = Field(default_factory=list)
  overlap_count: int = 0
  total_proposed: int = 0
  overlap_percent: float = 0.0


class TrendResult(BaseModel):
  answers_intent: Literal["trend"] = "trend"
  user_name: str
  current: AttendanceStats
  previous: AttendanceStats
  current_label: str
  previous_label: str
  diff: float
  direction: Literal["more", "less", "same"]


ReasoningResult = Annotated[
    Union[
        ComparisonResult,
        TeamAvgComparisonResult,
        OverlapResult,
        MultiPersonOverlapResult,
        OptimizationResult,
        SimulationResult,
        TrendResult,
    ],
    Field(discriminator="answers_intent"),
]


class GuardResult(BaseModel):
  passed: bool
  fallback_message: Optional[str] = None


class PipelineOutput(BaseModel):
  answer: str
  intent: str
  used_llm: bool

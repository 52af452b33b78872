from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple


class EmploymentType(str, Enum):
    SALARIED = "Salaried"
    HOURLY = "Hourly"
    SELF_EMPLOYED = "Self-Employed"
    NOT_EMPLOYED = "Not Currently Employed"


class ErrorsLevel(str, Enum):
    NEVER = "Never"
    SOMETIMES = "Sometimes"
    OFTEN = "Often"
    ALWAYS = "Always"


@dataclass(frozen=True)
class Disruptor:
    """Static description of a sleep disruptor offered in the audit."""

    id: str
    label: str
    weight: float
    affects: FrozenSet[str]
    solution: str = ""


@dataclass(frozen=True)
class SurveyInput:
    """Immutable snapshot of the audit answers.

    Defaults mirror the initial state of the questionnaire.
    """

    annual_income: float = 75000
    sleep_hours_per_night: float = 6
    poor_sleep_nights_per_week: int = 4
    employment_type: EmploymentType = EmploymentType.SALARIED
    checked_disruptors: FrozenSet[str] = field(default_factory=frozenset)
    work_days_per_week: int = 5
    morning_sharpness: int = 4
    afternoon_crash: bool = True
    errors_level: ErrorsLevel = ErrorsLevel.SOMETIMES
    medical_visits_per_year: float = 3
    avg_visit_cost: float = 125
    caffeine_monthly_cost: float = 60
    mattress_cost: float = 2500
    adjustable_base_cost: float = 1800

    def __post_init__(self) -> None:
        # Accept any iterable of ids but always store a frozenset.
        if not isinstance(self.checked_disruptors, frozenset):
            object.__setattr__(self, "checked_disruptors", frozenset(self.checked_disruptors))

    def replace(self, **changes: object) -> "SurveyInput":
        """Return a new snapshot with ``changes`` applied."""

        return replace(self, **changes)

    def to_dict(self) -> Dict[str, object]:
        payload = asdict(self)
        payload["employment_type"] = self.employment_type.value
        payload["errors_level"] = self.errors_level.value
        payload["checked_disruptors"] = sorted(self.checked_disruptors)
        return payload


@dataclass(frozen=True)
class RoiScenario:
    """Savings projection for one resolution assumption.

    ``payback_months``, ``payback_years`` and ``roi_percent`` are ``None`` when
    the figure is not applicable (no savings or no investment).
    """

    key: str
    label: str
    multiplier: float
    resolution_percent: int
    annual_savings: float
    monthly_savings: float
    payback_months: Optional[float]
    payback_years: Optional[float]
    five_year_net_gain: float
    roi_percent: Optional[float]


@dataclass(frozen=True)
class CostSlice:
    name: str
    value: int
    color: str


@dataclass(frozen=True)
class TimelinePoint:
    year: int
    do_nothing: int
    after_upgrade: int


@dataclass(frozen=True)
class Results:
    """Full output of one estimator run."""

    productivity_cost: float
    healthcare_cost: float
    stimulant_cost: float
    career_cost: float
    cognitive_decline_cost: float
    total_annual_cost: float
    cap_warning: bool
    total_investment: float
    base_resolution: float
    roi_model: str
    roi_scenarios: Tuple[RoiScenario, ...]
    chart_cost_breakdown: Tuple[CostSlice, ...]
    chart_timeline_data: Tuple[TimelinePoint, ...]
    effective_impairment: float = 0.0
    daily_earnings: float = 0.0

    def scenario(self, key: str) -> RoiScenario:
        for scenario in self.roi_scenarios:
            if scenario.key == key:
                return scenario
        raise KeyError(key)

    @property
    def moderate(self) -> RoiScenario:
        return self.scenario("moderate")

    @property
    def break_even_year(self) -> Optional[int]:
        from .engine import find_break_even_year

        return find_break_even_year(self.chart_timeline_data)

    def to_dict(self) -> Dict[str, object]:
        """Serialize every field to plain Python types."""

        payload = asdict(self)
        payload["roi_scenarios"] = [asdict(s) for s in self.roi_scenarios]
        payload["chart_cost_breakdown"] = [asdict(s) for s in self.chart_cost_breakdown]
        payload["chart_timeline_data"] = [asdict(p) for p in self.chart_timeline_data]
        payload["break_even_year"] = self.break_even_year
        return payload

import logging
import math
import os
from functools import lru_cache
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .models import CostSlice, EmploymentType, Results, RoiScenario, SurveyInput, TimelinePoint
from .reference_data import (
    COGNITIVE_DISRUPTORS,
    COST_CATEGORIES,
    FLAT_SCENARIO_MULTIPLIERS,
    HEALTHCARE_SURCHARGES,
    MISTAKE_RATES,
    PAIN_DISRUPTORS,
    PAIN_SURCHARGE,
    RESOLUTION_TIERS,
    SCENARIO_KEYS,
    TIERED_MULTIPLIER_CAP,
    TIERED_SCENARIO_FACTORS,
    TOP_RESOLUTION,
    disruptor_weight,
)

logger = logging.getLogger(__name__)

# ROI model used when callers do not ask for one explicitly. Supported:
#  - TIERED (default): investment-sized resolution fraction, capped at 92%
#  - FLAT: fixed 30% / 55% / 75% resolution regardless of spend
ROI_MODEL = os.getenv('SLEEPCOST_ROI_MODEL', 'TIERED').upper().strip()
ROI_MODELS = ('TIERED', 'FLAT')

WEEKS_PER_YEAR = 52
MORNING_IMPAIRMENT_WEIGHT = 0.40
AFTERNOON_SLUMP_PCT = 0.15
DISRUPTOR_BOOST_FACTOR = 0.30
IMPAIRMENT_CAP = 0.50

COGNITIVE_PENALTY_PER_DISRUPTOR = 0.012
RAISE_PENALTY_RATE = 0.03
CAREER_CAP_RATIO = 0.08

HEALTHY_SLEEP_HOURS = 7
COGNITIVE_DECLINE_RATE = 0.004
COGNITIVE_DECLINE_CAP = 8000.0

CAP_WARNING_RATIO = 0.40
TIMELINE_YEARS = 10
ANNUAL_COST_GROWTH = 1.02


def js_round(value: float) -> int:
    """Round half up, the way chart values and dashboard figures are displayed."""

    return int(math.floor(value + 0.5))


def resolve_roi_model(roi_model: Optional[str] = None) -> str:
    model = (roi_model or ROI_MODEL or 'TIERED').upper().strip()
    if model not in ROI_MODELS:
        raise ValueError(f"Unknown ROI model {model!r}; expected one of {', '.join(ROI_MODELS)}")
    return model


# Cost stages ---------------------------------------------------------------------


def disruptor_severity(checked: Iterable[str]) -> float:
    """Sum of severity weights for the checked ids (unknown ids add nothing)."""

    return sum(disruptor_weight(d) for d in checked)


def productivity_cost(survey: SurveyInput) -> Tuple[float, float, float]:
    """
    Earnings lost on poor-sleep days.

    Returns
    -------
    tuple
        ``(cost, effective_impairment, daily_earnings)``. The impairment is
        capped at 50% of a day's output.
    """

    daily_earnings = survey.annual_income / (survey.work_days_per_week * WEEKS_PER_YEAR)
    morning_impairment = (10 - survey.morning_sharpness) / 10 * MORNING_IMPAIRMENT_WEIGHT
    afternoon_slump = AFTERNOON_SLUMP_PCT if survey.afternoon_crash else 0.0
    mistakes = MISTAKE_RATES.get(survey.errors_level, 0.0)
    base_impairment = morning_impairment + afternoon_slump + mistakes
    disruptor_boost = disruptor_severity(survey.checked_disruptors) * DISRUPTOR_BOOST_FACTOR
    effective_impairment = min(base_impairment + disruptor_boost, IMPAIRMENT_CAP)
    poor_nights_per_year = survey.poor_sleep_nights_per_week * WEEKS_PER_YEAR
    cost = daily_earnings * effective_impairment * poor_nights_per_year
    return cost, effective_impairment, daily_earnings


def healthcare_cost(survey: SurveyInput) -> float:
    checked = survey.checked_disruptors
    cost = survey.medical_visits_per_year * survey.avg_visit_cost
    for disruptor_id, surcharge in HEALTHCARE_SURCHARGES.items():
        if disruptor_id in checked:
            cost += surcharge
    if checked & PAIN_DISRUPTORS:
        cost += PAIN_SURCHARGE
    return cost


def stimulant_cost(survey: SurveyInput) -> float:
    return survey.caffeine_monthly_cost * 12


def career_cost(survey: SurveyInput) -> float:
    """Foregone raises and promotions, capped at 8% of income."""

    if survey.employment_type == EmploymentType.NOT_EMPLOYED:
        return 0.0
    income = survey.annual_income
    cognitive_count = len(survey.checked_disruptors & COGNITIVE_DISRUPTORS)
    cognitive_penalty = cognitive_count * COGNITIVE_PENALTY_PER_DISRUPTOR
    raise_penalty = (
        income
        * RAISE_PENALTY_RATE
        * ((10 - survey.morning_sharpness) / 10)
        * (survey.poor_sleep_nights_per_week / 7)
    )
    raw = income * cognitive_penalty + raise_penalty
    return min(raw, income * CAREER_CAP_RATIO)


def cognitive_decline_cost(survey: SurveyInput) -> float:
    sleep_deficit = max(0, HEALTHY_SLEEP_HOURS - survey.sleep_hours_per_night)
    raw = (
        survey.annual_income
        * sleep_deficit
        * COGNITIVE_DECLINE_RATE
        * (survey.poor_sleep_nights_per_week / 7)
        * WEEKS_PER_YEAR
    )
    return min(raw, COGNITIVE_DECLINE_CAP)


# Investment and ROI --------------------------------------------------------------


def base_resolution(total_investment: float) -> float:
    """Estimated fraction of sleep issues resolved at a given spend."""

    for upper, fraction in RESOLUTION_TIERS:
        if total_investment <= upper:
            return fraction
    return TOP_RESOLUTION


def scenario_multipliers(total_investment: float, roi_model: Optional[str] = None) -> Dict[str, float]:
    model = resolve_roi_model(roi_model)
    if model == 'FLAT':
        return {key: FLAT_SCENARIO_MULTIPLIERS[key] for key in SCENARIO_KEYS}
    resolution = base_resolution(total_investment)
    return {
        key: min(resolution * TIERED_SCENARIO_FACTORS[key], TIERED_MULTIPLIER_CAP)
        for key in SCENARIO_KEYS
    }


def project_scenario(
    key: str,
    multiplier: float,
    total_annual_cost: float,
    total_investment: float,
) -> RoiScenario:
    """
    Project savings, payback and five-year return for one scenario.

    Payback is not applicable (``None``) when there are no monthly savings or
    nothing was invested; ROI is not applicable without an investment.
    """

    annual_savings = total_annual_cost * multiplier
    monthly_savings = annual_savings / 12
    payback_months: Optional[float] = None
    payback_years: Optional[float] = None
    if monthly_savings > 0 and total_investment > 0:
        payback_months = total_investment / monthly_savings
        payback_years = payback_months / 12
    five_year_net_gain = annual_savings * 5 - total_investment
    roi_percent: Optional[float] = None
    if total_investment > 0:
        roi_percent = five_year_net_gain / total_investment * 100
    return RoiScenario(
        key=key,
        label=key.capitalize(),
        multiplier=multiplier,
        resolution_percent=js_round(multiplier * 100),
        annual_savings=annual_savings,
        monthly_savings=monthly_savings,
        payback_months=payback_months,
        payback_years=payback_years,
        five_year_net_gain=five_year_net_gain,
        roi_percent=roi_percent,
    )


# Chart series --------------------------------------------------------------------


def cost_breakdown_chart(costs: Dict[str, float]) -> Tuple[CostSlice, ...]:
    return tuple(
        CostSlice(name=name, value=js_round(costs[attr]), color=color)
        for name, attr, color in COST_CATEGORIES
    )


def timeline_chart(
    total_annual_cost: float,
    total_investment: float,
    moderate_annual_savings: float,
    years: int = TIMELINE_YEARS,
) -> Tuple[TimelinePoint, ...]:
    residual_cost = total_annual_cost - moderate_annual_savings
    points = []
    for year in range(1, years + 1):
        growth = ANNUAL_COST_GROWTH ** (year - 1)
        points.append(
            TimelinePoint(
                year=year,
                do_nothing=js_round(total_annual_cost * year * growth),
                after_upgrade=js_round(total_investment + residual_cost * year * growth),
            )
        )
    return tuple(points)


def find_break_even_year(timeline: Sequence[TimelinePoint]) -> Optional[int]:
    """First year the upgraded path stops costing more than doing nothing."""

    for idx, point in enumerate(timeline):
        if point.after_upgrade > point.do_nothing:
            continue
        if idx == 0:
            return point.year
        previous = timeline[idx - 1]
        if previous.after_upgrade > previous.do_nothing:
            return point.year
    return None


# Pipeline ------------------------------------------------------------------------


def compute(survey: SurveyInput, *, roi_model: Optional[str] = None) -> Results:
    """Derive every cost, scenario and chart series for ``survey``."""

    model = resolve_roi_model(roi_model)
    productivity, effective_impairment, daily_earnings = productivity_cost(survey)
    costs = {
        'productivity_cost': productivity,
        'healthcare_cost': healthcare_cost(survey),
        'stimulant_cost': stimulant_cost(survey),
        'career_cost': career_cost(survey),
        'cognitive_decline_cost': cognitive_decline_cost(survey),
    }
    total_annual_cost = (
        costs['productivity_cost']
        + costs['healthcare_cost']
        + costs['stimulant_cost']
        + costs['career_cost']
        + costs['cognitive_decline_cost']
    )
    cap_warning = total_annual_cost > survey.annual_income * CAP_WARNING_RATIO

    total_investment = survey.mattress_cost + survey.adjustable_base_cost
    multipliers = scenario_multipliers(total_investment, model)
    scenarios = tuple(
        project_scenario(key, multipliers[key], total_annual_cost, total_investment)
        for key in SCENARIO_KEYS
    )
    moderate = scenarios[SCENARIO_KEYS.index('moderate')]

    unknown = sorted(d for d in survey.checked_disruptors if disruptor_weight(d) == 0.0)
    if unknown:
        logger.debug("Ignoring unknown disruptor ids: %s", ", ".join(unknown))

    return Results(
        total_annual_cost=total_annual_cost,
        cap_warning=cap_warning,
        total_investment=total_investment,
        base_resolution=base_resolution(total_investment),
        roi_model=model,
        roi_scenarios=scenarios,
        chart_cost_breakdown=cost_breakdown_chart(costs),
        chart_timeline_data=timeline_chart(total_annual_cost, total_investment, moderate.annual_savings),
        effective_impairment=effective_impairment,
        daily_earnings=daily_earnings,
        **costs,
    )


@lru_cache(maxsize=1)
def compute_cached(survey: SurveyInput, roi_model: Optional[str] = None) -> Results:
    """Like :func:`compute` but reuses the result for the latest snapshot."""

    return compute(survey, roi_model=roi_model)

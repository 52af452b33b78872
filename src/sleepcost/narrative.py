"""Human-readable interpretation of audit answers and estimator results.

Nothing here feeds back into :func:`sleepcost.engine.compute`; these helpers
only describe a :class:`~sleepcost.models.Results` for people.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from .engine import disruptor_severity, js_round
from .models import Results, SurveyInput
from .reference_data import DEFAULT_SOLUTION, DISRUPTOR_SOLUTIONS, INVESTMENT_LEVELS, get_disruptor

# Combined weight at which the disruption index reads 100.
DISRUPTION_INDEX_SCALE = 1.12
PAYBACK_DISPLAY_LIMIT_MONTHS = 100
DEFAULT_DISRUPTOR_PHRASE = "sleep deprivation and productivity loss"

_RECOMMENDATIONS: Tuple[Tuple[frozenset, str], ...] = (
    (
        frozenset({"back_pain", "neck_pain", "shoulder_pain"}),
        "A mattress with proper spinal alignment and pressure relief directly targets your top pain-related disruptors.",
    ),
    (
        frozenset({"temperature"}),
        "Temperature-regulating mattress materials can significantly reduce the thermal disruptions you reported.",
    ),
    (
        frozenset({"acid_reflux"}),
        "An adjustable base that elevates your head is clinically shown to reduce nighttime GERD and acid reflux symptoms.",
    ),
    (
        frozenset({"snoring", "sleep_apnea"}),
        "Head elevation via an adjustable base is a proven first-line intervention for snoring and mild sleep apnea.",
    ),
    (
        frozenset({"partner"}),
        "Mattresses engineered with isolated motion transfer are specifically designed to eliminate the partner disturbances you checked.",
    ),
    (
        frozenset({"allergies"}),
        "Hypoallergenic mattress materials can reduce allergen exposure and the nighttime congestion you reported.",
    ),
)


def format_currency(value: float) -> str:
    """Whole-dollar USD formatting, e.g. ``$26,405`` or ``-$1,200``."""

    rounded = js_round(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,}"


def format_payback(months: Optional[float], years: Optional[float] = None) -> str:
    if months is None or months > PAYBACK_DISPLAY_LIMIT_MONTHS:
        return "N/A"
    if years is None:
        years = months / 12
    return f"{months:.1f} months ({years:.1f} years)"


def disruption_index(checked: Iterable[str]) -> int:
    """0-100 Sleep Disruption Index shown next to the disruptor checklist."""

    return min(100, js_round(disruptor_severity(checked) / DISRUPTION_INDEX_SCALE * 100))


def disruption_tier(index: int) -> str:
    if index <= 30:
        return "Low Disruption"
    if index <= 60:
        return "Moderate Disruption"
    return "High Disruption"


def income_feedback(value: float) -> str:
    if value < 40000:
        return "Entry-level income range"
    if value <= 80000:
        return "Moderate income range"
    return "Above-average income range"


def sleep_hours_feedback(value: float) -> str:
    if value <= 5:
        return "Severely sleep deprived range"
    if value <= 6:
        return "Below the recommended range"
    if value < 7:
        return "Mild sleep deficit"
    return "Near-optimal range"


def sharpness_feedback(value: int) -> str:
    if value <= 3:
        return "Severely impaired"
    if value <= 6:
        return "Noticeably impaired"
    return "Mildly impaired"


def investment_level(total_investment: float) -> dict:
    """Display tier (Entry / Mid-Range / Premium) for a total spend."""

    for level, upper, price_range, issues, addresses in INVESTMENT_LEVELS:
        if upper is None or total_investment <= upper:
            break
    return {"level": level, "range": price_range, "issues": issues, "addresses": addresses}


def top_disruptors(checked: Iterable[str], limit: int = 2) -> List[str]:
    """Labels of the heaviest checked disruptors, most severe first."""

    known = [d for d in (get_disruptor(i) for i in checked) if d is not None]
    # Secondary key keeps ties stable regardless of set iteration order.
    known.sort(key=lambda d: (-d.weight, d.id))
    return [d.label for d in known[:limit]]


def disruptor_phrase(checked: Iterable[str]) -> str:
    labels = top_disruptors(checked)
    return " and ".join(labels) if labels else DEFAULT_DISRUPTOR_PHRASE


def recommendations(checked: Iterable[str]) -> List[str]:
    selected = frozenset(checked)
    return [text for trigger, text in _RECOMMENDATIONS if selected & trigger]


def solutions_for(checked: Iterable[str]) -> List[Tuple[str, str]]:
    """``(disruptor id, upgrade that addresses it)`` for each checked id."""

    return [(d, DISRUPTOR_SOLUTIONS.get(d, DEFAULT_SOLUTION)) for d in sorted(checked)]


def verdict_text(survey: SurveyInput, results: Results) -> str:
    moderate = results.moderate
    opening = (
        f"Based on your audit, poor sleep, primarily driven by {disruptor_phrase(survey.checked_disruptors)}, "
        f"is costing you an estimated {format_currency(results.total_annual_cost)} per year."
    )
    if moderate.payback_months is None:
        payback = (
            f"A {format_currency(results.total_investment)} sleep upgrade has no meaningful payback "
            "period under moderate assumptions."
        )
    else:
        payback = (
            f"A {format_currency(results.total_investment)} sleep upgrade would pay for itself in "
            f"{moderate.payback_months:.0f} months under moderate assumptions, "
            f"and generate {format_currency(moderate.five_year_net_gain)} in recovered value over 5 years."
        )
    sentences = [opening, payback]
    if moderate.roi_percent is not None:
        sentences.append(f"That's a {moderate.roi_percent:.0f}% ROI on a one-time purchase.")
    return " ".join(sentences)

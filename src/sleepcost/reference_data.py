"""
Static lookup tables shared by the estimator, narrative and CLI.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from .models import Disruptor, EmploymentType, ErrorsLevel

# Keep tuple structure to preserve order for display
DISRUPTORS: Tuple[Disruptor, ...] = (
    Disruptor("partner", "Partner Disturbance", 0.08, frozenset({"Productivity"}),
              "Mattress — motion isolation"),
    Disruptor("temperature", "Temperature Discomfort", 0.06, frozenset({"Sleep Quality"}),
              "Mattress — cooling materials"),
    Disruptor("snoring", "Snoring (yours or partner's)", 0.10, frozenset({"Productivity", "Cognitive"}),
              "Adjustable Base — head elevation"),
    Disruptor("sleep_apnea", "Sleep Apnea (diagnosed or suspected)", 0.18,
              frozenset({"Healthcare", "Cognitive", "Productivity"}),
              "Adjustable Base — head elevation"),
    Disruptor("allergies", "Allergies / Congestion", 0.07, frozenset({"Healthcare", "Sleep Quality"}),
              "Mattress — hypoallergenic materials"),
    Disruptor("back_pain", "Back Pain", 0.12, frozenset({"Productivity", "Healthcare"}),
              "Mattress — spinal alignment support"),
    Disruptor("neck_pain", "Neck Pain", 0.10, frozenset({"Productivity", "Healthcare"}),
              "Mattress — pressure relief"),
    Disruptor("shoulder_pain", "Shoulder Pain", 0.09, frozenset({"Productivity"}),
              "Mattress — pressure point relief"),
    Disruptor("headaches", "Headaches Upon Waking", 0.11, frozenset({"Productivity", "Cognitive"}),
              "Both — general sleep environment improvement"),
    Disruptor("acid_reflux", "Acid Reflux / GERD", 0.09, frozenset({"Healthcare", "Sleep Quality"}),
              "Adjustable Base — head elevation"),
    Disruptor("anxiety", "Anxiety / Racing Mind", 0.13, frozenset({"Productivity", "Cognitive"}),
              "Both — general sleep environment improvement"),
    Disruptor("frequent_waking", "Frequent Waking", 0.10, frozenset({"Productivity", "Cognitive"}),
              "Both — general sleep environment improvement"),
)

DISRUPTOR_MAP: Mapping[str, Disruptor] = MappingProxyType({d.id: d for d in DISRUPTORS})
DISRUPTOR_SOLUTIONS: Mapping[str, str] = MappingProxyType({d.id: d.solution for d in DISRUPTORS})
DEFAULT_SOLUTION = "Sleep improvement"

MISTAKE_RATES: Mapping[ErrorsLevel, float] = MappingProxyType({
    ErrorsLevel.NEVER: 0.0,
    ErrorsLevel.SOMETIMES: 0.05,
    ErrorsLevel.OFTEN: 0.10,
    ErrorsLevel.ALWAYS: 0.15,
})

# Flat annual surcharges, each applied once when the disruptor is checked.
HEALTHCARE_SURCHARGES: Mapping[str, float] = MappingProxyType({
    "sleep_apnea": 800.0,
    "allergies": 150.0,
    "acid_reflux": 200.0,
})
PAIN_DISRUPTORS = frozenset({"back_pain", "neck_pain", "shoulder_pain"})
PAIN_SURCHARGE = 240.0

COGNITIVE_DISRUPTORS = frozenset({"snoring", "sleep_apnea", "headaches", "anxiety", "frequent_waking"})

# (inclusive upper bound of total investment, fraction of issues resolved)
RESOLUTION_TIERS: Tuple[Tuple[float, float], ...] = (
    (1500, 0.20),
    (2500, 0.35),
    (3500, 0.48),
    (4999, 0.58),
    (6499, 0.68),
    (8399, 0.78),
)
TOP_RESOLUTION = 0.88

# (level, inclusive upper bound or None, price range label, issues resolved label, addresses)
INVESTMENT_LEVELS: Tuple[Tuple[str, Optional[float], str, str, str], ...] = (
    ("Entry", 2500, "$800–$2,500", "20–35%", "Basic comfort and support"),
    ("Mid-Range", 5000, "$2,500–$5,000", "48–68%", "Pressure relief, motion isolation, adjustability"),
    ("Premium", None, "$5,000–$8,400+", "78–88%",
     "Full disruptor resolution including temperature, reflux, apnea, and alignment"),
)

SCENARIO_KEYS: Tuple[str, ...] = ("conservative", "moderate", "optimistic")
TIERED_SCENARIO_FACTORS: Mapping[str, float] = MappingProxyType({
    "conservative": 0.70,
    "moderate": 1.00,
    "optimistic": 1.25,
})
TIERED_MULTIPLIER_CAP = 0.92
FLAT_SCENARIO_MULTIPLIERS: Mapping[str, float] = MappingProxyType({
    "conservative": 0.30,
    "moderate": 0.55,
    "optimistic": 0.75,
})

# Chart categories in display order: (name, Results attribute, color)
COST_CATEGORIES: Tuple[Tuple[str, str, str], ...] = (
    ("Productivity", "productivity_cost", "#ef4444"),
    ("Healthcare", "healthcare_cost", "#f97316"),
    ("Stimulants", "stimulant_cost", "#f59e0b"),
    ("Career Impact", "career_cost", "#a855f7"),
    ("Cognitive", "cognitive_decline_cost", "#3b82f6"),
)

_EMPLOYMENT_ALIASES: Dict[str, EmploymentType] = {
    "SALARIED": EmploymentType.SALARIED,
    "HOURLY": EmploymentType.HOURLY,
    "SELFEMPLOYED": EmploymentType.SELF_EMPLOYED,
    "NOTCURRENTLYEMPLOYED": EmploymentType.NOT_EMPLOYED,
    "NOTEMPLOYED": EmploymentType.NOT_EMPLOYED,
    "UNEMPLOYED": EmploymentType.NOT_EMPLOYED,
}


def get_disruptor(disruptor_id: str) -> Optional[Disruptor]:
    """Return the disruptor for ``disruptor_id`` or ``None`` when unknown."""

    return DISRUPTOR_MAP.get(disruptor_id)


def disruptor_weight(disruptor_id: str) -> float:
    """Severity weight of ``disruptor_id``; unknown ids weigh nothing."""

    disruptor = DISRUPTOR_MAP.get(disruptor_id)
    return disruptor.weight if disruptor is not None else 0.0


def _compress(value: str) -> str:
    return "".join(ch for ch in value.upper() if ch.isalnum())


def normalize_employment(value: object) -> EmploymentType:
    """
    Normalize an employment label into :class:`EmploymentType`.

    Accepts enum members, display labels ("Self-Employed") and loose variants
    such as "self employed" or "NotEmployed". Raises ``ValueError`` otherwise.
    """

    if isinstance(value, EmploymentType):
        return value
    key = _compress(str(value or ""))
    try:
        return _EMPLOYMENT_ALIASES[key]
    except KeyError:
        raise ValueError(f"Unknown employment type: {value!r}") from None


def normalize_errors_level(value: object) -> ErrorsLevel:
    """Normalize an error-frequency label into :class:`ErrorsLevel`."""

    if isinstance(value, ErrorsLevel):
        return value
    key = _compress(str(value or ""))
    for level in ErrorsLevel:
        if level.name == key:
            return level
    raise ValueError(f"Unknown errors level: {value!r}")

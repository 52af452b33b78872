"""Estimate the cost of poor sleep and the payback of a sleep upgrade."""

from .engine import compute, compute_cached
from .models import (
    CostSlice,
    Disruptor,
    EmploymentType,
    ErrorsLevel,
    Results,
    RoiScenario,
    SurveyInput,
    TimelinePoint,
)

__all__ = [
    "CostSlice",
    "Disruptor",
    "EmploymentType",
    "ErrorsLevel",
    "Results",
    "RoiScenario",
    "SurveyInput",
    "TimelinePoint",
    "compute",
    "compute_cached",
]

"""Load audit answers from JSON files, flat mappings or environment variables."""

from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from jsonschema import Draft7Validator

from .models import SurveyInput
from .reference_data import DISRUPTOR_MAP, normalize_employment, normalize_errors_level

LOGGER = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "data" / "survey.schema.json"
ENV_PREFIX = "SLEEP_"

_FIELD_NAMES = tuple(f.name for f in fields(SurveyInput))
_FLOAT_FIELDS = {
    "annual_income",
    "sleep_hours_per_night",
    "medical_visits_per_year",
    "avg_visit_cost",
    "caffeine_monthly_cost",
    "mattress_cost",
    "adjustable_base_cost",
}
_INT_FIELDS = {"poor_sleep_nights_per_week", "work_days_per_week", "morning_sharpness"}
_TRUE = {"1", "true", "yes", "y", "on"}
_FALSE = {"0", "false", "no", "n", "off"}
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


class SurveyValidationError(ValueError):
    """Raised when survey answers cannot be turned into a :class:`SurveyInput`."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


def _canonical_key(key: str) -> str:
    text = str(key).strip()
    if text.isupper():
        return text.replace("-", "_").replace(" ", "_").lower()
    return _CAMEL_RE.sub("_", text).replace("-", "_").replace(" ", "_").lower()


def _to_number(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        return value
    text = str(value).replace("$", "").replace(",", "").strip()
    if not text:
        return value
    try:
        return float(text)
    except ValueError:
        return value


def _to_int(value: Any) -> Any:
    number = _to_number(value)
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _to_bool(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    return value


def _to_id_list(value: Any) -> Any:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(part).strip() for part in value]
    return value


def _coerce(payload: Dict[str, Any], errors: List[str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in payload.items():
        if key in _FLOAT_FIELDS or key in _INT_FIELDS:
            number = _to_number(value) if key in _FLOAT_FIELDS else _to_int(value)
            if isinstance(number, float) and not math.isfinite(number):
                errors.append(f"{key}: {value!r} is not a finite number")
                continue
            out[key] = number
        elif key == "afternoon_crash":
            out[key] = _to_bool(value)
        elif key == "checked_disruptors":
            out[key] = _to_id_list(value)
        elif key == "employment_type":
            try:
                out[key] = normalize_employment(value).value
            except ValueError as exc:
                errors.append(str(exc))
        elif key == "errors_level":
            try:
                out[key] = normalize_errors_level(value).value
            except ValueError as exc:
                errors.append(str(exc))
        else:
            out[key] = value
    return out


def _load_validator() -> Draft7Validator:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        schema = json.load(f)
    return Draft7Validator(schema)


def survey_from_mapping(
    mapping: Mapping[str, Any],
    *,
    base: Optional[SurveyInput] = None,
) -> SurveyInput:
    """
    Build a :class:`SurveyInput` from loosely formatted answers.

    Keys may be snake_case or camelCase. Numbers may carry ``$`` and thousands
    separators, booleans may be spelled ``yes``/``no`` and disruptors may be a
    comma-separated string. Missing answers fall back to ``base`` (or the
    questionnaire defaults).
    """

    errors: List[str] = []
    payload = _coerce({_canonical_key(k): v for k, v in mapping.items()}, errors)
    for error in sorted(_load_validator().iter_errors(payload), key=lambda e: [str(p) for p in e.path]):
        location = ".".join(str(p) for p in error.path) or "survey"
        errors.append(f"{location}: {error.message}")
    if errors:
        raise SurveyValidationError(errors)

    unknown = sorted(d for d in payload.get("checked_disruptors", []) if d not in DISRUPTOR_MAP)
    if unknown:
        LOGGER.debug("Survey lists unknown disruptor ids (no effect on costs): %s", ", ".join(unknown))

    if "employment_type" in payload:
        payload["employment_type"] = normalize_employment(payload["employment_type"])
    if "errors_level" in payload:
        payload["errors_level"] = normalize_errors_level(payload["errors_level"])
    if "checked_disruptors" in payload:
        payload["checked_disruptors"] = frozenset(payload["checked_disruptors"])
    return (base or SurveyInput()).replace(**payload)


def load_survey(path: Path, *, base: Optional[SurveyInput] = None) -> SurveyInput:
    """Read a survey JSON document (a flat object of answers)."""

    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise SurveyValidationError([f"{path.name}: invalid JSON ({exc})"]) from exc
    if not isinstance(data, dict):
        raise SurveyValidationError([f"{path.name}: expected a JSON object of survey answers"])
    return survey_from_mapping(data, base=base)


def survey_from_env(env: Mapping[str, str], *, base: Optional[SurveyInput] = None) -> SurveyInput:
    """Apply ``SLEEP_<FIELD>`` environment variables on top of ``base``."""

    answers = {}
    for field_name in _FIELD_NAMES:
        value = env.get(ENV_PREFIX + field_name.upper())
        if value is not None and str(value).strip() != "":
            answers[field_name] = value
    return survey_from_mapping(answers, base=base)


def parse_overrides(items: Optional[List[str]]) -> Dict[str, str]:
    """Turn ``KEY=VALUE`` strings from the command line into a mapping."""

    overrides: Dict[str, str] = {}
    for item in items or []:
        if "=" not in item:
            raise SurveyValidationError([f"override {item!r} must look like KEY=VALUE"])
        key, value = item.split("=", 1)
        overrides[key.strip()] = value.strip()
    return overrides


__all__ = [
    "SurveyValidationError",
    "load_survey",
    "parse_overrides",
    "survey_from_env",
    "survey_from_mapping",
]

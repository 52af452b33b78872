from __future__ import annotations

import json
from pathlib import Path

import pytest

from sleepcost.api import EstimateOptions, compute_results, estimate


def test_estimate_returns_artifact_paths(tmp_path: Path):
    options = EstimateOptions(
        answers={"annual_income": 50000, "checked_disruptors": ["anxiety"], "employment_type": "Hourly"},
        output_dir=tmp_path,
    )
    artifacts = estimate(options)
    assert set(artifacts) == {"xlsx", "json", "summary", "run_metadata"}
    for path in artifacts.values():
        assert Path(path).exists()

    payload = json.loads(Path(artifacts["json"]).read_text(encoding="utf-8"))
    assert payload["inputs"]["annual_income"] == 50000
    assert payload["inputs"]["employment_type"] == "Hourly"
    assert payload["results"]["roi_model"] == "TIERED"


def test_compute_results_from_answers():
    results = compute_results({"employmentType": "Not Currently Employed", "annualIncome": 80000})
    assert results.career_cost == 0
    assert results.total_annual_cost > 0

    flat = compute_results({}, roi_model="flat")
    assert flat.moderate.multiplier == pytest.approx(0.55)

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path
from typing import Dict

import pandas as pd

from . import narrative
from .engine import js_round
from .models import Results, SurveyInput


def results_frames(results: Results) -> Dict[str, pd.DataFrame]:
    """Tabular views of ``results`` keyed by sheet name."""

    costs = pd.DataFrame(
        {
            "CATEGORY": [s.name for s in results.chart_cost_breakdown] + ["Total"],
            "ANNUAL_COST": [
                results.productivity_cost,
                results.healthcare_cost,
                results.stimulant_cost,
                results.career_cost,
                results.cognitive_decline_cost,
                results.total_annual_cost,
            ],
            "COLOR": [s.color for s in results.chart_cost_breakdown] + [""],
        }
    )
    if results.total_annual_cost > 0:
        costs["SHARE_OF_TOTAL"] = costs["ANNUAL_COST"] / results.total_annual_cost
    else:
        costs["SHARE_OF_TOTAL"] = 0.0

    scenarios = pd.DataFrame([asdict(s) for s in results.roi_scenarios])
    scenarios.columns = [c.upper() for c in scenarios.columns]

    timeline = pd.DataFrame([asdict(p) for p in results.chart_timeline_data])
    timeline.columns = [c.upper() for c in timeline.columns]
    timeline["CUMULATIVE_SAVINGS"] = timeline["DO_NOTHING"] - timeline["AFTER_UPGRADE"]
    return {"costs": costs, "scenarios": scenarios, "timeline": timeline}


def make_summary_text(survey: SurveyInput, results: Results) -> str:
    costs = results_frames(results)["costs"]
    top = (
        costs.loc[costs["CATEGORY"] != "Total"]
        .sort_values("ANNUAL_COST", ascending=False)
        .assign(ANNUAL_COST=lambda df: df["ANNUAL_COST"].map(narrative.format_currency))
        [["CATEGORY", "ANNUAL_COST"]]
    )
    scenario_rows = pd.DataFrame(
        {
            "SCENARIO": [f"{s.label} ({s.resolution_percent}% resolved)" for s in results.roi_scenarios],
            "ANNUAL_SAVINGS": [narrative.format_currency(s.annual_savings) for s in results.roi_scenarios],
            "PAYBACK": [narrative.format_payback(s.payback_months, s.payback_years) for s in results.roi_scenarios],
            "FIVE_YEAR_NET": [narrative.format_currency(s.five_year_net_gain) for s in results.roi_scenarios],
            "ROI": [
                "N/A" if s.roi_percent is None else f"{s.roi_percent:.0f}%" for s in results.roi_scenarios
            ],
        }
    )
    tier = narrative.investment_level(results.total_investment)
    index = narrative.disruption_index(survey.checked_disruptors)

    lines = [
        f"Estimated annual cost of poor sleep: {narrative.format_currency(results.total_annual_cost)}.",
        f"Sleep Disruption Index: {index} / 100 ({narrative.disruption_tier(index)}).",
        f"Cost by category:\n{top.to_string(index=False)}",
    ]
    if results.cap_warning:
        lines.append("Conservative caps applied to keep estimates realistic.")
    lines.extend(
        [
            f"Total investment: {narrative.format_currency(results.total_investment)} "
            f"({tier['level']} tier, addresses an estimated {js_round(results.base_resolution * 100)}% of issues).",
            f"ROI scenarios ({results.roi_model.lower()} model):\n{scenario_rows.to_string(index=False)}",
        ]
    )
    if results.break_even_year is not None:
        lines.append(f"Break-even on the 10-year timeline: year {results.break_even_year}.")
    lines.append(narrative.verdict_text(survey, results))
    recs = narrative.recommendations(survey.checked_disruptors)
    if recs:
        lines.append("Recommendations based on your sleep profile:")
        lines.extend(f" - {rec}" for rec in recs)
    return "\n".join(lines) + "\n"


def write_outputs(
    survey: SurveyInput,
    results: Results,
    xlsx_path: str | Path,
    json_path: str | Path,
) -> None:
    """Persist ``results`` as an Excel workbook and a JSON document."""

    xlsx_path = Path(xlsx_path)
    json_path = Path(json_path)
    xlsx_path.parent.mkdir(parents=True, exist_ok=True)
    json_path.parent.mkdir(parents=True, exist_ok=True)

    inputs = pd.DataFrame(
        {"FIELD": list(survey.to_dict().keys()), "VALUE": [str(v) for v in survey.to_dict().values()]}
    )
    with pd.ExcelWriter(xlsx_path, engine="openpyxl") as writer:
        inputs.to_excel(writer, sheet_name="inputs", index=False)
        for name, frame in results_frames(results).items():
            frame.to_excel(writer, sheet_name=name, index=False)

    payload = {"inputs": survey.to_dict(), "results": results.to_dict()}
    with open(json_path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, indent=2)

from __future__ import annotations

import importlib
import itertools

import pytest

import sleepcost.engine as engine
from sleepcost.models import EmploymentType, ErrorsLevel, SurveyInput, TimelinePoint
from sleepcost.reference_data import DISRUPTORS


def _example_survey(**changes) -> SurveyInput:
    survey = SurveyInput(
        annual_income=75000,
        sleep_hours_per_night=6,
        poor_sleep_nights_per_week=4,
        employment_type=EmploymentType.SALARIED,
        checked_disruptors=frozenset(),
        work_days_per_week=5,
        morning_sharpness=4,
        afternoon_crash=True,
        errors_level=ErrorsLevel.SOMETIMES,
        medical_visits_per_year=3,
        avg_visit_cost=125,
        caffeine_monthly_cost=60,
        mattress_cost=2500,
        adjustable_base_cost=1800,
    )
    return survey.replace(**changes)


def test_worked_example_costs():
    results = engine.compute(_example_survey(), roi_model="tiered")

    assert results.daily_earnings == pytest.approx(288.4615, abs=1e-3)
    assert results.effective_impairment == pytest.approx(0.44)
    assert results.productivity_cost == pytest.approx(26400.0)
    assert results.healthcare_cost == 375
    assert results.stimulant_cost == 720
    # raise penalty only: 75000 * 0.03 * 0.6 * 4/7
    assert results.career_cost == pytest.approx(771.4286, abs=1e-3)
    # 75000 * 1 * 0.004 * 4/7 * 52 = 8914.29, capped
    assert results.cognitive_decline_cost == 8000
    assert results.total_annual_cost == pytest.approx(36266.4286, abs=1e-3)
    assert results.cap_warning is True


def test_worked_example_investment_and_scenarios():
    results = engine.compute(_example_survey(), roi_model="tiered")

    assert results.total_investment == 4300
    assert results.base_resolution == 0.58
    multipliers = [s.multiplier for s in results.roi_scenarios]
    assert multipliers == pytest.approx([0.406, 0.58, 0.725])
    assert [s.key for s in results.roi_scenarios] == ["conservative", "moderate", "optimistic"]
    assert [s.label for s in results.roi_scenarios] == ["Conservative", "Moderate", "Optimistic"]

    moderate = results.moderate
    assert moderate.resolution_percent == 58
    assert moderate.annual_savings == pytest.approx(results.total_annual_cost * 0.58)
    assert moderate.monthly_savings == pytest.approx(moderate.annual_savings / 12)
    assert moderate.payback_months == pytest.approx(4300 / moderate.monthly_savings)
    assert moderate.payback_years == pytest.approx(moderate.payback_months / 12)
    assert moderate.five_year_net_gain == pytest.approx(moderate.annual_savings * 5 - 4300)
    assert moderate.roi_percent == pytest.approx(moderate.five_year_net_gain / 4300 * 100)


def test_total_is_exact_sum_of_components():
    for nights, disruptors, employment in itertools.product(
        (0, 3, 7),
        (frozenset(), frozenset({"sleep_apnea", "back_pain"}), frozenset(d.id for d in DISRUPTORS)),
        list(EmploymentType),
    ):
        results = engine.compute(
            _example_survey(
                poor_sleep_nights_per_week=nights,
                checked_disruptors=disruptors,
                employment_type=employment,
            )
        )
        assert results.total_annual_cost == (
            results.productivity_cost
            + results.healthcare_cost
            + results.stimulant_cost
            + results.career_cost
            + results.cognitive_decline_cost
        )
        for value in (
            results.productivity_cost,
            results.healthcare_cost,
            results.stimulant_cost,
            results.career_cost,
            results.cognitive_decline_cost,
        ):
            assert value >= 0


def test_career_cost_zero_when_not_employed():
    for income, sharpness in itertools.product((20000, 75000, 400000), (1, 5, 10)):
        survey = _example_survey(
            annual_income=income,
            morning_sharpness=sharpness,
            employment_type=EmploymentType.NOT_EMPLOYED,
            checked_disruptors=frozenset({"snoring", "anxiety", "headaches"}),
        )
        assert engine.career_cost(survey) == 0


def test_career_cost_capped_at_eight_percent_of_income():
    survey = _example_survey(
        morning_sharpness=1,
        poor_sleep_nights_per_week=7,
        checked_disruptors=frozenset({"snoring", "sleep_apnea", "headaches", "anxiety", "frequent_waking"}),
    )
    # raw = 75000 * 0.06 + 75000 * 0.03 * 0.9 = 6525 -> capped at 6000
    assert engine.career_cost(survey) == pytest.approx(6000.0)


def test_cognitive_decline_capped_and_zero_without_deficit():
    assert engine.cognitive_decline_cost(_example_survey(sleep_hours_per_night=4, annual_income=500000)) == 8000
    assert engine.cognitive_decline_cost(_example_survey(sleep_hours_per_night=7)) == 0
    assert engine.cognitive_decline_cost(_example_survey(sleep_hours_per_night=9)) == 0
    # 30000 * 0.5 * 0.004 * 2/7 * 52
    small = engine.cognitive_decline_cost(
        _example_survey(annual_income=30000, sleep_hours_per_night=6.5, poor_sleep_nights_per_week=2)
    )
    assert small == pytest.approx(30000 * 0.5 * 0.004 * (2 / 7) * 52)


def test_effective_impairment_capped_at_half():
    survey = _example_survey(
        morning_sharpness=1,
        errors_level=ErrorsLevel.ALWAYS,
        checked_disruptors=frozenset(d.id for d in DISRUPTORS),
    )
    cost, impairment, daily = engine.productivity_cost(survey)
    assert impairment == 0.50
    assert cost == pytest.approx(daily * 0.50 * survey.poor_sleep_nights_per_week * 52)


def test_disruptor_boost_added_below_cap():
    survey = _example_survey(morning_sharpness=8, afternoon_crash=False, errors_level=ErrorsLevel.NEVER,
                             checked_disruptors=frozenset({"anxiety"}))
    _, impairment, _ = engine.productivity_cost(survey)
    assert impairment == pytest.approx(0.08 + 0.13 * 0.30)


def test_healthcare_surcharges_and_single_pain_charge():
    base = _example_survey()
    assert engine.healthcare_cost(base) == 375
    assert engine.healthcare_cost(base.replace(checked_disruptors=frozenset({"sleep_apnea"}))) == 375 + 800
    assert engine.healthcare_cost(base.replace(checked_disruptors=frozenset({"allergies", "acid_reflux"}))) == 375 + 350
    all_pain = frozenset({"back_pain", "neck_pain", "shoulder_pain"})
    assert engine.healthcare_cost(base.replace(checked_disruptors=all_pain)) == 375 + 240
    assert engine.healthcare_cost(base.replace(checked_disruptors=frozenset({"neck_pain"}))) == 375 + 240


def test_stimulant_cost_is_twelve_months():
    assert engine.stimulant_cost(_example_survey(caffeine_monthly_cost=42.5)) == 510


def test_compute_is_deterministic():
    survey = _example_survey(checked_disruptors=frozenset({"partner", "anxiety"}))
    assert engine.compute(survey) == engine.compute(survey)


def test_compute_cached_reuses_latest_snapshot():
    engine.compute_cached.cache_clear()
    survey = _example_survey()
    first = engine.compute_cached(survey)
    second = engine.compute_cached(survey)
    assert first is second
    other = engine.compute_cached(survey.replace(annual_income=90000))
    assert other.total_annual_cost != first.total_annual_cost


def test_more_poor_nights_never_lowers_costs():
    for sleep_hours in (4, 6.5, 8):
        previous = None
        for nights in range(0, 8):
            results = engine.compute(_example_survey(poor_sleep_nights_per_week=nights, sleep_hours_per_night=sleep_hours))
            if previous is not None:
                assert results.productivity_cost >= previous.productivity_cost
                assert results.cognitive_decline_cost >= previous.cognitive_decline_cost
            previous = results


def test_scenarios_are_ordered_for_both_models():
    for investment, model in itertools.product((0, 900, 2000, 3000, 4500, 6000, 8000, 12000), ("tiered", "flat")):
        results = engine.compute(_example_survey(mattress_cost=investment, adjustable_base_cost=0), roi_model=model)
        conservative, moderate, optimistic = results.roi_scenarios
        assert conservative.annual_savings <= moderate.annual_savings <= optimistic.annual_savings


def test_tiered_multipliers_never_exceed_ceiling():
    for investment in (0, 1500, 1501, 4999, 5000, 8399, 8400, 20000):
        multipliers = engine.scenario_multipliers(investment, "tiered")
        assert max(multipliers.values()) <= 0.92
    top = engine.scenario_multipliers(10000, "tiered")
    assert top["optimistic"] == 0.92
    assert top["moderate"] == 0.88


def test_base_resolution_tier_boundaries():
    expected = [
        (0, 0.20), (1500, 0.20), (1501, 0.35), (2500, 0.35), (3500, 0.48),
        (4999, 0.58), (5000, 0.68), (6499, 0.68), (8399, 0.78), (8400, 0.88),
    ]
    for investment, fraction in expected:
        assert engine.base_resolution(investment) == fraction


def test_flat_model_uses_fixed_multipliers():
    results = engine.compute(_example_survey(), roi_model="flat")
    assert results.roi_model == "FLAT"
    assert [s.multiplier for s in results.roi_scenarios] == [0.30, 0.55, 0.75]


def test_unknown_roi_model_rejected():
    with pytest.raises(ValueError):
        engine.compute(_example_survey(), roi_model="linear")


def test_zero_investment_payback_not_applicable():
    results = engine.compute(_example_survey(mattress_cost=0, adjustable_base_cost=0))
    assert results.total_investment == 0
    for scenario in results.roi_scenarios:
        assert scenario.payback_months is None
        assert scenario.payback_years is None
        assert scenario.roi_percent is None
        assert scenario.five_year_net_gain == pytest.approx(scenario.annual_savings * 5)


def test_zero_savings_payback_not_applicable():
    survey = _example_survey(
        annual_income=0,
        medical_visits_per_year=0,
        caffeine_monthly_cost=0,
    )
    results = engine.compute(survey)
    assert results.total_annual_cost == 0
    assert results.cap_warning is False
    moderate = results.moderate
    assert moderate.payback_months is None
    assert moderate.roi_percent == pytest.approx(-100.0)


def test_unknown_disruptor_has_no_effect():
    known = _example_survey(checked_disruptors=frozenset({"back_pain"}))
    with_unknown = known.replace(checked_disruptors=frozenset({"back_pain", "moon_phase"}))
    assert engine.compute(with_unknown) == engine.compute(known)


def test_chart_series():
    results = engine.compute(_example_survey())
    breakdown = {s.name: s for s in results.chart_cost_breakdown}
    assert list(breakdown) == ["Productivity", "Healthcare", "Stimulants", "Career Impact", "Cognitive"]
    assert breakdown["Productivity"].value == 26400
    assert breakdown["Career Impact"].value == 771
    assert breakdown["Cognitive"].color == "#3b82f6"

    timeline = results.chart_timeline_data
    assert [p.year for p in timeline] == list(range(1, 11))
    total = results.total_annual_cost
    residual = total - results.moderate.annual_savings
    for point in timeline:
        growth = 1.02 ** (point.year - 1)
        assert point.do_nothing == engine.js_round(total * point.year * growth)
        assert point.after_upgrade == engine.js_round(4300 + residual * point.year * growth)


def test_break_even_year_derived_from_timeline():
    results = engine.compute(_example_survey())
    assert results.break_even_year == 1

    timeline = (
        TimelinePoint(1, 1000, 3000),
        TimelinePoint(2, 2000, 3500),
        TimelinePoint(3, 3000, 2900),
        TimelinePoint(4, 4000, 3200),
    )
    assert engine.find_break_even_year(timeline) == 3
    assert engine.find_break_even_year(timeline[:2]) is None


def test_js_round_rounds_half_up():
    assert engine.js_round(2.5) == 3
    assert engine.js_round(-2.5) == -2
    assert engine.js_round(26400.49) == 26400


def test_results_to_dict_is_complete():
    results = engine.compute(_example_survey(checked_disruptors=frozenset({"anxiety"})))
    payload = results.to_dict()
    for key in (
        "productivity_cost", "healthcare_cost", "stimulant_cost", "career_cost", "cognitive_decline_cost",
        "total_annual_cost", "cap_warning", "total_investment", "roi_scenarios",
        "chart_cost_breakdown", "chart_timeline_data", "break_even_year",
    ):
        assert key in payload
    assert len(payload["roi_scenarios"]) == 3
    assert payload["roi_scenarios"][1]["payback_months"] == results.moderate.payback_months
    assert payload["chart_timeline_data"][0] == {
        "year": 1,
        "do_nothing": results.chart_timeline_data[0].do_nothing,
        "after_upgrade": results.chart_timeline_data[0].after_upgrade,
    }


def test_roi_model_env_override(monkeypatch):
    monkeypatch.setenv("SLEEPCOST_ROI_MODEL", "flat")
    importlib.reload(engine)
    results = engine.compute(_example_survey())
    assert results.roi_model == "FLAT"
    assert results.moderate.multiplier == 0.55

    monkeypatch.delenv("SLEEPCOST_ROI_MODEL", raising=False)
    importlib.reload(engine)
    assert engine.compute(_example_survey()).roi_model == "TIERED"

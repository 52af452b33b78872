import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Mapping, Optional, Sequence

import pandas as pd
from dotenv import load_dotenv

from . import narrative
from .config import Config
from .config import load_config as load_runtime_config
from .engine import compute
from .models import Results, SurveyInput
from .reporting import make_summary_text, write_outputs
from .survey_io import SurveyValidationError, load_survey, parse_overrides, survey_from_env, survey_from_mapping

BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


def resolve_survey(
    config: Config,
    env: Mapping[str, str],
    overrides: Optional[Mapping[str, object]] = None,
) -> SurveyInput:
    """Defaults, then the survey file, then ``SLEEP_*`` variables, then overrides."""

    survey = SurveyInput()
    if config.survey_path is not None:
        survey = load_survey(config.survey_path, base=survey)
    survey = survey_from_env(env, base=survey)
    if overrides:
        survey = survey_from_mapping(overrides, base=survey)
    return survey


def _emit_run_metadata(config: Config, survey: SurveyInput, results: Results, artifacts: dict) -> Path:
    meta = {
        "timestamp": pd.Timestamp.now(tz="UTC").isoformat(),
        "python": sys.version.split()[0],
        "roi_model": results.roi_model,
        "chart_format": config.chart_format,
        "charts_disabled": bool(config.disable_charts),
        "inputs": {
            "survey_file": str(config.survey_path) if config.survey_path else None,
            "checked_disruptors": sorted(survey.checked_disruptors),
        },
        "artifacts": artifacts,
    }
    out_meta = (config.output_dir / "run_metadata.json").resolve()
    out_meta.parent.mkdir(parents=True, exist_ok=True)
    with open(out_meta, "w", encoding="utf-8") as fh:
        json.dump(meta, fh, indent=2)
    return out_meta


def run(
    runtime_config: Optional[Config] = None,
    overrides: Optional[Mapping[str, object]] = None,
    env: Optional[Mapping[str, str]] = None,
) -> int:
    cfg = runtime_config or load_runtime_config(os.environ, None)
    env = os.environ if env is None else env

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")

    stage_counter = 0

    def log_stage(message: str) -> None:
        nonlocal stage_counter
        stage_counter += 1
        logger.info("[pipeline:%02d] %s", stage_counter, message)

    def log_detail(message: str) -> None:
        logger.info("           %s", message)

    log_stage("Resolving sleep audit answers")
    survey = resolve_survey(cfg, env, overrides)
    log_detail(f"survey_file => {cfg.survey_path or '(defaults)'}")
    log_detail(
        f"income=${survey.annual_income:,.0f} | sleep_hours={survey.sleep_hours_per_night} "
        f"| poor_nights={survey.poor_sleep_nights_per_week}/wk | employment={survey.employment_type.value}"
    )
    index = narrative.disruption_index(survey.checked_disruptors)
    log_detail(
        f"disruptors={', '.join(sorted(survey.checked_disruptors)) or '(none)'} "
        f"| disruption_index={index} ({narrative.disruption_tier(index)})"
    )

    log_stage(f"Computing cost estimate ({cfg.roi_model.lower()} ROI model)")
    results = compute(survey, roi_model=cfg.roi_model)
    log_detail(
        f"total_annual_cost=${results.total_annual_cost:,.2f} | effective_impairment={results.effective_impairment:.2f}"
        f" | cap_warning={results.cap_warning}"
    )
    for scenario in results.roi_scenarios:
        log_detail(
            f"{scenario.key}: multiplier={scenario.multiplier:.3f} | annual_savings=${scenario.annual_savings:,.2f}"
            f" | payback={narrative.format_payback(scenario.payback_months, scenario.payback_years)}"
        )

    summary = make_summary_text(survey, results)
    if cfg.summary_only:
        logger.info("\n=== SUMMARY ===\n")
        logger.info("%s", summary)
        return 0

    log_stage("Persisting estimate outputs to disk")
    write_outputs(survey, results, cfg.output_xlsx, cfg.output_json)
    cfg.output_summary.parent.mkdir(parents=True, exist_ok=True)
    cfg.output_summary.write_text(summary, encoding="utf-8")
    log_detail(f"outputs_written => {cfg.output_xlsx}, {cfg.output_json}, {cfg.output_summary}")

    artifacts = {
        "xlsx": str(cfg.output_xlsx),
        "json": str(cfg.output_json),
        "summary": str(cfg.output_summary),
        "charts": [],
        "pdf": None,
    }
    if cfg.disable_charts:
        log_stage("Chart rendering disabled; skipping visuals")
    else:
        log_stage("Rendering charts")
        from .visuals import emit_visualizations

        visuals = emit_visualizations(
            results,
            cfg.charts_dir,
            format=cfg.chart_format,
            bundle_pdf=cfg.bundle_pdf,
        )
        artifacts["charts"] = visuals["charts"]
        artifacts["pdf"] = visuals["pdf"]
        for note in visuals["skipped"]:
            log_detail(f"chart_skipped => {note}")

    try:
        out_meta = _emit_run_metadata(cfg, survey, results, artifacts)
        log_detail(f"run_metadata_emitted => {out_meta}")
    except OSError:  # pragma: no cover - defensive
        logger.debug("Unable to emit run metadata", exc_info=True)

    logger.info("\n=== SUMMARY ===\n")
    logger.info("%s", summary)
    logger.info("Outputs written:")
    logger.info(" - %s", cfg.output_xlsx)
    logger.info(" - %s", cfg.output_json)
    logger.info(" - %s", cfg.output_summary)
    for chart in artifacts["charts"]:
        logger.info(" - %s", chart)
    if artifacts["pdf"]:
        logger.info(" - %s", artifacts["pdf"])
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Estimate the cost of poor sleep and the payback of a sleep upgrade")
    parser.add_argument("--survey", help="Path to a JSON file of survey answers")
    parser.add_argument("--output-dir", help="Directory for generated outputs")
    parser.add_argument("--roi-model", choices=["tiered", "flat"], help="ROI model (default: tiered)")
    parser.add_argument("--chart-format", choices=["png", "pdf", "both"], help="Chart file format")
    parser.add_argument("--no-charts", action="store_true", help="Skip chart rendering")
    parser.add_argument("--no-pdf", action="store_true", help="Do not bundle charts into a PDF")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        metavar="KEY=VALUE",
        help="Override a survey answer, e.g. --set annual_income=90000 (repeatable)",
    )
    parser.add_argument("--summary-only", action="store_true", help="Log the summary without writing files")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        runtime_cfg = load_runtime_config(os.environ, args)
    except ValueError as exc:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        logger.error("Invalid configuration: %s", exc)
        return 2
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        overrides = parse_overrides(args.overrides)
        return run(runtime_cfg, overrides=overrides)
    except SurveyValidationError as exc:
        logger.error("Invalid survey answers:")
        for message in exc.messages:
            logger.error(" - %s", message)
        return 2
    except Exception:  # pragma: no cover - defensive
        logger.exception("Fatal error during sleep cost estimation")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

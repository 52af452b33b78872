from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from .cli import run as run_pipeline
from .config import load_config
from .engine import compute
from .models import Results
from .survey_io import survey_from_mapping


@dataclass
class EstimateOptions:
    survey_file: Optional[Path] = None
    answers: Dict[str, object] = field(default_factory=dict)
    output_dir: Optional[Path] = None
    roi_model: Optional[str] = None
    disable_charts: bool = True
    bundle_pdf: bool = False


def estimate(options: EstimateOptions) -> Dict[str, Path]:
    """Programmatic interface to run the estimator and return artifact paths.

    Returns a dict with keys: xlsx, json, summary, run_metadata.
    """

    env: Dict[str, str] = {}
    if options.survey_file:
        env["SLEEPCOST_SURVEY_FILE"] = str(options.survey_file)
    if options.output_dir:
        env["SLEEPCOST_OUTPUT_DIR"] = str(options.output_dir)
    if options.roi_model:
        env["SLEEPCOST_ROI_MODEL"] = options.roi_model
    env["SLEEPCOST_DISABLE_CHARTS"] = "1" if options.disable_charts else "0"
    env["SLEEPCOST_BUNDLE_PDF"] = "1" if options.bundle_pdf else "0"

    cfg = load_config(env, None)
    rc = run_pipeline(cfg, overrides=dict(options.answers), env=env)
    if rc != 0:
        raise RuntimeError(f"Estimator run failed with code {rc}")
    return {
        "xlsx": cfg.output_xlsx,
        "json": cfg.output_json,
        "summary": cfg.output_summary,
        "run_metadata": cfg.output_dir / "run_metadata.json",
    }


def compute_results(answers: Optional[Mapping[str, object]] = None, *, roi_model: Optional[str] = None) -> Results:
    """Compute results straight from a mapping of survey answers."""

    return compute(survey_from_mapping(answers or {}), roi_model=roi_model)

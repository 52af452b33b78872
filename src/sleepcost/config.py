from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import SimpleNamespace
from typing import Mapping, Optional

from .engine import ROI_MODELS

_BOOLEAN_TRUE = {"1", "true", "yes", "on"}
_CHART_FORMATS = {"png", "pdf", "both"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    survey_path: Optional[Path]
    output_dir: Path
    output_xlsx: Path
    output_json: Path
    output_summary: Path
    charts_dir: Path
    roi_model: str
    chart_format: str
    disable_charts: bool
    bundle_pdf: bool
    summary_only: bool = False
    verbose: bool = False


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _flag(value: object | None, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text in _BOOLEAN_TRUE


def _chart_format(value: object | None) -> str:
    text = str(value or "").strip().lower()
    return text if text in _CHART_FORMATS else "png"


def _roi_model(value: object | None) -> str:
    text = str(value or "TIERED").strip().upper()
    if text not in ROI_MODELS:
        raise ValueError(f"Unknown ROI model {value!r}; expected one of {', '.join(ROI_MODELS).lower()}")
    return text


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def _output_paths(output_dir: Path) -> tuple[Path, Path, Path, Path]:
    return (
        (output_dir / "Sleep_Cost_Estimate.xlsx").resolve(),
        (output_dir / "Sleep_Cost_Estimate.json").resolve(),
        (output_dir / "Sleep_Cost_Summary.txt").resolve(),
        (output_dir / "charts").resolve(),
    )


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables and CLI options."""

    base_dir = Path(__file__).resolve().parents[2]
    default_output_dir = (base_dir / "outputs").resolve()

    survey_path = _to_path(env.get("SLEEPCOST_SURVEY_FILE"))
    output_dir = _to_path(env.get("SLEEPCOST_OUTPUT_DIR")) or default_output_dir
    output_xlsx, output_json, output_summary, charts_dir = _output_paths(output_dir)
    roi_model = env.get("SLEEPCOST_ROI_MODEL")
    chart_format = _chart_format(env.get("SLEEPCOST_CHART_FORMAT"))
    disable_charts = _flag(env.get("SLEEPCOST_DISABLE_CHARTS"))
    bundle_pdf = _flag(env.get("SLEEPCOST_BUNDLE_PDF"), default=True)
    summary_only = False
    verbose = False

    cli_ns = _namespace(cli_args)
    if getattr(cli_ns, "survey", None):
        survey_path = _to_path(cli_ns.survey)
    if getattr(cli_ns, "output_dir", None):
        output_dir = _to_path(cli_ns.output_dir) or output_dir
        output_xlsx, output_json, output_summary, charts_dir = _output_paths(output_dir)
    if getattr(cli_ns, "roi_model", None):
        roi_model = cli_ns.roi_model
    if getattr(cli_ns, "chart_format", None):
        chart_format = _chart_format(cli_ns.chart_format)
    if getattr(cli_ns, "no_charts", False):
        disable_charts = True
    if getattr(cli_ns, "no_pdf", False):
        bundle_pdf = False
    if getattr(cli_ns, "summary_only", False):
        summary_only = True
    if getattr(cli_ns, "verbose", False):
        verbose = bool(cli_ns.verbose)

    return Config(
        base_dir=base_dir,
        survey_path=survey_path,
        output_dir=output_dir,
        output_xlsx=output_xlsx,
        output_json=output_json,
        output_summary=output_summary,
        charts_dir=charts_dir,
        roi_model=_roi_model(roi_model),
        chart_format=chart_format,
        disable_charts=disable_charts,
        bundle_pdf=bundle_pdf,
        summary_only=summary_only,
        verbose=verbose,
    )


__all__ = ["Config", "load_config"]

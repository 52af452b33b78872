"""Chart rendering for estimator results."""

from __future__ import annotations

import io
import logging
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib

matplotlib.use("Agg")  # Ensure headless operation on CI/servers.
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.ticker import FuncFormatter
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from .models import Results

logger = logging.getLogger(__name__)

NO_CHANGE_COLOR = "#ef4444"
UPGRADE_COLOR = "#22c55e"
BREAK_EVEN_COLOR = "#f59e0b"


@dataclass
class _ChartRecord:
    """Metadata captured for PDF bundling."""

    title: str
    caption: str
    image_bytes: bytes


def _thousands_formatter() -> FuncFormatter:
    return FuncFormatter(lambda value, _pos: f"${value / 1000:.0f}k")


def _write_figure(
    fig: "plt.Figure",
    base_name: str,
    output_dir: Path,
    *,
    save_png: bool,
    save_pdf: bool,
    dpi: int = 140,
) -> Tuple[List[Path], bytes]:
    output_dir.mkdir(parents=True, exist_ok=True)
    created: List[Path] = []
    buffer = io.BytesIO()
    fig.savefig(buffer, format="png", dpi=dpi, bbox_inches="tight")
    png_bytes = buffer.getvalue()
    if save_png:
        png_path = output_dir / f"{base_name}.png"
        with open(png_path, "wb") as handle:
            handle.write(png_bytes)
        created.append(png_path)
    if save_pdf:
        pdf_path = output_dir / f"{base_name}.pdf"
        fig.savefig(pdf_path, format="pdf", bbox_inches="tight")
        created.append(pdf_path)
    plt.close(fig)
    return created, png_bytes


def _cost_breakdown_figure(results: Results) -> "plt.Figure":
    slices = results.chart_cost_breakdown
    names = [s.name for s in slices]
    positions = np.arange(len(slices))
    fig, ax = plt.subplots(figsize=(8, 5), dpi=140)
    ax.barh(positions, [s.value for s in slices], color=[s.color for s in slices])
    ax.set_yticks(positions)
    ax.set_yticklabels(names)
    ax.invert_yaxis()
    ax.xaxis.set_major_formatter(_thousands_formatter())
    ax.set_title("Your Annual Sleep Tax by Category")
    ax.grid(True, axis="x", linestyle="--", alpha=0.3)
    fig.tight_layout()
    return fig


def _timeline_figure(results: Results) -> "plt.Figure":
    timeline = results.chart_timeline_data
    years = [p.year for p in timeline]
    fig, ax = plt.subplots(figsize=(8, 5), dpi=140)
    ax.plot(years, [p.do_nothing for p in timeline], color=NO_CHANGE_COLOR, linewidth=2, label="Cost of No Change")
    ax.plot(years, [p.after_upgrade for p in timeline], color=UPGRADE_COLOR, linewidth=2, label="After Sleep Upgrade")
    break_even = results.break_even_year
    if break_even is not None:
        ax.axvline(break_even, color=BREAK_EVEN_COLOR, linestyle="--", linewidth=1.5, label=f"Break-Even (year {break_even})")
    ax.set_xticks(years)
    ax.set_xticklabels([f"Year {y}" for y in years], rotation=30)
    ax.yaxis.set_major_formatter(_thousands_formatter())
    ax.set_title("Cost of Doing Nothing vs. Investing in Better Sleep")
    ax.grid(True, linestyle="--", alpha=0.3)
    ax.legend(loc="upper left", frameon=False, fontsize="small")
    fig.tight_layout()
    return fig


def _bundle_pdf(pdf_path: Path, entries: List[_ChartRecord]) -> None:
    c = canvas.Canvas(str(pdf_path), pagesize=landscape(letter))
    page_width, page_height = landscape(letter)
    margin = 36
    text_width = page_width - 2 * margin
    image_height = page_height - 2 * margin - 32
    for entry in entries:
        c.setFont("Helvetica-Bold", 16)
        c.drawString(margin, page_height - margin + 4, entry.title)
        image = ImageReader(io.BytesIO(entry.image_bytes))
        img_width, img_height = image.getSize()
        scale = min(text_width / img_width, image_height / img_height)
        draw_width = img_width * scale
        draw_height = img_height * scale
        x = (page_width - draw_width) / 2
        y = margin + 24
        c.drawImage(image, x, y, width=draw_width, height=draw_height, preserveAspectRatio=True, mask="auto")
        c.setFont("Helvetica", 10)
        text_y = margin
        for line in textwrap.wrap(entry.caption, width=110) or [entry.caption]:
            c.drawString(margin, text_y, line)
            text_y -= 12
        c.showPage()
    c.save()


def emit_visualizations(
    results: Results,
    output_dir: str | Path,
    *,
    format: str = "png",
    bundle_pdf: bool = True,
) -> Dict[str, object]:
    """Render the cost breakdown and timeline charts for ``results``."""

    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    fmt = (format or "png").lower()
    save_png = fmt in {"png", "both"}
    save_pdf = fmt in {"pdf", "both"}
    if not (save_png or save_pdf):
        save_png = True

    charts: List[Path] = []
    skipped: List[str] = []
    pdf_entries: List[_ChartRecord] = []

    plans = (
        (
            "cost_breakdown",
            _cost_breakdown_figure,
            "Annual Cost by Category",
            "Estimated yearly cost of poor sleep split into productivity, healthcare, stimulant, career and cognitive components.",
        ),
        (
            "timeline_projection",
            _timeline_figure,
            "Ten-Year Projection",
            "Cumulative cost of changing nothing versus upgrading, both growing 2% per year; "
            "the upgrade line assumes the moderate scenario.",
        ),
    )
    for base_name, build, title, caption in plans:
        try:
            fig = build(results)
            created, png_bytes = _write_figure(fig, base_name, target_dir, save_png=save_png, save_pdf=save_pdf)
        except Exception as exc:  # pragma: no cover - rendering backend failure
            logger.warning("Unable to render %s chart: %s", base_name, exc)
            skipped.append(f"failed to save {base_name}: {exc}")
            continue
        charts.extend(created)
        if bundle_pdf:
            pdf_entries.append(_ChartRecord(title=title, caption=caption, image_bytes=png_bytes))

    pdf_path: Optional[Path] = None
    if bundle_pdf and pdf_entries:
        pdf_path = target_dir / "Sleep_Cost_Visual_Summary.pdf"
        try:
            _bundle_pdf(pdf_path, pdf_entries)
        except Exception as exc:  # pragma: no cover - reportlab failure
            logger.warning("Unable to build summary PDF: %s", exc)
            skipped.append(f"failed to build summary PDF: {exc}")
            pdf_path = None

    return {
        "charts": [str(path) for path in charts],
        "pdf": str(pdf_path) if pdf_path else None,
        "skipped": skipped,
    }

"""UI utilities for the skinmaxx CLI."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from skinmaxx.db import Scan
from skinmaxx.scoring import AnalysisResult

CATEGORY_TITLES = {
    "surface_texture": "Surface texture",
    "pigmentation_tone": "Pigmentation & tone",
    "clarity": "Clarity",
    "aging_structure": "Aging structure",
}


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route library logging through rich. DEBUG with --verbose, else WARNING."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True))],
        force=True,
    )


def score_style(score: int) -> str:
    if score >= 80:
        return "green"
    if score >= 60:
        return "yellow"
    return "red"


def result_table(result: AnalysisResult) -> Table:
    """Breakdown table: one row per metric, grouped by category."""
    table = Table(title=f"Skin score [{score_style(result.score)}]{result.score}[/]")
    table.add_column("Category")
    table.add_column("Metric")
    table.add_column("Score", justify="right")

    categories = result.categories
    for attr, title in CATEGORY_TITLES.items():
        record = getattr(categories, attr)
        for name, value in record.to_wire().items():
            table.add_row(title, name, f"[{score_style(value)}]{value}[/]")
            title = ""
    return table


def summary_lines(result: AnalysisResult) -> list[str]:
    bonus = " (smile bonus)" if result.has_radiance_bonus else ""
    return [
        f"Skin type: {result.skin_type.value}",
        f"Skin age: {result.skin_age}",
        f"Radiance: {result.radiance_score}{bonus}",
        f"Smile probability: {result.smile_probability:.2f}",
    ]


def history_table(scans: list[Scan]) -> Table:
    table = Table(title=f"{len(scans)} scans")
    table.add_column("Date")
    table.add_column("Score", justify="right")
    table.add_column("Type")
    table.add_column("Radiance", justify="right")
    table.add_column("Image")
    table.add_column("ID")

    for scan in scans:
        r = scan.result
        table.add_row(
            scan.created_at.strftime("%Y-%m-%d %H:%M"),
            f"[{score_style(r.score)}]{r.score}[/]",
            r.skin_type.value,
            str(r.radiance_score),
            (scan.image_hash or "")[:12],
            scan.id,
        )
    return table

"""Terminal rendering of an ``AnalysisReport``."""

from __future__ import annotations

import logging
import textwrap
from collections.abc import Iterable, Sequence
from typing import Any

import click

from .constants import RECOMMENDED_MIN_FILES, VENDOR_COLUMN_WIDTH
from .models import AnalysisReport, FileMatches, ImpactLevel, Vendor

logger = logging.getLogger(__name__)

KEYWORD_HEADERS = (
    "Keyword",
    "Soft",
    "Hard",
    "Soft Impact",
    "Hard Impact",
    "Well-Known Vendors",
)
LABEL_HEADERS = ("Label", "Count", "Well-Known Vendors")

IMPACT_STYLES: dict[ImpactLevel, dict[str, Any]] = {
    ImpactLevel.NONE: {"fg": "green"},
    ImpactLevel.LOW: {"fg": "cyan"},
    ImpactLevel.MEDIUM: {"fg": "yellow"},
    ImpactLevel.HIGH: {"fg": "red"},
    ImpactLevel.CRITICAL: {"fg": "magenta", "bold": True},
}


class Cell:
    """Table cell: plain text plus optional ``click.style`` keyword arguments."""

    __slots__ = ("lines", "style")

    def __init__(self, text: str, style: dict[str, Any] | None = None) -> None:
        self.lines = text.split("\n") if text else [""]
        self.style = style or {}

    @property
    def width(self) -> int:
        return max(len(line) for line in self.lines)

    def render_line(self, index: int, width: int) -> str:
        line = self.lines[index] if index < len(self.lines) else ""
        padded = line.ljust(width)
        return click.style(padded, **self.style) if self.style else padded


def format_vendors(vendors: Iterable[Vendor], width: int = VENDOR_COLUMN_WIDTH) -> str:
    """Comma-separated vendor names, wrapped to *width* columns; ``-`` if empty."""
    ordered = [v for v in Vendor if v in set(vendors)]
    if not ordered:
        return "-"
    text = ", ".join(v.value for v in ordered)
    return "\n".join(textwrap.wrap(text, width=width))


def impact_cell(level: ImpactLevel) -> Cell:
    return Cell(level.label, IMPACT_STYLES[level])


def render_table(headers: Sequence[str], rows: Sequence[Sequence[Cell]]) -> str:
    """Render an ASCII table. Cells are padded before styling so colours never
    shift the column alignment."""
    header_cells = [Cell(h, {"bold": True}) for h in headers]
    widths = [
        max([header_cells[i].width] + [row[i].width for row in rows])
        for i in range(len(headers))
    ]
    separator = "+" + "+".join("-" * (w + 2) for w in widths) + "+"

    def render_row(cells: Sequence[Cell]) -> list[str]:
        height = max(len(cell.lines) for cell in cells)
        return [
            "| "
            + " | ".join(cell.render_line(i, w) for cell, w in zip(cells, widths))
            + " |"
            for i in range(height)
        ]

    lines = [separator, *render_row(header_cells), separator]
    for row in rows:
        lines.extend(render_row(row))
    lines.append(separator)
    return "\n".join(lines)


def keyword_table(report: AnalysisReport) -> str:
    rows = [
        [
            Cell(keyword),
            Cell(str(result.soft_count)),
            Cell(str(result.hard_count)),
            impact_cell(result.soft_impact),
            impact_cell(result.hard_impact),
            Cell(format_vendors(result.well_known_vendors)),
        ]
        for keyword, result in report.ranked_keywords()
    ]
    return render_table(KEYWORD_HEADERS, rows)


def label_table(report: AnalysisReport) -> str:
    rows = [
        [
            Cell(label),
            Cell(str(result.count)),
            Cell(format_vendors(result.well_known_vendors)),
        ]
        for label, result in report.sorted_labels()
    ]
    return render_table(LABEL_HEADERS, rows)


def render_report(
    report: AnalysisReport,
    show_keywords: bool = True,
    show_labels: bool = True,
) -> None:
    """Print the keyword and label tables for the kinds that were requested."""
    if show_keywords:
        if report.keyword_results:
            click.echo("\nKeyword Impact Analysis:")
            click.echo(keyword_table(report))
        else:
            logger.info("No keyword results to display")

    if show_labels:
        if report.label_results:
            click.echo("\nLabel Impact Analysis:")
            click.echo(label_table(report))
        else:
            logger.info("No label matches found")

    click.echo(f"\nTotal files analyzed: {report.total_files}")
    warn_on_low_coverage(report.total_files)


def warn_on_low_coverage(total_files: int) -> None:
    if total_files >= RECOMMENDED_MIN_FILES:
        return
    click.secho(
        f"WARNING: Only analyzed {total_files} files "
        f"(less than {RECOMMENDED_MIN_FILES:,} recommended)",
        fg="yellow",
        err=True,
    )
    click.echo(
        "Consider increasing --max to include more packages.",
        err=True,
    )


def render_matches(matches: Iterable[FileMatches]) -> None:
    """Print every match as ``path:line term (confidence)``."""
    for file_matches in matches:
        for km in file_matches.keyword_matches:
            click.echo(f"{km.path}:{km.line} {km.keyword} ({km.confidence.value})")
        for lm in file_matches.label_matches:
            click.echo(f"{lm.path}:{lm.line} {lm.label} (label)")

"""Plain-text tables and boxed reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Sequence

NO_DATA_MESSAGE = "No data found\n"
MIN_REPORT_WIDTH = 80
BULLET = "• "


@dataclass
class ReportSection:
    """A titled list of items in a report."""

    title: str
    items: list[str] = field(default_factory=list)


def _display_len(text: str) -> int:
    # Column widths are measured in UTF-8 bytes, padding is applied per character.
    return len(text.encode("utf-8"))


def format_table(headers: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render rows under headers as a bordered table."""
    rows = list(rows)
    if not rows:
        return NO_DATA_MESSAGE

    widths = [_display_len(header) for header in headers]
    for row in rows:
        for column, cell in enumerate(row[: len(widths)]):
            widths[column] = max(widths[column], _display_len(cell))

    border = "+" + "".join("-" * (width + 2) + "+" for width in widths) + "\n"

    def render(cells: Sequence[str]) -> str:
        padded = list(cells[: len(widths)]) + [""] * (len(widths) - len(cells))
        return "".join(f"| {cell:<{width}} " for cell, width in zip(padded, widths)) + "|\n"

    parts = [border, render(headers), border]
    for row in rows:
        if row and row[0].upper() == "TOTAL":
            parts.append(border)
        parts.append(render(row))
    parts.append(border)
    return "".join(parts)


def format_report(title: str, sections: Sequence[ReportSection]) -> str:
    """Render a boxed report with a centred title and bulleted sections."""
    lines = [title]
    for section in sections:
        lines.append(section.title)
        lines.extend(BULLET + item for item in section.items)
        if section.items:
            lines.append("")

    max_width = max(MIN_REPORT_WIDTH, *(_display_len(line) for line in lines))
    border = "+" + "-" * (max_width + 2) + "+\n"

    left = max((max_width - _display_len(title)) // 2, 0)
    right = max(max_width - _display_len(title) - left, 0)

    parts = [border, f"| {' ' * left}{title}{' ' * right} |\n", border]
    for position, section in enumerate(sections):
        if not section.items:
            continue
        if position > 0:
            parts.append(border)
        parts.append(f"| {section.title:<{max_width}} |\n")
        parts.append(f"| {'':<{max_width}} |\n")
        parts.extend(f"| {BULLET + item:<{max_width}} |\n" for item in section.items)
    parts.append(border)
    return "".join(parts)
"""Render grids straight to PDF with reportlab.

This is the in-process alternative to :func:`treesheet.export.write_pdf`,
which needs a LibreOffice installation.  Only the visual subset of the grid
style keys is honoured: bold fonts, top and bottom borders, horizontal
alignment, indentation and merged spans.
"""

from __future__ import annotations

import io
import logging
import numbers
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .export import WorkbookData, _sheets, force_extension
from .grid import wrapped

logger = logging.getLogger(__name__)

BASE_FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
ITALIC_FONT = "Helvetica-Oblique"
BORDER_WIDTHS = {"thin": 0.5, "medium": 1.25, "thick": 2.0}
ALIGNMENTS = {"left": "LEFT", "right": "RIGHT", "center": "CENTER", "centre": "CENTER"}
NUMERIC_FORMATS = {"accounting", "number", "percent"}


def _display(value: Any, data_format: Any = None) -> str:
    """Show numbers formatted only where the cell asks for a numeric format."""

    if value is None:
        return ""
    numeric = isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, bool)
    if not numeric or data_format not in NUMERIC_FORMATS:
        return str(value)
    if data_format == "percent":
        return f"{float(value):.2%}"
    if isinstance(value, numbers.Integral):
        return f"{value:,}"
    return f"{float(value):,.2f}"


def layout_grid(grid: Sequence[Sequence[Any]]) -> Tuple[List[List[str]], List[Tuple[Any, ...]]]:
    """Place grid cells on a rectangular matrix.

    Returns the matrix of display strings together with the reportlab table
    style commands derived from each cell's style and span.
    """

    placed: Dict[Tuple[int, int], str] = {}
    occupied: Set[Tuple[int, int]] = set()
    commands: List[Tuple[Any, ...]] = []
    n_cols = 0

    for r, row in enumerate(grid):
        c = 0
        for item in row:
            while (r, c) in occupied:
                c += 1
            cell = wrapped(item)
            style_map: Mapping[str, Any] = cell.style
            end = (c + cell.width - 1, r + cell.height - 1)
            for rr in range(r, end[1] + 1):
                for cc in range(c, end[0] + 1):
                    occupied.add((rr, cc))
            indent = int(style_map.get("indent") or 0)
            placed[(r, c)] = " " * indent + _display(cell.value, style_map.get("data_format"))
            commands.extend(_cell_commands(style_map, (c, r), end))
            if cell.width > 1 or cell.height > 1:
                commands.append(("SPAN", (c, r), end))
            c = end[0] + 1
            n_cols = max(n_cols, c)

    n_rows = max([len(grid), *(rr + 1 for rr, _ in occupied)])

    matrix = [[placed.get((r, c), "") for c in range(n_cols)] for r in range(n_rows)]
    return matrix, commands


def _cell_commands(style_map: Mapping[str, Any], start, end) -> List[Tuple[Any, ...]]:
    commands: List[Tuple[Any, ...]] = []
    font = style_map.get("font")
    if isinstance(font, Mapping):
        if font.get("bold"):
            commands.append(("FONTNAME", start, end, BOLD_FONT))
        elif font.get("italic"):
            commands.append(("FONTNAME", start, end, ITALIC_FONT))
    top = style_map.get("border_top")
    if top:
        commands.append(("LINEABOVE", start, end, BORDER_WIDTHS.get(top, 0.5), colors.black))
    bottom = style_map.get("border_bottom")
    if bottom:
        commands.append(("LINEBELOW", start, end, BORDER_WIDTHS.get(bottom, 0.5), colors.black))
    alignment = ALIGNMENTS.get(str(style_map.get("alignment", "")).lower())
    if alignment:
        commands.append(("ALIGN", start, end, alignment))
    elif style_map.get("data_format") in NUMERIC_FORMATS:
        commands.append(("ALIGN", start, end, "RIGHT"))
    return commands


def grid_pdf_bytes(workbook: WorkbookData, title: Optional[str] = None) -> bytes:
    """Return a PDF holding every sheet of ``workbook`` as a table."""

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(A4),
        leftMargin=15 * mm,
        rightMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
    )
    styles = getSampleStyleSheet()
    story: List[Any] = []
    if title:
        story.extend([Paragraph(escape(str(title)), styles["Title"]), Spacer(1, 6)])

    sheets = _sheets(workbook)
    for index, (name, grid) in enumerate(sheets):
        matrix, commands = layout_grid(list(grid))
        if not matrix or not matrix[0]:
            logger.debug("Skipping empty sheet %r", name)
            continue
        if index:
            story.append(PageBreak())
        if len(sheets) > 1:
            story.extend([Paragraph(escape(str(name)), styles["Heading2"]), Spacer(1, 4)])
        table = Table(matrix, hAlign="LEFT")
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, -1), BASE_FONT),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    *commands,
                ]
            )
        )
        story.append(table)

    if not story:
        story.append(Paragraph("No tables to display.", styles["Normal"]))

    doc.build(story)
    buffer.seek(0)
    return buffer.getvalue()


def write_pdf_report(
    workbook: WorkbookData,
    path: Union[str, Path],
    title: Optional[str] = None,
) -> Path:
    """Write :func:`grid_pdf_bytes` output to ``path`` (forced to ``.pdf``)."""

    target = force_extension(path, ".pdf")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(grid_pdf_bytes(workbook, title=title))
    logger.info("Wrote PDF to %s", target)
    return target


__all__ = [
    "grid_pdf_bytes",
    "layout_grid",
    "write_pdf_report",
]

"""Write grids to XLSX workbooks with openpyxl and convert them to PDF."""

from __future__ import annotations

import io
import logging
import numbers
import shutil
import subprocess
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.properties import Outline

from .errors import ExportError
from .grid import Cell, wrapped

logger = logging.getLogger(__name__)

WorkbookData = Union[Mapping[str, Sequence[Sequence[Any]]], Sequence[Tuple[str, Sequence[Sequence[Any]]]]]

AUTO_SIZE_ROW_LIMIT = 2000
MAX_OUTLINE_LEVEL = 7
MAX_COLUMN_WIDTH = 60

DATA_FORMATS: Dict[str, str] = {
    "accounting": '_(* #,##0.00_);_(* (#,##0.00);_(* "-"??_);_(@_)',
    "number": "#,##0.00",
    "percent": "0.00%",
    "ymd": "yyyy-mm-dd",
}


def _sheets(workbook: WorkbookData) -> List[Tuple[str, Sequence[Sequence[Any]]]]:
    if isinstance(workbook, Mapping):
        return list(workbook.items())
    return [(name, grid) for name, grid in workbook]


def _excel_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, date, datetime)):
        return value
    if isinstance(value, numbers.Number) and not isinstance(value, complex):
        return value
    return str(value)


def _build_font(spec: Any) -> Optional[Font]:
    if not isinstance(spec, Mapping):
        return None
    return Font(
        bold=spec.get("bold"),
        italic=spec.get("italic"),
        size=spec.get("size"),
        color=spec.get("color"),
    )


def _build_border(style_map: Mapping[str, Any]) -> Optional[Border]:
    top = style_map.get("border_top")
    bottom = style_map.get("border_bottom")
    if not top and not bottom:
        return None
    return Border(
        top=Side(style=top) if top else Side(),
        bottom=Side(style=bottom) if bottom else Side(),
    )


def _build_alignment(style_map: Mapping[str, Any]) -> Optional[Alignment]:
    horizontal = style_map.get("alignment")
    indent = style_map.get("indent")
    wrap_text = style_map.get("wrap_text")
    if horizontal is None and indent is None and wrap_text is None:
        return None
    return Alignment(horizontal=horizontal, indent=int(indent or 0), wrap_text=wrap_text)


def apply_style(target, style_map: Mapping[str, Any]) -> None:
    """Apply a grid style mapping to an openpyxl cell."""

    font = _build_font(style_map.get("font"))
    if font is not None:
        target.font = font
    border = _build_border(style_map)
    if border is not None:
        target.border = border
    alignment = _build_alignment(style_map)
    if alignment is not None:
        target.alignment = alignment
    data_format = style_map.get("data_format")
    if data_format:
        target.number_format = DATA_FORMATS.get(data_format, str(data_format))


def write_sheet(ws, grid: Iterable[Sequence[Any]], auto_size: bool = True) -> Tuple[int, int]:
    """Write ``grid`` into the worksheet, returning rows and columns written."""

    row_idx = 0
    max_cols = 0
    outlined = False
    widths: Dict[int, int] = {}
    for row_idx, row in enumerate(grid, start=1):
        col_idx = 1
        for item in row:
            while isinstance(ws.cell(row=row_idx, column=col_idx), MergedCell):
                col_idx += 1
            cell: Cell = wrapped(item)
            target = ws.cell(row=row_idx, column=col_idx, value=_excel_value(cell.value))
            apply_style(target, cell.style)
            if cell.width > 1 or cell.height > 1:
                ws.merge_cells(
                    start_row=row_idx,
                    start_column=col_idx,
                    end_row=row_idx + cell.height - 1,
                    end_column=col_idx + cell.width - 1,
                )
            elif cell.value is not None:
                widths[col_idx] = max(widths.get(col_idx, 0), len(str(cell.value)))
            depth = cell.style.get("depth")
            if depth:
                dim = ws.row_dimensions[row_idx]
                dim.outlineLevel = max(int(dim.outlineLevel or 0), min(int(depth), MAX_OUTLINE_LEVEL))
                outlined = True
            col_idx += cell.width
        max_cols = max(max_cols, col_idx - 1)

    if outlined:
        outline_pr = ws.sheet_properties.outlinePr
        if outline_pr is None:
            outline_pr = Outline()
        outline_pr.summaryBelow = True
        ws.sheet_properties.outlinePr = outline_pr

    if auto_size:
        for col_idx, width in widths.items():
            ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, MAX_COLUMN_WIDTH)

    return row_idx, max_cols


def _clear_sheet(ws) -> None:
    for merged in list(ws.merged_cells.ranges):
        ws.unmerge_cells(str(merged))
    if ws.max_row:
        ws.delete_rows(1, ws.max_row)
    ws.row_dimensions.clear()


def open_template(template: Union[str, Path]) -> Workbook:
    """Load an existing workbook whose sheets may be overwritten."""

    template_path = Path(template).expanduser()
    if not template_path.exists():
        raise FileNotFoundError(f"Template workbook '{template_path}' does not exist")
    logger.info("Filling template %s", template_path)
    return load_workbook(template_path)


def build_workbook(
    workbook: WorkbookData,
    auto_size: Optional[bool] = None,
    template: Optional[Union[str, Path]] = None,
) -> Workbook:
    """Create an openpyxl workbook holding one sheet per grid.

    Columns are auto-sized for sheets with fewer than 2000 rows unless
    ``auto_size`` says otherwise.  With a ``template`` the workbook is loaded
    from that file instead: sheets named in ``workbook`` are cleared and
    rewritten in place, every other sheet (and formulas pointing at the
    rewritten ones) is left as it was.
    """

    if template is not None:
        book = open_template(template)
    else:
        book = Workbook()
        book.remove(book.active)
    for name, grid in _sheets(workbook):
        rows = list(grid)
        sheet_auto_size = len(rows) < AUTO_SIZE_ROW_LIMIT if auto_size is None else auto_size
        title = str(name)[:31] or "Sheet"
        if title in book.sheetnames:
            ws = book[title]
            _clear_sheet(ws)
            logger.debug("Overwriting sheet %r", title)
        else:
            ws = book.create_sheet(title=title)
        written_rows, written_cols = write_sheet(ws, rows, auto_size=sheet_auto_size)
        logger.debug("Wrote sheet %r (%d rows, %d columns)", ws.title, written_rows, written_cols)
    if not book.worksheets:
        book.create_sheet(title="Sheet")
    return book


def force_extension(path: Union[str, Path], ext: str) -> Path:
    """Return ``path`` with its suffix replaced by ``ext``."""

    ext = ext if ext.startswith(".") else f".{ext}"
    path = Path(path).expanduser().resolve()
    if path.suffix.lower() == ext.lower():
        return path
    return path.with_suffix(ext)


def write_workbook(
    workbook: WorkbookData,
    path: Union[str, Path],
    auto_size: Optional[bool] = None,
    template: Optional[Union[str, Path]] = None,
) -> Path:
    """Write the workbook to ``path`` (forced to ``.xlsx``) and return it.

    ``template`` names an existing workbook to fill in, see
    :func:`build_workbook`.  The template file itself is never modified.
    """

    target = force_extension(path, ".xlsx")
    target.parent.mkdir(parents=True, exist_ok=True)
    build_workbook(workbook, auto_size=auto_size, template=template).save(target)
    logger.info("Wrote workbook to %s", target)
    return target


def workbook_bytes(
    workbook: WorkbookData,
    auto_size: Optional[bool] = None,
    template: Optional[Union[str, Path]] = None,
) -> bytes:
    """Serialize the workbook to XLSX bytes."""

    buffer = io.BytesIO()
    build_workbook(workbook, auto_size=auto_size, template=template).save(buffer)
    buffer.seek(0)
    return buffer.getvalue()


def convert_pdf(
    source: Union[str, Path],
    pdf_path: Union[str, Path],
    timeout: int = 120,
    binary: str = "soffice",
) -> Path:
    """Convert an office document to PDF with headless LibreOffice."""

    source = Path(source).expanduser().resolve()
    target = force_extension(pdf_path, ".pdf")
    if not source.exists():
        raise FileNotFoundError(f"Document '{source}' does not exist")

    with tempfile.TemporaryDirectory() as out_dir:
        cmd = [binary, "--headless", "--convert-to", "pdf", "--outdir", out_dir, str(source)]
        logger.info("Converting %s to PDF", source)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except FileNotFoundError as exc:
            raise ExportError(f"LibreOffice executable '{binary}' was not found") from exc
        except subprocess.TimeoutExpired as exc:
            raise ExportError(f"PDF conversion timed out after {timeout}s") from exc
        if result.returncode != 0:
            raise ExportError(
                f"LibreOffice conversion failed (exit {result.returncode}): {result.stderr.strip()}"
            )
        generated = Path(out_dir) / f"{source.stem}.pdf"
        if not generated.exists():
            raise ExportError(f"LibreOffice did not produce a PDF for '{source}'")
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(generated), str(target))
    return target


def write_pdf(
    workbook: WorkbookData,
    path: Union[str, Path],
    timeout: int = 120,
    binary: str = "soffice",
    template: Optional[Union[str, Path]] = None,
) -> Path:
    """Write the workbook to a temporary XLSX file and convert it to PDF."""

    with tempfile.TemporaryDirectory() as work_dir:
        xlsx_path = write_workbook(
            workbook,
            Path(work_dir) / f"{Path(path).stem or 'sheet'}.xlsx",
            template=template,
        )
        return convert_pdf(xlsx_path, path, timeout=timeout, binary=binary)


__all__ = [
    "DATA_FORMATS",
    "apply_style",
    "build_workbook",
    "convert_pdf",
    "force_extension",
    "open_template",
    "workbook_bytes",
    "write_pdf",
    "write_sheet",
    "write_workbook",
]

"""Grids of cells handed to the workbook writer.

A grid is a list of rows and a row is a list of cells.  A cell is either a
bare value (a string, number, date, ...) or a :class:`Cell` wrapping a value
with a style mapping and dimensions.  Style mappings are opaque here; the
writer in :mod:`treesheet.export` decides what the keys mean.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence

from .config import RenderConfig
from .table import discover_columns
from .tree import Node
from .walk import RenderFn, TableRow, walk

Grid = List[List[Any]]

DEFAULT_TREE_FORMATTERS: Dict[int, Dict[str, Any]] = {
    0: {"font": {"bold": True}, "border_bottom": "medium"},
    1: {"font": {"bold": True}},
    2: {"indent": 2},
    3: {"font": {"italic": True}, "alignment": "right"},
}

DEFAULT_TREE_TOTAL_FORMATTERS: Dict[int, Dict[str, Any]] = {
    0: {"font": {"bold": True}, "border_top": "medium"},
    1: {"border_top": "thin", "border_bottom": "thin"},
}

DEFAULT_HEADER_STYLE: Dict[str, Any] = {"border_bottom": "thin", "font": {"bold": True}}


@dataclass(frozen=True)
class Cell:
    """A value wrapped with style and dimension data."""

    value: Any = None
    style: Mapping[str, Any] = field(default_factory=dict)
    width: int = 1
    height: int = 1


def nested_merge(*styles: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Merge style mappings, later ones winning, merging nested mappings."""

    merged: Dict[str, Any] = {}
    for style_map in styles:
        for key, item in (style_map or {}).items():
            current = merged.get(key)
            if isinstance(current, Mapping) and isinstance(item, Mapping):
                merged[key] = nested_merge(current, item)
            else:
                merged[key] = item
    return merged


def wrapped(x: Any) -> Cell:
    """Return ``x`` as a :class:`Cell`."""

    return x if isinstance(x, Cell) else Cell(value=x)


def data(x: Any) -> Any:
    """The bare value of a cell."""

    return x.value if isinstance(x, Cell) else x


def style(x: Any, style_map: Optional[Mapping[str, Any]] = None) -> Any:
    """Get the style of ``x``, or deep-merge ``style_map`` into it."""

    if style_map is None:
        return dict(x.style) if isinstance(x, Cell) else {}
    cell = wrapped(x)
    return replace(cell, style=nested_merge(cell.style, style_map))


def dims(x: Any, width: Optional[int] = None, height: Optional[int] = None) -> Any:
    """Get the ``(width, height)`` of ``x``, or return it resized."""

    cell = wrapped(x)
    if width is None and height is None:
        return cell.width, cell.height
    return replace(
        cell,
        width=cell.width if width is None else int(width),
        height=cell.height if height is None else int(height),
    )


def best_guess_format(record: Mapping[Any, Any], column: Any) -> Dict[str, Any]:
    """Guess a cell format from the column name and value."""

    name = str(column).lower()
    item = record.get(column)
    if isinstance(item, str) and len(item) > 75:
        return {"wrap_text": True}
    if "percent" in name or "%" in name:
        return {"data_format": "percent"}
    if "date" in name:
        return {"data_format": "ymd", "alignment": "left"}
    if isinstance(item, Decimal):
        return {"data_format": "accounting"}
    return {}


def table_grid(
    records: Sequence[Mapping[Any, Any]],
    headers: Optional[Sequence[Any]] = None,
    header_style: Optional[Callable[[Any], Mapping[str, Any]]] = None,
    data_style: Optional[Callable[[Mapping[Any, Any], Any], Optional[Mapping[str, Any]]]] = None,
) -> Grid:
    """Build a grid from tabular records of ``{column: value}``.

    ``headers`` fixes the column order, otherwise columns appear in the order
    they are first seen.  ``header_style`` maps a column name to a style and
    ``data_style`` maps ``(record, column)`` to a style or ``None``.
    """

    if headers is None:
        headers = list(dict.fromkeys(key for record in records for key in record))
    if not headers:
        raise ValueError("Table headers are empty")

    numeric = set()
    body: Grid = []
    for record in records:
        row = []
        for column in headers:
            cell_style = nested_merge(
                (data_style(record, column) if data_style else None) or {},
                best_guess_format(record, column),
            )
            item = record.get(column)
            if cell_style.get("data_format") == "accounting" or (
                isinstance(item, (int, float, Decimal)) and not isinstance(item, bool)
            ):
                numeric.add(column)
            row.append(Cell(item, cell_style))
        body.append(row)

    def default_header_style(column: Any) -> Dict[str, Any]:
        if column in numeric:
            return nested_merge(DEFAULT_HEADER_STYLE, {"alignment": "right"})
        return dict(DEFAULT_HEADER_STYLE)

    header_style = header_style or default_header_style
    return [[Cell(column, header_style(column)) for column in headers], *body]


def _formatter_for(formatters: Mapping[int, Mapping[str, Any]], depth: int) -> Mapping[str, Any]:
    if not formatters:
        return {}
    if depth in formatters:
        return formatters[depth]
    return formatters[max(formatters)]


def tree_grid(
    title: Any,
    tree: Node,
    headers: Optional[Sequence[Hashable]] = None,
    render: Optional[RenderFn] = None,
    config: Optional[RenderConfig] = None,
    formatters: Optional[Mapping[int, Mapping[str, Any]]] = None,
    total_formatters: Optional[Mapping[int, Mapping[str, Any]]] = None,
    data_format: str = "accounting",
) -> Grid:
    """Build a grid from a tree: a title, a header row and one row per line.

    ``formatters`` and ``total_formatters`` map a depth to a style; depths
    past the deepest entry reuse it.  Every cell style also carries ``depth``
    and ``role`` hints for the writer.
    """

    formatters = DEFAULT_TREE_FORMATTERS if formatters is None else formatters
    total_formatters = (
        DEFAULT_TREE_TOTAL_FORMATTERS if total_formatters is None else total_formatters
    )
    rows: List[TableRow] = walk(tree, render, config)
    columns = list(headers) if headers is not None else discover_columns(rows)
    header_cell_style = {"font": {"bold": True}, "alignment": "right"}

    grid: Grid = [
        [Cell(title, {"alignment": "center"}, width=len(columns) + 1)],
        [Cell(""), *[Cell(column, header_cell_style) for column in columns]],
    ]
    for row in rows:
        hints = {"depth": row.depth, "role": row.role.value}
        chosen = total_formatters if row.is_total else formatters
        row_style = nested_merge(
            _formatter_for(chosen, row.depth), {"data_format": data_format}, hints
        )
        label_style = hints if row.is_total else row_style
        grid.append(
            [
                Cell(row.label, label_style),
                *[Cell(row.values.get(column), row_style) for column in columns],
            ]
        )
    return grid


def with_title(grid: Sequence[Sequence[Any]], title: Any) -> Grid:
    """Write a title above ``grid`` spanning its widest row."""

    width = max((sum(wrapped(cell).width for cell in row) for row in grid), default=1)
    return [[Cell(title, {"alignment": "center"}, width=max(width, 1))], *[list(row) for row in grid]]


__all__ = [
    "Cell",
    "DEFAULT_TREE_FORMATTERS",
    "DEFAULT_TREE_TOTAL_FORMATTERS",
    "Grid",
    "best_guess_format",
    "data",
    "dims",
    "nested_merge",
    "style",
    "table_grid",
    "tree_grid",
    "with_title",
    "wrapped",
]

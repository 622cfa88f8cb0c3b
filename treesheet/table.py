"""Column-aligned rendering of walked tree rows."""

from __future__ import annotations

import sys
from typing import Any, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, TextIO

import pandas as pd

from .config import RenderConfig
from .tree import Node, iter_leaves
from .walk import RenderFn, RowRole, TableRow, walk

LABEL_COLUMN = ""


def _order_columns(
    discovered: Iterable[Hashable],
    first: Sequence[Hashable],
    last: Sequence[Hashable],
) -> List[Hashable]:
    present = list(dict.fromkeys(discovered))
    available = set(present)
    specified = set(first) | set(last)
    middle = [column for column in present if column not in specified]
    ordered = [column for column in first if column in available]
    ordered.extend(middle)
    ordered.extend(column for column in last if column in available)
    return ordered


def discover_columns(
    rows: Iterable[TableRow],
    first: Sequence[Hashable] = (),
    last: Sequence[Hashable] = (),
) -> List[Hashable]:
    """Columns present in the leaf rows, in first-seen order.

    Columns named in ``first`` lead and those in ``last`` trail, as long as
    they occur in the data.
    """

    keys = (key for row in rows if row.role is RowRole.LEAF for key in row.values)
    return _order_columns(keys, first, last)


def tree_columns(
    tree: Node,
    first: Sequence[Hashable] = (),
    last: Sequence[Hashable] = (),
) -> List[Hashable]:
    """Same as :func:`discover_columns` but read straight from a tree."""

    keys = (key for leaf in iter_leaves(tree) for key in leaf.values)
    return _order_columns(keys, first, last)


def render_labels(rows: Iterable[TableRow], indent_width: int = 2) -> List[Dict[Any, Any]]:
    """Replace depth and label with one indented display label.

    The label is stored under the ``""`` key next to the row's values.
    """

    indent = " " * indent_width
    rendered: List[Dict[Any, Any]] = []
    for row in rows:
        record: Dict[Any, Any] = {LABEL_COLUMN: f"{indent * row.depth}{row.label}"}
        record.update(row.values)
        rendered.append(record)
    return rendered


def format_table(
    records: Sequence[Mapping[Any, Any]],
    columns: Optional[Sequence[Any]] = None,
    empty: str = "-",
    pad_width: int = 2,
) -> str:
    """Lay out ``records`` as left-aligned text columns.

    Unlike most pretty printers this keeps leading whitespace in labels, so
    indentation survives.  Missing or ``None`` cells show ``empty``.
    """

    if columns is None:
        columns = list(dict.fromkeys(key for record in records for key in record))

    def cell(record: Mapping[Any, Any], column: Any) -> str:
        item = record.get(column)
        return empty if item is None else str(item)

    header = {column: str(column) for column in columns}
    widths = [
        pad_width + max(len(cell(record, column)) for record in [header, *records])
        for column in columns
    ]
    lines = [
        "".join(cell(record, column).ljust(width) for column, width in zip(columns, widths)).rstrip()
        for record in [header, *records]
    ]
    return "\n".join(lines)


def print_table(
    records: Sequence[Mapping[Any, Any]],
    columns: Optional[Sequence[Any]] = None,
    empty: str = "-",
    pad_width: int = 2,
    stream: Optional[TextIO] = None,
) -> None:
    """Print :func:`format_table` output."""

    print(format_table(records, columns, empty, pad_width), file=stream or sys.stdout)


def to_frame(
    records: Sequence[Mapping[Any, Any]],
    columns: Optional[Sequence[Any]] = None,
) -> pd.DataFrame:
    """Return rendered records as a DataFrame with the label column first."""

    frame = pd.DataFrame.from_records(list(records))
    if columns is None:
        columns = [column for column in frame.columns if column != LABEL_COLUMN]
    ordered = [LABEL_COLUMN, *[column for column in columns if column != LABEL_COLUMN]]
    return frame.reindex(columns=ordered)


def tree_to_text(
    tree: Node,
    render: Optional[RenderFn] = None,
    config: Optional[RenderConfig] = None,
    first: Sequence[Hashable] = (),
    last: Sequence[Hashable] = (),
    empty: str = "-",
) -> str:
    """Walk ``tree`` and lay it out as an indented text table."""

    config = config or RenderConfig()
    rows = walk(tree, render, config)
    columns = [LABEL_COLUMN, *discover_columns(rows, first, last)]
    return format_table(render_labels(rows, config.indent_width), columns, empty)


__all__ = [
    "LABEL_COLUMN",
    "discover_columns",
    "format_table",
    "print_table",
    "render_labels",
    "to_frame",
    "tree_columns",
    "tree_to_text",
]

"""IO helpers for reading trees and tabular records from disk."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence

import pandas as pd
import yaml

from .errors import MalformedNodeError
from .tree import Branch, Node, from_data, table_to_trees

logger = logging.getLogger(__name__)

TREE_EXTENSIONS = {".yaml", ".yml", ".json"}
TABLE_EXTENSIONS = {".csv", ".txt", ".xlsx", ".xls"}


def load_tree(path: Path, title: Optional[str] = None) -> Node:
    """Load a tree from a YAML or JSON document.

    The document holds either a single ``[label, content]`` pair or a mapping
    of label to content.  A mapping with several top-level entries becomes a
    branch labelled ``title`` (or the file stem) holding one child per entry.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Tree file '{path}' does not exist")

    logger.info("Loading tree from %s", path)
    with path.open("r", encoding="utf-8") as stream:
        raw = yaml.safe_load(stream)

    if raw is None:
        raise ValueError(f"Tree file '{path}' is empty")
    if isinstance(raw, Mapping) and len(raw) != 1:
        return Branch(title or path.stem, [from_data({key: item}) for key, item in raw.items()])
    try:
        return from_data(raw)
    except MalformedNodeError:
        logger.error("Tree file %s does not describe a tree", path)
        raise


def load_records(path: Path) -> List[Dict[Hashable, Any]]:
    """Read CSV or Excel rows as a list of records."""

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Dataset '{path}' does not exist")

    ext = path.suffix.lower()
    if ext in {".csv", ".txt"}:
        logger.debug("Reading CSV %s", path)
        frame = pd.read_csv(path)
    elif ext in {".xlsx", ".xls"}:
        logger.debug("Reading Excel %s", path)
        frame = pd.read_excel(path)
    else:
        raise ValueError(f"Unsupported file extension '{ext}' for dataset '{path}'")

    frame = frame.astype(object).where(frame.notna(), None)
    return frame.to_dict(orient="records")


def records_to_tree(
    records: Sequence[Mapping[Hashable, Any]],
    group_by: Sequence[Hashable],
    value_columns: Optional[Sequence[Hashable]] = None,
    title: Any = "",
) -> Node:
    """Group flat records into a tree under a ``title`` root.

    Each column in ``group_by`` supplies one level of labels.  Leaves carry
    ``value_columns`` or, when none are given, every other column.
    """

    if not group_by:
        raise ValueError("At least one group_by column is required")
    missing = [column for column in group_by if records and column not in records[0]]
    if missing:
        raise KeyError(f"Missing group_by columns: {', '.join(map(str, missing))}")

    grouped = set(group_by)

    def format_leaf(record: Mapping[Hashable, Any]) -> Dict[Hashable, Any]:
        if value_columns:
            return {
                column: record[column]
                for column in value_columns
                if record.get(column) is not None
            }
        return {
            column: item
            for column, item in record.items()
            if column not in grouped and item is not None
        }

    return Branch(title, table_to_trees(list(records), format_leaf, *group_by))


def load_input(
    path: Path,
    group_by: Sequence[Hashable] = (),
    value_columns: Optional[Sequence[Hashable]] = None,
    title: Optional[str] = None,
) -> Node:
    """Load a tree document or a grouped table depending on the extension."""

    ext = Path(path).suffix.lower()
    if ext in TREE_EXTENSIONS:
        return load_tree(path, title=title)
    if ext in TABLE_EXTENSIONS:
        records = load_records(path)
        logger.info("Grouping %d records by %s", len(records), ", ".join(map(str, group_by)))
        return records_to_tree(records, group_by, value_columns, title or Path(path).stem)
    raise ValueError(f"Unsupported file extension '{ext}' for input '{path}'")


__all__ = [
    "load_input",
    "load_records",
    "load_tree",
    "records_to_tree",
]

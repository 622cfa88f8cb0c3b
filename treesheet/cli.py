"""Command line interface for rendering trees into tables and workbooks."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

from .config import PDF_ENGINES, AppConfig, RenderConfig, load_config, parse_config
from .export import write_pdf, write_workbook
from .grid import tree_grid
from .io import load_input
from .pdf import write_pdf_report
from .table import LABEL_COLUMN, discover_columns, format_table, render_labels, to_frame
from .walk import POLICIES, resolve_policy, walk

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Render hierarchical data as indented tables, XLSX workbooks or PDFs"
    )
    parser.add_argument("--config", type=Path, help="Path to YAML configuration")
    parser.add_argument("--input", type=Path, help="Tree document (YAML/JSON) or table (CSV/XLSX)")
    parser.add_argument("--title", help="Title of the rendered tree")
    parser.add_argument(
        "--group-by",
        action="append",
        help="Column used to group tabular input; repeat for nested levels",
    )
    parser.add_argument("--value-column", action="append", help="Column to keep on each leaf")
    parser.add_argument("--output", type=Path, help="Write an XLSX workbook to this path")
    parser.add_argument(
        "--template",
        type=Path,
        help="Existing workbook to fill in; only the output sheet is overwritten",
    )
    parser.add_argument("--pdf", type=Path, help="Write a PDF to this path")
    parser.add_argument(
        "--pdf-engine",
        choices=PDF_ENGINES,
        help="Render PDFs with reportlab or convert the workbook with LibreOffice",
    )
    parser.add_argument("--csv", type=Path, help="Write the rendered table as CSV to this path")
    parser.add_argument("--sheet-name", help="Worksheet name for the XLSX output")
    parser.add_argument("--policy", choices=sorted(POLICIES), help="Row rendering policy")
    parser.add_argument("--min-leaf-depth", type=int, help="Display leaves no shallower than this")
    parser.add_argument("--indent-width", type=int, help="Spaces per depth level in text output")
    parser.add_argument("--first-column", action="append", help="Column to show first")
    parser.add_argument("--last-column", action="append", help="Column to show last")
    parser.add_argument("--empty", help="Placeholder for missing values in text output")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING)")
    parser.add_argument("--quiet", action="store_true", help="Suppress console table output")
    return parser


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = load_config(args.config) if args.config else parse_config({})
        _apply_overrides(config, args)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        return 1

    if config.input is None:
        logger.error("No input given; pass --input or set input.path in the configuration")
        return 1

    try:
        tree = load_input(config.input, config.group_by, config.value_columns or None, config.title)
    except Exception as exc:
        logger.exception("Failed to load input: %s", exc)
        return 1

    try:
        render = resolve_policy(config.output.policy, config.render)
        rows = walk(tree, render, config.render)
    except Exception as exc:
        logger.exception("Failed to render tree: %s", exc)
        return 1

    columns = discover_columns(rows, _typed(config.columns.first, rows), _typed(config.columns.last, rows))
    records = render_labels(rows, config.render.indent_width)

    try:
        _write_outputs(config, tree, render, columns, records)
    except Exception as exc:
        logger.exception("Failed to write outputs: %s", exc)
        return 1

    if not args.quiet:
        display = [
            {key: _format_value(item) for key, item in record.items()} for record in records
        ]
        print(format_table(display, [LABEL_COLUMN, *columns], empty=config.columns.empty))

    return 0


def _write_outputs(config: AppConfig, tree, render, columns, records) -> None:
    output = config.output
    if output.workbook or output.pdf:
        title = config.title or tree.label
        workbook = {
            output.sheet_name: tree_grid(title, tree, columns, render=render, config=config.render)
        }
        if output.workbook:
            write_workbook(workbook, output.workbook, template=output.template)
        if output.pdf and output.pdf_engine == "libreoffice":
            write_pdf(workbook, output.pdf, template=output.template)
        elif output.pdf:
            write_pdf_report(workbook, output.pdf)
    if output.csv:
        output.csv.parent.mkdir(parents=True, exist_ok=True)
        to_frame(records, columns).to_csv(output.csv, index=False)
        logger.info("Wrote table to %s", output.csv)


def _apply_overrides(config: AppConfig, args: argparse.Namespace) -> None:
    if args.input:
        config.input = _resolve_override_path(args.input)
    if args.title:
        config.title = args.title
    if args.group_by:
        config.group_by = list(args.group_by)
    if args.value_column:
        config.value_columns = list(args.value_column)

    if args.output:
        config.output.workbook = _resolve_override_path(args.output)
    if args.template:
        config.output.template = _resolve_override_path(args.template)
    if args.pdf:
        config.output.pdf = _resolve_override_path(args.pdf)
    if args.csv:
        config.output.csv = _resolve_override_path(args.csv)
    if args.sheet_name:
        config.output.sheet_name = args.sheet_name
    if args.policy:
        config.output.policy = args.policy
    if args.pdf_engine:
        config.output.pdf_engine = args.pdf_engine

    if args.min_leaf_depth is not None or args.indent_width is not None:
        config.render = RenderConfig(
            min_leaf_depth=(
                args.min_leaf_depth if args.min_leaf_depth is not None else config.render.min_leaf_depth
            ),
            indent_width=(
                args.indent_width if args.indent_width is not None else config.render.indent_width
            ),
            aggregation=config.render.aggregation,
            identity=config.render.identity,
            sum_totals=config.render.sum_totals,
        )

    if args.first_column:
        config.columns.first = list(args.first_column)
    if args.last_column:
        config.columns.last = list(args.last_column)
    if args.empty is not None:
        config.columns.empty = args.empty


def _typed(names: List[object], rows) -> List[object]:
    """Match column names given as text against the keys found in ``rows``."""

    by_text = {}
    for row in rows:
        for key in row.values:
            by_text.setdefault(str(key), key)
    return [by_text.get(str(name), name) for name in names]


def _resolve_override_path(path: Path) -> Path:
    path = Path(path).expanduser()
    if path.is_absolute():
        return path
    return (Path.cwd() / path).resolve()


def _format_value(value):
    if value is None or isinstance(value, str):
        return value
    try:
        if isinstance(value, float) and np.isnan(value):
            return None
        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            return f"{int(value):,}"
        return f"{float(value):,.2f}"
    except (TypeError, ValueError):
        return str(value)


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())

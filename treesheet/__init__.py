"""treesheet package.

Declarative spreadsheets from hierarchical data.  Trees of labelled value
maps are folded into totals, walked into indented table rows with subtotal
lines, and handed as grids of cells to an openpyxl based writer that can also
produce PDFs through LibreOffice.
"""

from .config import AppConfig, ColumnConfig, OutputConfig, RenderConfig, load_config
from .errors import ExportError, FoldError, MalformedNodeError, RenderError, TreeSheetError
from .export import convert_pdf, workbook_bytes, write_pdf, write_workbook
from .grid import Cell, table_grid, tree_grid, with_title
from .io import load_input, load_records, load_tree, records_to_tree
from .pdf import grid_pdf_bytes, write_pdf_report
from .table import discover_columns, format_table, print_table, render_labels, tree_columns, tree_to_text
from .tree import (
    Branch,
    Leaf,
    Node,
    add_trees,
    build_tree,
    children,
    fold,
    from_data,
    is_leaf,
    label,
    map_nodes,
    merge_trees,
    negate_tree,
    shallow,
    subtract_trees,
    table_to_trees,
    value,
)
from .values import fold_maps, maps_equal, negate_map, subtract_maps, sum_maps
from .walk import RowRole, TableRow, combined_footer, combined_header, default_render, walk

__all__ = [
    "AppConfig",
    "Branch",
    "Cell",
    "ColumnConfig",
    "ExportError",
    "FoldError",
    "Leaf",
    "MalformedNodeError",
    "Node",
    "OutputConfig",
    "RenderConfig",
    "RenderError",
    "RowRole",
    "TableRow",
    "TreeSheetError",
    "add_trees",
    "build_tree",
    "children",
    "combined_footer",
    "combined_header",
    "convert_pdf",
    "default_render",
    "discover_columns",
    "fold",
    "fold_maps",
    "format_table",
    "from_data",
    "grid_pdf_bytes",
    "is_leaf",
    "label",
    "load_config",
    "load_input",
    "load_records",
    "load_tree",
    "map_nodes",
    "maps_equal",
    "merge_trees",
    "negate_map",
    "negate_tree",
    "print_table",
    "records_to_tree",
    "render_labels",
    "shallow",
    "subtract_maps",
    "subtract_trees",
    "sum_maps",
    "table_grid",
    "table_to_trees",
    "tree_columns",
    "tree_grid",
    "tree_to_text",
    "value",
    "walk",
    "with_title",
    "workbook_bytes",
    "write_pdf",
    "write_pdf_report",
    "write_workbook",
]

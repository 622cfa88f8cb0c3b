import io

import pandas as pd

from treesheet.config import RenderConfig
from treesheet.tree import Branch
from treesheet.table import (
    discover_columns,
    format_table,
    print_table,
    render_labels,
    to_frame,
    tree_columns,
    tree_to_text,
)
from treesheet.walk import RowRole, TableRow, walk


def test_render_labels_indents_by_depth():
    rows = [
        TableRow(0, "Assets", RowRole.HEADER),
        TableRow(2, "Cash", RowRole.LEAF, {2018: 100}),
        TableRow(0, "", RowRole.TOTAL, {2018: 100}),
    ]
    assert render_labels(rows) == [
        {"": "Assets"},
        {"": "    Cash", 2018: 100},
        {"": "", 2018: 100},
    ]
    assert render_labels(rows, indent_width=3)[1][""] == "      Cash"


def test_discover_columns_orders_first_and_last():
    rows = [
        TableRow(2, "a", RowRole.LEAF, {"b": 1, "c": 2}),
        TableRow(2, "b", RowRole.LEAF, {"d": 3, "a": 4}),
        TableRow(0, "", RowRole.TOTAL, {"ignored": 0}),
    ]
    assert discover_columns(rows) == ["b", "c", "d", "a"]
    assert discover_columns(rows, first=["a"], last=["b", "missing"]) == ["a", "c", "d", "b"]


def test_tree_columns_reads_leaves(balance_sheet):
    assets = balance_sheet[0]
    assert tree_columns(assets) == [2018, 2017]
    assert tree_columns(assets, first=[2017]) == [2017, 2018]


def test_format_table_aligns_columns_and_fills_placeholders(current_assets):
    rows = walk(Branch("Balance", [current_assets]))
    text = format_table(render_labels(rows), ["", 2018, 2017])
    lines = text.splitlines()

    assert lines[0] == " " * 25 + "2018  2017"
    assert lines[1] == "Current Assets".ljust(25) + "-     -"
    assert lines[2] == "    Cash".ljust(25) + "100   85"
    assert lines[3] == "    Accounts Receivable".ljust(25) + "5     45"
    assert lines[4] == " " * 25 + "105   130"


def test_format_table_custom_placeholder():
    text = format_table([{"": "x"}, {"": "y", "v": 1}], ["", "v"], empty="", pad_width=1)
    assert text.splitlines() == ["  v", "x", "y 1"]


def test_tree_to_text_matches_manual_pipeline(current_assets):
    tree = Branch("Balance", [current_assets])
    manual = format_table(render_labels(walk(tree)), ["", 2018, 2017])
    assert tree_to_text(tree) == manual


def test_tree_to_text_balance_sheet(balance_sheet):
    text = tree_to_text(Branch("Balance Sheet", list(balance_sheet)), config=RenderConfig(indent_width=2))
    lines = text.splitlines()
    assert lines[1].split() == ["Assets", "-", "-"]
    assert lines[3].split() == ["Cash", "100", "85"]
    assert lines[3].startswith("    Cash")
    assert lines[8].split() == ["217", "148"]
    assert lines[-1].split() == ["217", "148"]


def test_print_table_writes_to_stream():
    stream = io.StringIO()
    print_table([{"": "a", "v": 1}], ["", "v"], stream=stream)
    assert stream.getvalue().splitlines() == ["   v", "a  1"]


def test_to_frame_puts_label_first(current_assets):
    rows = walk(Branch("Balance", [current_assets]))
    frame = to_frame(render_labels(rows), [2018, 2017])
    assert list(frame.columns) == ["", 2018, 2017]
    assert pd.isna(frame.loc[0, 2018])
    assert frame.loc[3, 2017] == 130
    assert frame.loc[1, ""] == "    Cash"

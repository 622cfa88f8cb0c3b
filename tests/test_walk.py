import operator

import pytest

from treesheet.config import RenderConfig
from treesheet.errors import FoldError, MalformedNodeError, RenderError
from treesheet.tree import Branch, Leaf
from treesheet.walk import (
    RowRole,
    TableRow,
    combined_footer,
    combined_header,
    default_render,
    needs_total,
    resolve_policy,
    walk,
)

H, L, T = RowRole.HEADER, RowRole.LEAF, RowRole.TOTAL


def shape(rows):
    return [(row.label, row.depth, row.role) for row in rows]


def test_current_assets_scenario(current_assets):
    rows = walk(Branch("Balance Sheet", [current_assets]))

    assert rows == [
        TableRow(0, "Current Assets", H),
        TableRow(2, "Cash", L, {2018: 100, 2017: 85}),
        TableRow(2, "Accounts Receivable", L, {2018: 5, 2017: 45}),
        TableRow(0, "", T, {2018: 105, 2017: 130}),
    ]


def test_balance_sheet_rows(balance_sheet):
    rows = walk(balance_sheet)

    assert shape(rows) == [
        ("Assets", 0, H),
        ("Current Assets", 1, H),
        ("Cash", 2, L),
        ("Accounts Receivable", 2, L),
        ("", 1, T),
        ("Investments", 2, L),
        ("Other", 2, L),
        ("", 0, T),
        ("Liabilities & Stockholders' Equity", 0, H),
        ("Liabilities", 1, H),
        ("Current Liabilities", 2, H),
        ("Notes payable", 3, L),
        ("Accounts payable", 3, L),
        ("", 2, T),
        ("Long-term liabilities", 2, L),
        ("", 1, T),
        ("Equity", 1, H),
        ("Common Stock", 2, L),
        ("", 0, T),
    ]
    totals = [row.values for row in rows if row.is_total]
    assert totals == [
        {2018: 105, 2017: 130},
        {2018: 217, 2017: 148},
        {2018: 15, 2017: 18},
        {2018: 115, 2017: 68},
        {2018: 217, 2017: 148},
    ]


def test_leaf_rows_respect_min_leaf_depth(balance_sheet):
    for min_depth in (0, 2, 5):
        rows = walk(balance_sheet, config=RenderConfig(min_leaf_depth=min_depth))
        for row in rows:
            if row.role is L:
                assert row.depth >= min_depth


def test_min_leaf_depth_zero_keeps_natural_depth():
    tree = Branch("root", [Leaf("a", {"x": 1}), Leaf("b", {"x": 2})])
    rows = walk(tree, config=RenderConfig(min_leaf_depth=0))
    assert shape(rows) == [("a", 0, L), ("b", 0, L)]


def test_header_depth_grows_by_one_per_level():
    tree = Branch("root", [Branch("a", [Branch("b", [Branch("c", [Leaf("x", {"v": 1}), Leaf("y", {"v": 2})])])])])
    headers = [row for row in walk(tree) if row.is_header]
    assert [(row.label, row.depth) for row in headers] == [("a", 0), ("b", 1), ("c", 2)]


def test_root_leaf_renders_single_row():
    rows = walk(Leaf("Cash", {2018: 100}))
    assert rows == [TableRow(2, "Cash", L, {2018: 100})]


def test_single_leaf_child_suppresses_total():
    tree = Branch("root", [Branch("Equity", [Leaf("Common Stock", {2018: 102})])])
    rows = walk(tree)
    assert len(rows) == 2
    assert shape(rows) == [("Equity", 0, H), ("Common Stock", 2, L)]


def test_single_branch_child_keeps_total():
    tree = Branch(
        "root",
        [Branch("Outer", [Branch("Inner", [Leaf("a", {"x": 1}), Leaf("b", {"x": 2})])])],
    )
    assert shape(walk(tree)) == [
        ("Outer", 0, H),
        ("Inner", 1, H),
        ("a", 2, L),
        ("b", 2, L),
        ("", 1, T),
        ("", 0, T),
    ]


def test_nested_single_child_chain():
    tree = Branch("root", [Branch("A", [Branch("B", [Leaf("x", {"v": 7})])])])
    rows = walk(tree)
    assert shape(rows) == [("A", 0, H), ("B", 1, H), ("x", 2, L), ("", 0, T)]
    assert rows[-1].values == {"v": 7}


def test_empty_branch_has_no_total():
    rows = walk(Branch("root", [Branch("Empty", [])]))
    assert shape(rows) == [("Empty", 0, H)]


def test_needs_total_rules():
    leaf = Leaf("a", {"x": 1})
    assert needs_total(Branch("b", [leaf, leaf]))
    assert needs_total(Branch("b", [Branch("c", [leaf])]))
    assert not needs_total(Branch("b", [leaf]))
    assert not needs_total(Branch("b", []))
    assert not needs_total(leaf)


def test_sum_totals_can_be_disabled(balance_sheet):
    rows = walk(balance_sheet, config=RenderConfig(sum_totals=False))
    assert not any(row.is_total for row in rows)


def test_custom_aggregation_is_used_for_totals():
    tree = Branch("root", [Branch("t", [Leaf("a", {"x": 10}), Leaf("b", {"x": 4}), Leaf("c", {"x": 1})])])
    config = RenderConfig(aggregation=operator.sub, identity=0)
    rows = walk(tree, config=config)
    assert rows[-1] == TableRow(0, "", T, {"x": 5})


def test_combined_header_policy(current_assets):
    config = RenderConfig()
    rows = walk(Branch("root", [current_assets]), combined_header(config), config)
    assert rows == [
        TableRow(0, "Current Assets", H, {2018: 105, 2017: 130}),
        TableRow(2, "Cash", L, {2018: 100, 2017: 85}),
        TableRow(2, "Accounts Receivable", L, {2018: 5, 2017: 45}),
    ]


def test_combined_footer_policy_always_totals():
    tree = Branch("root", [Branch("Equity", [Leaf("Common Stock", {2018: 102, 2017: 80})])])
    rows = walk(tree, combined_footer())
    assert rows == [
        TableRow(0, "Equity", H, {2018: None, 2017: None}),
        TableRow(2, "Common Stock", L, {2018: 102, 2017: 80}),
        TableRow(0, "", T, {2018: 102, 2017: 80}),
    ]


def test_resolve_policy_by_name():
    tree = Branch("root", [Branch("b", [Leaf("a", {"x": 1})])])
    assert walk(tree, resolve_policy("combined-footer"))[-1].is_total
    assert walk(tree, resolve_policy("default")) == walk(tree, default_render())
    with pytest.raises(ValueError):
        resolve_policy("nope")


def test_render_receives_node_label_and_depth(balance_sheet):
    calls = []
    base = default_render()

    def spy(parent, node, depth):
        calls.append((parent, depth))
        return base(parent, node, depth)

    walk(balance_sheet, spy)
    assert calls[:4] == [("Assets", 0), ("Current Assets", 1), ("Cash", 2), ("Accounts Receivable", 2)]
    assert ("Notes payable", 3) in calls


def test_custom_render_can_skip_headers(balance_sheet):
    def leaves_only(parent, node, depth):
        if node.is_leaf:
            return [TableRow(depth, parent, L, node.values)]
        return list(node.children)

    rows = walk(balance_sheet, leaves_only)
    assert [row.label for row in rows][:3] == ["Cash", "Accounts Receivable", "Investments"]
    assert all(row.role is L for row in rows)


def test_render_errors_carry_node_context(balance_sheet):
    def explode(parent, node, depth):
        if parent == "Cash":
            raise ValueError("boom")
        return default_render()(parent, node, depth)

    with pytest.raises(RenderError) as excinfo:
        walk(balance_sheet, explode)
    assert excinfo.value.label == "Cash"
    assert excinfo.value.depth == 2
    assert isinstance(excinfo.value.__cause__, ValueError)


def test_fold_errors_surface_as_render_errors():
    def fails(a, b):
        raise ArithmeticError("bad combine")

    tree = Branch("root", [Branch("Broken", [Leaf("a", {"x": 1}), Leaf("b", {"x": 2})])])
    with pytest.raises(RenderError) as excinfo:
        walk(tree, config=RenderConfig(aggregation=fails))
    assert excinfo.value.label == "Broken"
    assert isinstance(excinfo.value.__cause__, FoldError)


def test_forest_with_stray_item_is_rejected():
    with pytest.raises(MalformedNodeError):
        walk([Leaf("a", {"x": 1}), "not a node"])


def test_walk_is_repeatable(balance_sheet):
    assert walk(balance_sheet) == walk(balance_sheet)


def test_deep_tree_walk_is_stack_safe():
    node = Leaf("bottom", {"a": 1})
    for level in range(5000):
        node = Branch(f"n{level}", [node])
    rows = walk(node)
    assert len(rows) == 4999 + 4998 + 1
    assert rows[0].depth == 0
    assert rows[4999].label == "bottom"
    assert rows[4999].depth == 4999


def test_table_row_as_dict():
    row = TableRow(1, "Cash", L, {2018: 5})
    assert row.as_dict() == {2018: 5, "depth": 1, "label": "Cash", "role": "leaf"}

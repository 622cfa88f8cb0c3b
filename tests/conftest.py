from __future__ import annotations

from pathlib import Path
import sys

import pytest

# Ensure project root is on sys.path for absolute imports
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from treesheet.tree import MOCK_BALANCE_SHEET, Branch, Leaf, Node


@pytest.fixture
def balance_sheet() -> tuple:
    return MOCK_BALANCE_SHEET


@pytest.fixture
def assets(balance_sheet) -> Node:
    return balance_sheet[0]


@pytest.fixture
def liabilities_equity(balance_sheet) -> Node:
    return balance_sheet[1]


@pytest.fixture
def current_assets() -> Node:
    return Branch(
        "Current Assets",
        [
            Leaf("Cash", {2018: 100, 2017: 85}),
            Leaf("Accounts Receivable", {2018: 5, 2017: 45}),
        ],
    )


@pytest.fixture
def nested_data() -> dict:
    return {
        "Title": {
            "Tree 1": {
                "Child": {2018: 2, 2017: 1},
                "Another": {2018: 3, 2017: 1},
            },
            "Tree 2": {"Child": {2018: -2, 2017: -1}},
        }
    }

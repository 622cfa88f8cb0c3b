"""Depth-first rendering of trees into annotated table rows.

:func:`walk` visits a tree in preorder and asks a *render function* what to
emit for every node::

    render(parent_label, node, depth) -> [TableRow | Node, ...]

``TableRow`` entries are emitted as they are.  ``Node`` entries are scheduled
in place and rendered in turn at ``depth + 1``, so a render function describes
one level only and the engine owns the traversal.  The root of the tree acts
as a title: its children start at depth 0.  A root that is itself a leaf is
rendered as a single row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import RenderConfig
from .errors import MalformedNodeError, RenderError
from .tree import Node, fold

logger = logging.getLogger(__name__)


class RowRole(str, Enum):
    """Role of an emitted row."""

    HEADER = "header"
    LEAF = "leaf"
    TOTAL = "total"


@dataclass(frozen=True)
class TableRow:
    """One line of a rendered tree."""

    depth: int
    label: Any
    role: RowRole
    values: Mapping[Hashable, Any] = field(default_factory=dict)

    @property
    def is_total(self) -> bool:
        return self.role is RowRole.TOTAL

    @property
    def is_header(self) -> bool:
        return self.role is RowRole.HEADER

    def as_dict(self) -> Dict[Any, Any]:
        """Return the value fields merged with the row annotations."""

        record: Dict[Any, Any] = dict(self.values)
        record.update({"depth": self.depth, "label": self.label, "role": self.role.value})
        return record


RenderResult = Sequence[Union[TableRow, Node]]
RenderFn = Callable[[Any, Node, int], RenderResult]


def walk(
    tree: Union[Node, Iterable[Node]],
    render: Optional[RenderFn] = None,
    config: Optional[RenderConfig] = None,
) -> List[TableRow]:
    """Render ``tree`` (or a sequence of trees) into a list of rows.

    Rows come back in traversal order.  The walk is eager so that any error
    raised by ``render`` surfaces here, wrapped in :class:`RenderError` with
    the label and depth of the failing node.
    """

    config = config or RenderConfig()
    render = render or default_render(config)

    if isinstance(tree, Node):
        roots: List[Node] = [tree] if tree.is_leaf else list(tree.children)
    else:
        roots = list(tree)

    rows: List[TableRow] = []
    stack: List[Tuple[Any, int]] = [(node, 0) for node in reversed(roots)]
    while stack:
        item, depth = stack.pop()
        if isinstance(item, TableRow):
            rows.append(item)
            continue
        if not isinstance(item, Node):
            raise MalformedNodeError(item, "render output must be rows or nodes")
        try:
            rendered = list(render(item.label, item, depth))
        except Exception as exc:
            raise RenderError(item.label, depth, exc) from exc
        stack.extend((entry, depth + 1) for entry in reversed(rendered))

    logger.debug("Rendered %d rows from %d root node(s)", len(rows), len(roots))
    return rows


def _leaf_row(parent: Any, node: Node, depth: int, config: RenderConfig) -> TableRow:
    return TableRow(
        depth=max(config.min_leaf_depth, depth),
        label=parent,
        role=RowRole.LEAF,
        values=dict(node.values),
    )


def needs_total(node: Node) -> bool:
    """A branch gets a total unless its only child is a leaf."""

    if node.is_leaf or not node.children:
        return False
    return len(node.children) > 1 or not node.children[0].is_leaf


def default_render(config: Optional[RenderConfig] = None) -> RenderFn:
    """Header row, children, then a total row where it adds information."""

    config = config or RenderConfig()

    def render(parent: Any, node: Node, depth: int) -> RenderResult:
        if node.is_leaf:
            return [_leaf_row(parent, node, depth, config)]
        rendered: List[Union[TableRow, Node]] = [TableRow(depth, parent, RowRole.HEADER)]
        rendered.extend(node.children)
        if config.sum_totals and needs_total(node):
            totals = fold(config.aggregation, config.identity, node)
            rendered.append(TableRow(depth, "", RowRole.TOTAL, totals))
        return rendered

    return render


def combined_header(config: Optional[RenderConfig] = None) -> RenderFn:
    """Header rows carry the folded value; no separate total rows."""

    config = config or RenderConfig()

    def render(parent: Any, node: Node, depth: int) -> RenderResult:
        if node.is_leaf:
            return [_leaf_row(parent, node, depth, config)]
        totals = fold(config.aggregation, config.identity, node)
        return [TableRow(depth, parent, RowRole.HEADER, totals), *node.children]

    return render


def combined_footer(config: Optional[RenderConfig] = None) -> RenderFn:
    """Every non-empty branch gets a trailing total row.

    The header row lists the branch's columns with blank values so the
    structure shows before the totals are filled in below the children.
    """

    config = config or RenderConfig()

    def render(parent: Any, node: Node, depth: int) -> RenderResult:
        if node.is_leaf:
            return [_leaf_row(parent, node, depth, config)]
        totals = fold(config.aggregation, config.identity, node)
        placeholders = {key: None for key in totals}
        rendered: List[Union[TableRow, Node]] = [
            TableRow(depth, parent, RowRole.HEADER, placeholders)
        ]
        rendered.extend(node.children)
        if node.children:
            rendered.append(TableRow(depth, "", RowRole.TOTAL, totals))
        return rendered

    return render


POLICIES: Dict[str, Callable[[Optional[RenderConfig]], RenderFn]] = {
    "default": default_render,
    "combined-header": combined_header,
    "combined-footer": combined_footer,
}


def resolve_policy(name: str, config: Optional[RenderConfig] = None) -> RenderFn:
    """Return the render function registered under ``name``."""

    try:
        factory = POLICIES[name]
    except KeyError:
        known = ", ".join(sorted(POLICIES))
        raise ValueError(f"Unknown render policy '{name}' (expected one of: {known})") from None
    return factory(config)


__all__ = [
    "POLICIES",
    "RenderFn",
    "RowRole",
    "TableRow",
    "combined_footer",
    "combined_header",
    "default_render",
    "needs_total",
    "resolve_policy",
    "walk",
]

"""A key-value tree for accounting style data.

A tree is made of two kinds of node:

* :class:`Leaf` -- a label and a value map, e.g. ``Leaf("Cash", {2018: 100})``
* :class:`Branch` -- a label and an ordered tuple of child nodes.

The value of a branch is never stored.  It is the fold of the value maps of
every leaf beneath it, recomputed on demand by :func:`value`::

    >>> t = Branch("Everything", [Leaf("a", {"usd": 10, "mxn": 10}),
    ...                           Leaf("b", {"usd": 5, "mxn": -3})])
    >>> value(t)
    {'usd': 15, 'mxn': 7}

Every traversal in this module is driven by an explicit stack so that deep
trees never exhaust the interpreter's recursion limit.
"""

from __future__ import annotations

import operator
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .errors import MalformedNodeError
from .values import ValueMap, fold_maps, negate_map, subtract_maps, sum_maps


@dataclass(frozen=True)
class Node:
    """Common base of :class:`Leaf` and :class:`Branch`."""

    label: Any

    is_leaf: ClassVar[bool] = False


@dataclass(frozen=True)
class Leaf(Node):
    """A node carrying a label and a map of column -> number."""

    values: Mapping[Hashable, Any] = field(default_factory=dict)

    is_leaf: ClassVar[bool] = True

    def __post_init__(self) -> None:
        if not isinstance(self.values, Mapping):
            raise MalformedNodeError(self, "leaf values must be a mapping")
        for key, item in self.values.items():
            if _is_structure(item):
                raise MalformedNodeError(
                    self, f"leaf value for {key!r} is not a scalar"
                )
        object.__setattr__(self, "values", dict(self.values))


@dataclass(frozen=True)
class Branch(Node):
    """A node with an ordered sequence of children."""

    children: Tuple[Node, ...] = ()

    is_leaf: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if isinstance(self.children, (Mapping, str)) or not isinstance(
            self.children, Iterable
        ):
            raise MalformedNodeError(self.children, "branch children must be a sequence")
        children = tuple(self.children)
        for child in children:
            if not isinstance(child, Node):
                raise MalformedNodeError(child, f"child of {self.label!r} is not a node")
        object.__setattr__(self, "children", children)


TreeOrMap = Union[Node, ValueMap]

_DONE = object()


def _is_structure(item: Any) -> bool:
    return isinstance(item, (Node, Mapping, list, tuple))


def _check(node: Any) -> Node:
    if not isinstance(node, Node):
        raise MalformedNodeError(node, "expected a Leaf or a Branch")
    return node


# Basic tree API


def is_leaf(node: Node) -> bool:
    """Is the node a leaf?"""

    return _check(node).is_leaf


def label(node: Node) -> Any:
    """The label for a node."""

    return _check(node).label


def children(node: Node) -> Tuple[Node, ...]:
    """The node's children, or ``()`` for a leaf."""

    if is_leaf(node):
        return ()
    return node.children


def iter_leaves(tree: Node) -> Iterator[Leaf]:
    """Yield the leaves under ``tree`` in preorder, left to right."""

    stack: List[Node] = [_check(tree)]
    while stack:
        node = stack.pop()
        if node.is_leaf:
            yield node
        else:
            stack.extend(reversed(node.children))


def fold(f: Callable[[Any, Any], Any], identity: Any, tree: Node) -> Dict[Hashable, Any]:
    """Combine the value maps of all leaves under ``tree`` with ``f``.

    For each key seen in any leaf, ``f`` is reduced left to right over the
    leaves' values in traversal order, with ``identity`` standing in for a
    leaf that lacks the key.  ``fold(operator.sub, 0, t)`` over leaves holding
    10, 4 and 1 gives ``(10 - 4) - 1``.
    """

    return fold_maps(f, identity, (leaf.values for leaf in iter_leaves(tree)), label=tree.label)


def value(node: Node) -> Dict[Hashable, Any]:
    """The value map of a leaf, or the sum of all leaf maps under a branch."""

    if is_leaf(node):
        return dict(node.values)
    return fold(operator.add, 0, node)


def force_map(tree_or_map: TreeOrMap) -> Dict[Hashable, Any]:
    """Return the argument if it's a mapping, otherwise its :func:`value`."""

    if isinstance(tree_or_map, Mapping):
        return dict(tree_or_map)
    return value(tree_or_map)


def add_trees(*trees: TreeOrMap) -> Dict[Hashable, Any]:
    """Sum trees and value maps together."""

    return sum_maps(*(force_map(t) for t in trees))


def subtract_trees(first: TreeOrMap, *others: TreeOrMap) -> Dict[Hashable, Any]:
    """Subtract trees and value maps from ``first``."""

    return subtract_maps(force_map(first), *(force_map(t) for t in others))


# Constructing and rebuilding trees


def _rebuild(
    root: Any,
    expand: Callable[[Any, int], Optional[Iterable[Any]]],
    finish: Callable[[Any, Optional[List[Node]], int], Node],
) -> Node:
    """Post-order construction without recursion.

    ``expand(item, depth)`` returns ``None`` for an item that becomes a leaf or
    an iterable of child items, which is consumed one element at a time.
    ``finish(item, built_children, depth)`` creates the node; ``built_children``
    is ``None`` for leaves.
    """

    pending = expand(root, 0)
    if pending is None:
        return finish(root, None, 0)

    stack: List[Tuple[Any, Iterator[Any], List[Node], int]] = [(root, iter(pending), [], 0)]
    while True:
        item, remaining, built, depth = stack[-1]
        child = next(remaining, _DONE)
        if child is _DONE:
            stack.pop()
            node = finish(item, built, depth)
            if not stack:
                return node
            stack[-1][2].append(node)
            continue
        grandchildren = expand(child, depth + 1)
        if grandchildren is None:
            built.append(finish(child, None, depth + 1))
        else:
            stack.append((child, iter(grandchildren), [], depth + 1))


def build_tree(
    is_branch: Callable[[Any], bool],
    get_children: Callable[[Any], Iterable[Any]],
    root: Any,
    get_label: Callable[[Any], Any],
    get_value: Callable[[Any], ValueMap],
    *,
    max_depth: Optional[int] = None,
) -> Node:
    """Build a tree isomorphic to some external hierarchy.

    Takes the same first three arguments as a tree-seq style walk: a
    predicate telling branches apart, a function returning the children of a
    branch and the root.  ``get_label`` and ``get_value`` turn source items
    into labels and value maps.  Children are pulled lazily one at a time, and
    ``max_depth`` stops the descent, turning branches found at that depth into
    leaves, which makes infinite hierarchies usable.

    For example a file tree listing the size of each file::

        build_tree(Path.is_dir, Path.iterdir, Path("."),
                   lambda p: p.name, lambda p: {"size": p.stat().st_size})
    """

    def expand(item: Any, depth: int) -> Optional[Iterable[Any]]:
        if max_depth is not None and depth >= max_depth:
            return None
        if not is_branch(item):
            return None
        return get_children(item)

    def finish(item: Any, built: Optional[List[Node]], depth: int) -> Node:
        if built is None:
            return Leaf(get_label(item), get_value(item))
        return Branch(get_label(item), built)

    return _rebuild(root, expand, finish)


def _as_pair(item: Any) -> Any:
    if isinstance(item, Node):
        return item
    if isinstance(item, Mapping) and len(item) == 1:
        return next(iter(item.items()))
    if isinstance(item, (list, tuple)) and len(item) == 2:
        return tuple(item)
    raise MalformedNodeError(item, "expected a [label, content] pair")


def from_data(data: Any) -> Node:
    """Parse plain data into a tree.

    Accepted shapes are ``[label, {column: value}]`` for leaves,
    ``[label, [child, ...]]`` for branches, and nested mappings such as
    ``{"Assets": {"Cash": {2018: 100}}}`` where a mapping of mappings is a
    branch and a mapping of scalars is a leaf.  Already built nodes are kept
    as they are.
    """

    def expand(item: Any, depth: int) -> Optional[Iterable[Any]]:
        if isinstance(item, Node):
            return None
        _, content = item
        if isinstance(content, Mapping):
            nested = [isinstance(v, Mapping) for v in content.values()]
            if nested and all(nested):
                return iter(content.items())
            if any(_is_structure(v) for v in content.values()):
                raise MalformedNodeError(item, "mixes nested and scalar values")
            return None
        if isinstance(content, (list, tuple)):
            return (_as_pair(child) for child in content)
        raise MalformedNodeError(item, "content is neither a value map nor a list of children")

    def finish(item: Any, built: Optional[List[Node]], depth: int) -> Node:
        if isinstance(item, Node):
            return item
        node_label, content = item
        if built is None:
            return Leaf(node_label, content)
        return Branch(node_label, built)

    return _rebuild(_as_pair(data), expand, finish)


def to_data(tree: Node) -> list:
    """Inverse of :func:`from_data`, producing the list shape."""

    def expand(node: Node, depth: int) -> Optional[Iterable[Node]]:
        return None if node.is_leaf else node.children

    def finish(node: Node, built: Optional[List[Any]], depth: int) -> Any:
        if built is None:
            return [node.label, dict(node.values)]
        return [node.label, built]

    return _rebuild(_check(tree), expand, finish)


def map_nodes(tree: Node, f: Callable[[Node], Node]) -> Node:
    """Apply ``f`` to every node, children first.

    A branch handed to ``f`` already holds its mapped children.
    """

    def expand(node: Node, depth: int) -> Optional[Iterable[Node]]:
        return None if node.is_leaf else node.children

    def finish(node: Node, built: Optional[List[Node]], depth: int) -> Node:
        if built is None:
            return _check(f(node))
        return _check(f(Branch(node.label, built)))

    return _rebuild(_check(tree), expand, finish)


def negate_tree(tree: Node) -> Node:
    """Negate all of the numbers in a tree."""

    def negate(node: Node) -> Node:
        if node.is_leaf:
            return Leaf(node.label, negate_map(node.values))
        return node

    return map_nodes(tree, negate)


def shallow(tree: Node, separator: str = " & ") -> Node:
    """Shallow the tree one level by getting rid of the root and combining
    its children.  A leaf is returned unchanged."""

    if is_leaf(tree):
        return tree
    merged_label = separator.join(str(child.label) for child in tree.children)
    merged_children: List[Node] = []
    for child in tree.children:
        if child.is_leaf:
            merged_children.append(child)
        else:
            merged_children.extend(child.children)
    return Branch(merged_label, merged_children)


def merge_trees(root_label: Any, *trees: Node) -> Node:
    """Merge the children of the provided trees under a single root."""

    merged = shallow(Branch("Merged", trees))
    return Branch(root_label, children(merged))


# Tabular data to trees


def ordered_group_by(
    key: Callable[[Any], Hashable], items: Iterable[Any]
) -> List[Tuple[Hashable, List[Any]]]:
    """Like a group-by, but keeps groups in order of first appearance."""

    groups: Dict[Hashable, List[Any]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return list(groups.items())


def _key_fn(spec: Union[Callable[[Any], Any], Hashable]) -> Callable[[Any], Any]:
    if callable(spec):
        return spec
    return operator.itemgetter(spec)


def table_to_trees(
    records: Sequence[Any],
    format_leaf: Callable[[Any], ValueMap],
    *group_by: Union[Callable[[Any], Any], Hashable],
) -> List[Node]:
    """Collapse flat records into a forest.

    Each of ``group_by`` (a function or a record key) supplies the labels for
    one level of the tree, and ``format_leaf`` turns a record into the value
    map displayed for it.  A group holding a single record becomes a leaf;
    a group of several records becomes a branch of blank-labelled leaves.
    """

    if not group_by:
        raise ValueError("At least one grouping is required to build trees")

    group_fns = [_key_fn(spec) for spec in group_by]

    def build(node_label: Any, items: List[Any], level: int) -> Node:
        if level == len(group_fns):
            if len(items) == 1:
                return Leaf(node_label, format_leaf(items[0]))
            return Branch(node_label, [Leaf("", format_leaf(item)) for item in items])
        return Branch(
            node_label,
            [
                build(group_label, group_items, level + 1)
                for group_label, group_items in ordered_group_by(group_fns[level], items)
            ],
        )

    return list(build("", list(records), 0).children)


MOCK_BALANCE_SHEET: Tuple[Node, ...] = (
    from_data(
        [
            "Assets",
            [
                [
                    "Current Assets",
                    [
                        ["Cash", {2018: 100, 2017: 85}],
                        ["Accounts Receivable", {2018: 5, 2017: 45}],
                    ],
                ],
                ["Investments", {2018: 100, 2017: 10}],
                ["Other", {2018: 12, 2017: 8}],
            ],
        ]
    ),
    from_data(
        [
            "Liabilities & Stockholders' Equity",
            [
                [
                    "Liabilities",
                    [
                        [
                            "Current Liabilities",
                            [
                                ["Notes payable", {2018: 5, 2017: 8}],
                                ["Accounts payable", {2018: 10, 2017: 10}],
                            ],
                        ],
                        ["Long-term liabilities", {2018: 100, 2017: 50}],
                    ],
                ],
                ["Equity", [["Common Stock", {2018: 102, 2017: 80}]]],
            ],
        ]
    ),
)


__all__ = [
    "Branch",
    "Leaf",
    "MOCK_BALANCE_SHEET",
    "Node",
    "add_trees",
    "build_tree",
    "children",
    "fold",
    "force_map",
    "from_data",
    "is_leaf",
    "iter_leaves",
    "label",
    "map_nodes",
    "merge_trees",
    "negate_tree",
    "ordered_group_by",
    "shallow",
    "subtract_trees",
    "table_to_trees",
    "to_data",
    "value",
]

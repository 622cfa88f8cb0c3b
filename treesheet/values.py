"""Arithmetic over sparse value maps.

A value map is a plain mapping from a hashable key (a year, a currency code, a
column name) to a number.  Keys that are missing from a map count as zero, so
every operation works over the union of the keys of its arguments and always
returns a new ``dict``.
"""

from __future__ import annotations

from functools import reduce
from typing import Any, Callable, Dict, Hashable, Iterable, List, Mapping

from .errors import FoldError

ValueMap = Mapping[Hashable, Any]


def sum_maps(*maps: ValueMap) -> Dict[Hashable, Any]:
    """Key-wise sum of ``maps``; absent keys contribute 0."""

    summed: Dict[Hashable, Any] = {}
    for value_map in maps:
        for key, value in value_map.items():
            summed[key] = summed.get(key, 0) + (value or 0)
    return summed


def negate_map(value_map: ValueMap) -> Dict[Hashable, Any]:
    """Flip the sign of every value in ``value_map``."""

    return {key: -(value or 0) for key, value in value_map.items()}


def subtract_maps(first: ValueMap, *others: ValueMap) -> Dict[Hashable, Any]:
    """Subtract each of ``others`` from ``first``.

    Keys found only in ``others`` come out negative: the result is
    ``first + negate(others[0]) + negate(others[1]) + ...``, not a merge of the
    maps with ``-``.
    """

    return sum_maps(first, *(negate_map(other) for other in others))


def maps_equal(left: ValueMap, right: ValueMap) -> bool:
    """Compare two value maps treating absent keys as 0."""

    return all(
        (left.get(key) or 0) == (right.get(key) or 0)
        for key in union_keys([left, right])
    )


def union_keys(maps: Iterable[ValueMap]) -> List[Hashable]:
    """Return the keys of ``maps`` in first-seen order."""

    seen: Dict[Hashable, None] = {}
    for value_map in maps:
        for key in value_map:
            seen.setdefault(key, None)
    return list(seen)


def fold_maps(
    f: Callable[[Any, Any], Any],
    identity: Any,
    maps: Iterable[ValueMap],
    label: Any = None,
) -> Dict[Hashable, Any]:
    """Reduce ``maps`` key by key with the binary function ``f``.

    For every key present in any map, ``f`` is threaded left to right over the
    per-map values, using ``identity`` wherever a map lacks the key.  With three
    maps holding ``a``, ``b`` and ``c`` for a key the result is
    ``f(f(a, b), c)``.  No maps gives an empty result.

    An exception raised by ``f`` comes back as :class:`FoldError` naming
    ``label`` and the key being folded.
    """

    maps = list(maps)
    folded: Dict[Hashable, Any] = {}
    for key in union_keys(maps):
        try:
            folded[key] = reduce(f, (value_map.get(key, identity) for value_map in maps))
        except Exception as exc:
            raise FoldError(label, key, exc) from exc
    return folded


__all__ = [
    "ValueMap",
    "fold_maps",
    "maps_equal",
    "negate_map",
    "subtract_maps",
    "sum_maps",
    "union_keys",
]

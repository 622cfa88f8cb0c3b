import pytest

from treesheet.errors import FoldError
from treesheet.values import (
    fold_maps,
    maps_equal,
    negate_map,
    subtract_maps,
    sum_maps,
)


def test_sum_maps_uses_union_of_keys():
    assert sum_maps({"a": 1}, {"a": 2, "b": 3}, {"c": 4}) == {"a": 3, "b": 3, "c": 4}


def test_sum_maps_without_arguments_is_empty():
    assert sum_maps() == {}


def test_negate_map_flips_signs_and_treats_none_as_zero():
    assert negate_map({"a": 5, "b": -2, "c": None}) == {"a": -5, "b": 2, "c": 0}


def test_subtract_maps_makes_missing_keys_negative():
    assert subtract_maps({"foo": 10}, {"foo": 5, "bar": 5}) == {"foo": 5, "bar": -5}


def test_subtract_maps_with_several_arguments():
    result = subtract_maps({"x": 10}, {"x": 4}, {"x": 1, "y": 2})
    assert result == {"x": 5, "y": -2}


def test_identity_cancellation():
    value_map = {2018: 100, 2017: 85, "usd": -3}
    assert maps_equal(subtract_maps(value_map, value_map), {})
    assert maps_equal(sum_maps(value_map, negate_map(value_map)), {})


def test_maps_equal_treats_absent_keys_as_zero():
    assert maps_equal({"a": 0, "b": 1}, {"b": 1})
    assert not maps_equal({"a": 2}, {"a": 1})


def test_fold_maps_threads_left_to_right():
    maps = [{"x": 10}, {"x": 4}, {"x": 1}]
    assert fold_maps(lambda a, b: a - b, 0, maps) == {"x": 5}


def test_fold_maps_uses_identity_for_missing_keys():
    maps = [{"x": 10}, {"y": 3}]
    assert fold_maps(lambda a, b: a - b, 0, maps) == {"x": 10, "y": -3}


def test_fold_maps_of_nothing_is_empty():
    assert fold_maps(lambda a, b: a + b, 0, []) == {}


def test_fold_maps_reports_failing_key():
    with pytest.raises(FoldError) as excinfo:
        fold_maps(lambda a, b: a + b, 0, [{"x": 1, "y": 2}, {"y": "two"}], label="Totals")
    assert excinfo.value.label == "Totals"
    assert excinfo.value.key == "y"
    assert isinstance(excinfo.value.__cause__, TypeError)

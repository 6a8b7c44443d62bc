"""Property-based contracts for map, reduce, accumulate and the total adverbs.

These pin the guarantees callers rely on: length and order preservation,
prefix consistency between ``accumulate`` and ``reduce``, and deterministic
failure capture.
"""

from __future__ import annotations

import operator

from hypothesis import given
from hypothesis import strategies as st
import pytest

from mapfold import (
    EmptyReductionError,
    Failure,
    Success,
    accumulate,
    possibly,
    reduce,
    safely,
)
from mapfold import map as fmap

pytestmark = pytest.mark.contract

ints = st.lists(st.integers(min_value=-1000, max_value=1000), max_size=50)
mixed = st.lists(st.one_of(st.integers(), st.text(max_size=3), st.none()), max_size=30)


def _affine(x: int) -> int:
    return 3 * x - 7


def _reciprocal(x: int) -> float:
    return 1 / x


@given(ints)
def test_map_preserves_length(xs: list[int]) -> None:
    assert len(fmap(xs, _affine)) == len(xs)


@given(ints)
def test_map_is_pointwise_and_ordered(xs: list[int]) -> None:
    out = fmap(xs, _affine)
    assert all(out[i] == _affine(x) for i, x in enumerate(xs))


@given(ints)
def test_map_calls_once_per_element_in_order(xs: list[int]) -> None:
    seen: list[int] = []
    fmap(xs, seen.append)
    assert seen == xs


@given(ints, st.integers(min_value=-50, max_value=50))
def test_accumulate_matches_reduce_on_each_prefix(xs: list[int], init: int) -> None:
    trace = accumulate(xs, operator.add, init=init)
    assert len(trace) == len(xs) + 1
    assert trace[-1] == reduce(xs, operator.add, init=init)
    for k, value in enumerate(trace):
        assert value == reduce(xs[:k], operator.add, init=init)


@given(ints.filter(bool))
def test_accumulate_without_init_has_one_entry_per_element(xs: list[int]) -> None:
    trace = accumulate(xs, max)
    assert len(trace) == len(xs)
    assert trace[-1] == max(xs)


@given(st.integers())
def test_reduce_empty_with_init_returns_init(init: int) -> None:
    assert reduce([], operator.add, init=init) == init


def test_reduce_empty_without_init_is_an_error() -> None:
    with pytest.raises(EmptyReductionError):
        reduce([], operator.add, init=None)


@given(mixed)
def test_safely_map_never_raises_and_is_repeatable(xs: list[object]) -> None:
    first = fmap(xs, safely(_reciprocal))
    second = fmap(xs, safely(_reciprocal))

    assert first == second
    assert len(first) == len(xs)
    for x, result in zip(xs, first, strict=True):
        if isinstance(x, int) and x != 0:
            assert result == Success(1 / x)
        else:
            assert isinstance(result, Failure)
            assert result.error.cause is not None


@given(mixed)
def test_possibly_substitutes_exactly_the_default(xs: list[object]) -> None:
    out = fmap(xs, possibly(_reciprocal, default=-1))
    for x, value in zip(xs, out, strict=True):
        expected = 1 / x if isinstance(x, int) and x != 0 else -1
        assert value == expected


def test_documented_scenario() -> None:
    results = fmap([1, "a", 3], safely(lambda x: 10 / x))

    assert results[0] == Success(10.0)
    assert isinstance(results[1], Failure)
    assert results[2] == Success(10 / 3)


def test_documented_fold_values() -> None:
    assert reduce([1, 2, 3, 4, 5], operator.add, init=0) == 15
    assert accumulate([1, 2, 3, 4, 5], operator.add, init=0) == [0, 1, 3, 6, 10, 15]
    assert reduce([1, 2, 3, 4, 5], operator.add, init=0.5) == 15.5

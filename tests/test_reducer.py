"""Reducer/accumulator behavior, including the discard-on-failure policy."""

from __future__ import annotations

import operator

import pytest

from mapfold import (
    ElementFailure,
    EmptyReductionError,
    TypeMismatchError,
    accumulate,
    reduce,
)

pytestmark = pytest.mark.unit


def test_reduce_sums_with_initial_value() -> None:
    assert reduce([1, 2, 3, 4, 5], operator.add, init=0) == 15


def test_reduce_with_fractional_initial_value() -> None:
    assert reduce([1, 2, 3, 4, 5], operator.add, init=0.5) == 15.5


def test_reduce_without_initial_value_seeds_from_first_element() -> None:
    pairs: list[tuple[int, int]] = []

    def combine(acc: int, x: int) -> int:
        pairs.append((acc, x))
        return acc * 10 + x

    assert reduce([1, 2, 3], combine) == 123
    assert pairs == [(1, 2), (12, 3)]


def test_reduce_single_element_without_init_returns_it_without_calling() -> None:
    def boom(acc: object, x: object) -> object:
        raise AssertionError("should not be called")

    assert reduce(["only"], boom) == "only"


def test_reduce_empty_with_init_returns_init_unchanged() -> None:
    sentinel = object()
    assert reduce([], operator.add, init=5) == 5
    assert reduce([], operator.add, init=sentinel) is sentinel


def test_reduce_empty_without_init_raises() -> None:
    with pytest.raises(EmptyReductionError) as exc:
        reduce([], operator.add, init=None)
    assert exc.value.hint is not None
    assert "init" in exc.value.hint


def test_reduce_is_left_to_right() -> None:
    assert reduce(["a", "b", "c"], operator.add, init="") == "abc"
    assert reduce([8, 4, 2], operator.floordiv) == 1


def test_reduce_forwards_extra_arguments() -> None:
    def weighted(acc: float, x: float, weight: float, *, offset: float = 0) -> float:
        return acc + x * weight + offset

    assert reduce([1, 2], weighted, 10, init=0, offset=1) == 32


def test_reduce_failure_propagates_with_index() -> None:
    def checked_add(acc: int, x: int) -> int:
        if x < 0:
            raise ValueError(f"negative input {x}")
        return acc + x

    with pytest.raises(ElementFailure) as exc:
        reduce([1, 2, -3, 4], checked_add, init=0)

    assert exc.value.index == 2
    assert exc.value.operation == "reduce"
    assert exc.value.partial is None
    assert isinstance(exc.value.__cause__, ValueError)


def test_reduce_failure_index_accounts_for_seed_element() -> None:
    with pytest.raises(ElementFailure) as exc:
        reduce([6, 3, 0], operator.floordiv)
    assert exc.value.index == 2


def test_reduce_type_checks_elements_against_second_parameter() -> None:
    calls = []

    def combine(acc: int, x: int) -> int:
        calls.append(x)
        return acc + x

    with pytest.raises(TypeMismatchError) as exc:
        reduce([1, 2, "3"], combine, init=0)
    assert exc.value.index == 2
    assert calls == []


def test_reduce_type_check_skips_seed_element() -> None:
    def count_items(acc: int, x: str) -> int:
        return acc + 1

    # The seed is never passed as the element argument, so it is not checked.
    assert reduce([0, "a", "b"], count_items) == 2


class TestAccumulate:
    def test_accumulate_with_init_has_n_plus_one_entries(self) -> None:
        trace = accumulate([1, 2, 3, 4, 5], operator.add, init=0)
        assert trace == [0, 1, 3, 6, 10, 15]

    def test_accumulate_without_init_has_n_entries(self) -> None:
        assert accumulate([1, 2, 3], operator.mul) == [1, 2, 6]

    def test_accumulate_empty(self) -> None:
        assert accumulate([], operator.add, init=7) == [7]
        with pytest.raises(EmptyReductionError):
            accumulate([], operator.add)

    def test_accumulate_matches_reduce_over_every_prefix(self) -> None:
        data = [3, 1, 4, 1, 5, 9]
        trace = accumulate(data, operator.sub, init=100)
        for k, value in enumerate(trace):
            assert value == reduce(data[:k], operator.sub, init=100)

    def test_accumulate_discards_partial_trace_by_default(self) -> None:
        with pytest.raises(ElementFailure) as exc:
            accumulate([4, 2, 0, 1], lambda acc, x: acc // x, init=64)
        assert exc.value.index == 2
        assert exc.value.operation == "accumulate"
        assert exc.value.partial is None

    def test_accumulate_can_attach_partial_trace_to_failure(self) -> None:
        with pytest.raises(ElementFailure) as exc:
            accumulate(
                [4, 2, 0, 1], lambda acc, x: acc // x, init=64, keep_partial=True
            )
        assert exc.value.partial == (64, 16, 8)

    def test_accumulate_does_not_share_state_between_calls(self) -> None:
        first = accumulate([1, 2], operator.add, init=0)
        second = accumulate([1, 2], operator.add, init=0)
        first.append(99)
        assert second == [0, 1, 3]

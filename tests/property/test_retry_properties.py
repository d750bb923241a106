from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from retrier.retry import Retrier, RetryPolicy, backoff_duration


class TransientError(Exception):
    pass


class PermanentError(Exception):
    pass


class RecordingSink:
    def __init__(self) -> None:
        self.messages: list[str] = []

    def advise(self, message: str, *, verbose: bool = False) -> None:
        self.messages.append(message)


def _failing_until(success_on: int | None, calls: list[int]):
    def operation() -> int:
        calls.append(len(calls) + 1)
        if success_on is None or len(calls) < success_on:
            raise TransientError(f"attempt {len(calls)}")
        return len(calls) * 10

    return operation


@given(st.integers(min_value=0, max_value=8), st.integers(min_value=-4, max_value=4))
def test_always_failing_operation_runs_max_retries_plus_one(max_retries: int, backoff_base: int) -> None:
    calls: list[int] = []
    sleeps: list[float] = []
    sink = RecordingSink()
    retrier = Retrier(
        RetryPolicy(label="op", max_retries=max_retries, backoff_base=backoff_base),
        sink=sink,
        sleep=sleeps.append,
    )

    with pytest.raises(TransientError) as excinfo:
        retrier.attempt(_failing_until(None, calls))

    assert len(calls) == max_retries + 1
    assert str(excinfo.value) == f"attempt {max_retries + 1}"
    assert sleeps == [backoff_duration(backoff_base, attempt) for attempt in range(1, max_retries + 1)]
    assert len(sink.messages) == max_retries


@given(st.data())
def test_operation_succeeding_on_attempt_k_runs_exactly_k_times(data: st.DataObject) -> None:
    max_retries = data.draw(st.integers(min_value=0, max_value=8))
    success_on = data.draw(st.integers(min_value=1, max_value=max_retries + 1))
    calls: list[int] = []
    sleeps: list[float] = []
    retrier = Retrier(
        RetryPolicy(label="op", max_retries=max_retries, backoff_base=1),
        sink=RecordingSink(),
        sleep=sleeps.append,
    )

    result = retrier.attempt(_failing_until(success_on, calls))

    assert result == success_on * 10
    assert len(calls) == success_on
    assert sleeps == [2**attempt for attempt in range(1, success_on)]


@given(st.integers(min_value=0, max_value=8), st.booleans())
def test_terminal_failures_propagate_after_one_invocation(max_retries: int, unlabeled: bool) -> None:
    calls: list[int] = []
    sleeps: list[float] = []
    policy = RetryPolicy(
        label=None if unlabeled else "op",
        max_retries=max_retries,
        non_retryable=(PermanentError,),
    )

    def operation() -> int:
        calls.append(1)
        if unlabeled:
            raise TransientError("unlabeled")
        raise PermanentError("permanent")

    with pytest.raises((TransientError, PermanentError)):
        Retrier(policy, sink=RecordingSink(), sleep=sleeps.append).attempt(operation)

    assert len(calls) == 1
    assert sleeps == []


@given(st.integers(min_value=-10, max_value=10), st.integers(min_value=1, max_value=10))
def test_backoff_duration_doubles_with_each_attempt(backoff_base: int, attempt: int) -> None:
    current = backoff_duration(backoff_base, attempt)
    assert current > 0
    assert backoff_duration(backoff_base, attempt + 1) == current * 2
    assert backoff_duration(backoff_base + 1, attempt) == current * 2


@given(st.integers(min_value=0, max_value=5), st.integers(min_value=1, max_value=6))
def test_repeated_attempts_are_idempotent(max_retries: int, success_on: int) -> None:
    retrier = Retrier(
        RetryPolicy(label="op", max_retries=max_retries),
        sink=RecordingSink(),
        sleep=lambda _: None,
    )

    def run_once() -> tuple[str, int]:
        calls: list[int] = []
        try:
            outcome = f"ok:{retrier.attempt(_failing_until(success_on, calls))}"
        except TransientError as exc:
            outcome = f"error:{exc}"
        return outcome, len(calls)

    assert run_once() == run_once()

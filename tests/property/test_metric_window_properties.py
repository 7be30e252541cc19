"""Property-based tests for idle classification over a metric window."""

from __future__ import annotations

import math

import pytest

pytest.importorskip("hypothesis")
from hypothesis import given, settings  # type: ignore  # noqa: E402
from hypothesis import strategies as st

from checks.metric_window import classify
from tests.aws_mocks import FIXED_NOW
from tests.factories import sample

_AGE = st.floats(min_value=0.0, max_value=30.0, allow_nan=False, allow_infinity=False)
_VALUE = st.one_of(st.just(0.0), st.floats(min_value=0.001, max_value=1e6, allow_nan=False))
_SAMPLES = st.lists(st.tuples(_VALUE, _AGE), max_size=40)


@settings(max_examples=200, deadline=None, database=None)
@given(ages=st.lists(_AGE, max_size=40))
def test_all_zero_samples_are_always_idle_for_whole_window(ages: list[float]) -> None:
    verdict = classify([sample(0.0, age_days=a) for a in ages], FIXED_NOW)
    assert verdict.is_idle is True
    assert verdict.days_since_last_activity == 14


@settings(max_examples=200, deadline=None, database=None)
@given(age=_AGE)
def test_single_active_sample(age: float) -> None:
    point = sample(1.0, age_days=age)
    verdict = classify([point], FIXED_NOW)
    # timedelta rounds to microseconds; measure the age the analyzer actually sees
    measured = min((FIXED_NOW - point.timestamp).total_seconds() / 86400, 14.0)
    assert verdict.is_idle is (measured > 7)
    assert verdict.days_since_last_activity == math.floor(measured)


@settings(max_examples=200, deadline=None, database=None)
@given(samples=_SAMPLES, extra_age=_AGE, extra_value=st.floats(min_value=0.001, max_value=1e6))
def test_adding_activity_never_increases_days(
    samples: list[tuple[float, float]], extra_age: float, extra_value: float
) -> None:
    base = [sample(v, age_days=a) for v, a in samples]
    before = classify(base, FIXED_NOW)
    after = classify(base + [sample(extra_value, age_days=extra_age)], FIXED_NOW)
    assert after.days_since_last_activity <= before.days_since_last_activity
    assert not (before.is_idle is False and after.is_idle is True)


@settings(max_examples=200, deadline=None, database=None)
@given(samples=_SAMPLES, data=st.data())
def test_classification_is_order_independent(samples: list[tuple[float, float]], data: st.DataObject) -> None:
    built = [sample(v, age_days=a) for v, a in samples]
    shuffled = data.draw(st.permutations(built))
    assert classify(built, FIXED_NOW) == classify(list(shuffled), FIXED_NOW)


@settings(max_examples=200, deadline=None, database=None)
@given(samples=_SAMPLES)
def test_days_stay_within_window(samples: list[tuple[float, float]]) -> None:
    verdict = classify([sample(v, age_days=a) for v, a in samples], FIXED_NOW)
    assert 0 <= verdict.days_since_last_activity <= 14

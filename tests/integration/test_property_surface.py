"""Integration tests for the given() decorator."""
# IMMUTABLE: Do not modify these tests. Fix implementation if tests fail.

import inspect

import pytest

from pbt_engine.config import EngineSettings
from pbt_engine.errors import PropertyFailure, StrategyExhausted
from pbt_engine.property import Property, given
from pbt_engine.strategies.primitives import booleans, integers

FAST = EngineSettings(seed=17, trial_count=50)


def test_passing_property_returns_quietly():  # A
    @given(integers(0, 10), settings=FAST)
    def in_range(x):
        return 0 <= x <= 10

    assert in_range() is None


def test_failing_property_raises_with_report():  # A
    @given(integers(0, 100), settings=FAST)
    def small(x):
        return x < 10

    with pytest.raises(PropertyFailure) as excinfo:
        small()
    message = str(excinfo.value)
    assert "Minimal counterexample" in message
    assert "(10,)" in message
    assert "Reproduce with replay token" in message
    assert isinstance(excinfo.value, AssertionError)


def test_keyword_strategies_are_passed_by_name():  # A
    seen = []

    @given(integers(0, 5), flag=booleans(), settings=FAST)
    def record(x, flag):
        seen.append((x, flag))
        return isinstance(flag, bool)

    record()
    assert len(seen) == FAST.trial_count
    assert all(0 <= x <= 5 for x, _ in seen)


def test_exhaustion_raises_distinct_error():  # A
    @given(integers(0, 5).filter(lambda x: x > 10), settings=FAST)
    def never(x):
        return True

    with pytest.raises(StrategyExhausted):
        never()


def test_wrapper_exposes_property_and_hides_arguments():  # A
    @given(integers(0, 5), settings=FAST)
    def prop(x):
        """Docstring kept."""
        return True

    assert isinstance(prop.property, Property)
    assert prop.__name__ == "prop"
    assert prop.__doc__ == "Docstring kept."
    assert list(inspect.signature(prop).parameters) == []


def test_property_run_accepts_overrides():  # A
    @given(integers(0, 100), settings=FAST)
    def small(x):
        return x < 10

    result = small.property.run(trial_count=5, seed=1)
    assert result.trial_count == 5
    assert result.seed == 1
    assert result.property_name.endswith("small")


def test_pytest_fail_inside_property_is_shrunk():  # A
    @given(integers(0, 100), settings=FAST)
    def small(x):
        if x >= 10:
            pytest.fail(f"{x} is too big")

    with pytest.raises(PropertyFailure) as excinfo:
        small()
    assert "(10,)" in str(excinfo.value)
    assert "10 is too big" in str(excinfo.value)

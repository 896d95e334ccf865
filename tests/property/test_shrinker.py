"""Property-based tests for shrinking."""
# IMMUTABLE: Do not modify these tests. Fix implementation if tests fail.

import itertools

from hypothesis import given, settings
from hypothesis import strategies as st

from pbt_engine.engine.schema import Outcome
from pbt_engine.engine.shrinker import Shrinker
from pbt_engine.random_source import RandomSource
from pbt_engine.runner import run
from pbt_engine.strategies.base import Shrinkable, Strategy
from pbt_engine.strategies.combinators import lists
from pbt_engine.strategies.primitives import integers


class _Stubborn(Strategy[int]):
    """Offers endless candidates that are never simpler."""

    def do_draw(self, source):
        return self._tree(0)

    def _tree(self, n):
        return Shrinkable(n, 5, lambda: (Shrinkable(n + i, 5) for i in itertools.count(1)))


def _shrinker(prop, **kwargs):
    options = {"max_shrink_steps": 1000, "max_no_progress": 50, "timeout": None}
    options.update(kwargs)
    return Shrinker(prop, **options)


def test_integer_shrinks_to_boundary():  # A
    """Greedy halving reaches the smallest failing integer for a threshold property."""
    result = run(integers(0, 1000), lambda x: x < 50, seed=3, per_trial_timeout=None)
    assert result.counterexample is not None
    assert result.counterexample.minimal_value == 50


@given(
    seed=st.integers(min_value=0, max_value=10_000),
    bound=st.integers(min_value=1, max_value=200),
    max_steps=st.integers(min_value=0, max_value=20),
)
@settings(max_examples=20, deadline=None)
def test_shrinking_stays_within_step_budget(seed, bound, max_steps):  # A
    result = run(
        lists(integers(0, 300)),
        lambda xs: sum(xs) < bound,
        seed=seed,
        trial_count=50,
        max_shrink_steps=max_steps,
        per_trial_timeout=None,
    )
    if result.counterexample is not None:
        assert result.counterexample.shrink_steps <= max_steps
        assert sum(result.counterexample.minimal_value) >= bound


@given(seed=st.integers(min_value=0, max_value=10_000))
@settings(max_examples=20, deadline=None)
def test_minimal_value_is_a_fixed_point(seed):  # A
    """Shrinking an already minimal value changes nothing."""
    strategy = lists(integers(0, 100), min_size=3)
    shrinker = _shrinker(lambda xs: len(xs) < 3)
    first = shrinker.shrink(strategy.do_draw(RandomSource(seed)))
    assert first.best.value == [0, 0, 0]
    again = shrinker.shrink(first.best)
    assert again.best.value == first.best.value
    assert again.steps == 0


def test_shrinker_keeps_failure_reason():  # A
    def prop(x):
        assert x < 10, f"too big: {x}"

    tree = integers(0, 100)._tree(77)
    outcome = _shrinker(prop).shrink(tree, "original")
    assert outcome.best.value == 10
    assert "too big: 10" in outcome.reason


def test_stalled_shrink_reports_best_value():  # A
    """Candidates that never get simpler stop the search instead of looping."""
    strategy = _Stubborn()
    outcome = _shrinker(lambda n: False, max_no_progress=10).shrink(strategy.do_draw(RandomSource(0)))
    assert outcome.stalled is True
    assert outcome.best.value == 0
    assert outcome.steps == 0
    assert outcome.calls == 0


def test_stalled_shrink_stops_when_candidates_pass():  # A
    """Non-simpler candidates count toward the guard whatever the property says."""
    strategy = _Stubborn()
    outcome = _shrinker(lambda n: n == 0, max_shrink_steps=10, max_no_progress=10).shrink(
        strategy.do_draw(RandomSource(0))
    )
    assert outcome.stalled is True
    assert outcome.best.value == 0
    assert outcome.calls == 0


def test_raising_transform_skips_candidate():  # A
    """A map that raises on some shrink candidates does not abort the run."""
    strategy = integers(1, 1000).map(lambda x: x - 1).map(lambda y: 1000 // y if y else 1 // 0)
    result = run(strategy, lambda v: False, seed=4, trial_count=5, per_trial_timeout=None)
    assert result.outcome == Outcome.FAILED
    assert result.counterexample.minimal_value == 1000


def test_raising_filter_skips_candidate():  # A
    def predicate(x):
        if x == 0:
            raise ValueError("zero")
        return True

    tree = integers(0, 100)._tree(40).filter(predicate)
    outcome = _shrinker(lambda x: x < 5).shrink(tree)
    assert outcome.best.value == 5


def test_raising_shrink_iterator_keeps_best_value():  # A
    def children():
        yield Shrinkable(3, 1)
        raise RuntimeError("broken shrinker")

    tree = Shrinkable(9, 10, children)
    outcome = _shrinker(lambda n: n == 3).shrink(tree, "original")
    assert outcome.best.value == 9
    assert outcome.reason == "original"
    assert outcome.calls == 1


def test_shrinking_ignores_passing_candidates():  # A
    tree = integers(0, 100)._tree(64)
    outcome = _shrinker(lambda x: x != 64).shrink(tree)
    assert outcome.best.value == 64
    assert outcome.steps == 0

"""Evaluate one property call and classify the outcome."""

import sys
import traceback
from typing import Any, Callable, Optional

from loguru import logger

from pbt_engine.engine.schema import Outcome, TrialResult
from pbt_engine.errors import StrategyExhausted, TrialTimeout
from pbt_engine.random_source import RandomSource, derive_seed
from pbt_engine.strategies.base import Shrinkable, Strategy
from pbt_engine.utils.timeout import call_with_timeout


def _describe(error: BaseException) -> str:
    lines = traceback.format_exception_only(type(error), error)
    return "".join(lines).strip()


def _failure_types() -> tuple[type[BaseException], ...]:
    """Exception types that mark a property call as failed.

    pytest.fail() raises a BaseException subclass; it is a failure when pytest
    is loaded. pytest.skip() and other outcomes still propagate.
    """
    outcomes = sys.modules.get("_pytest.outcomes")
    if outcomes is None:
        return (Exception,)
    return (Exception, outcomes.Failed)


def trial_source(seed: int, trial_index: int, filter_retry_limit: int) -> RandomSource:
    """The random source for trial ``trial_index`` of a run seeded with ``seed``."""
    return RandomSource(derive_seed(seed, trial_index), filter_retry_limit)


def evaluate(
    prop: Callable[[Any], Any],
    value: Any,
    *,
    timeout: Optional[float],
    trial_index: int = 0,
    seed: int = 0,
) -> TrialResult:
    """Call ``prop(value)``; a ``False`` return or any exception is a failure."""
    try:
        result = call_with_timeout(prop, value, timeout=timeout)
    except TrialTimeout as e:
        return TrialResult(
            trial_index=trial_index, seed=seed, outcome=Outcome.TIMEOUT, reason=str(e), value=value
        )
    except _failure_types() as e:
        return TrialResult(
            trial_index=trial_index, seed=seed, outcome=Outcome.FAILED, reason=_describe(e), value=value
        )
    if result is False:
        return TrialResult(
            trial_index=trial_index,
            seed=seed,
            outcome=Outcome.FAILED,
            reason="Property returned False",
            value=value,
        )
    return TrialResult(trial_index=trial_index, seed=seed, outcome=Outcome.PASSED, value=value)


def draw_trial(
    strategy: Strategy,
    seed: int,
    trial_index: int,
    filter_retry_limit: int,
) -> tuple[Optional[Shrinkable], Optional[TrialResult]]:
    """Draw the value for one trial.

    Returns:
        (tree, None) on success, or (None, result) when drawing ended the
        trial as exhausted or errored.
    """
    source = trial_source(seed, trial_index, filter_retry_limit)
    try:
        return strategy.do_draw(source), None
    except StrategyExhausted as e:
        return None, TrialResult(
            trial_index=trial_index, seed=seed, outcome=Outcome.EXHAUSTED, reason=str(e)
        )
    except Exception as e:
        logger.warning(f"Trial {trial_index}: {strategy!r} raised while drawing: {e}")
        return None, TrialResult(
            trial_index=trial_index, seed=seed, outcome=Outcome.ERROR, reason=_describe(e)
        )

"""Greedy shrinking of a failing value toward a locally minimal one."""

from dataclasses import dataclass
from typing import Any, Callable, Iterator, Optional

from loguru import logger

from pbt_engine.engine.schema import Outcome, TrialResult
from pbt_engine.engine.trial import evaluate
from pbt_engine.strategies.base import Shrinkable


@dataclass
class ShrinkOutcome:
    best: Shrinkable
    reason: Optional[str]
    steps: int = 0
    calls: int = 0
    stalled: bool = False


class Shrinker:
    """Walks a failing value's shrink tree, keeping the first simpler candidate that still fails.

    The result is locally minimal: no single shrink step of the strategy
    produces a simpler value on which the property still fails. It is not
    necessarily the globally smallest failing value.
    """

    def __init__(
        self,
        prop: Callable[[Any], Any],
        *,
        max_shrink_steps: int,
        max_no_progress: int,
        timeout: Optional[float],
    ):
        self.prop = prop
        self.max_shrink_steps = max_shrink_steps
        self.max_no_progress = max_no_progress
        self.timeout = timeout

    def _still_fails(self, candidate: Shrinkable) -> TrialResult:
        return evaluate(self.prop, candidate.value, timeout=self.timeout)

    def _candidates(self, current: Shrinkable) -> Iterator[Shrinkable]:
        """Yield ``current``'s shrinks, ending the pass if building one raises."""
        children = None
        while True:
            try:
                if children is None:
                    children = current.shrinks()
                candidate = next(children)
            except StopIteration:
                return
            except Exception as e:
                logger.debug(f"Building a shrink candidate of {current!r} raised {e!r}; ending this pass")
                return
            yield candidate

    def shrink(self, failing: Shrinkable, reason: Optional[str] = None) -> ShrinkOutcome:
        outcome = ShrinkOutcome(best=failing, reason=reason)
        no_progress = 0

        while outcome.steps < self.max_shrink_steps:
            current = outcome.best
            improved = False
            for candidate in self._candidates(current):
                # Not simpler: never evaluated, but counted against the guard.
                if candidate.complexity >= current.complexity:
                    no_progress += 1
                    if no_progress >= self.max_no_progress:
                        logger.warning(
                            f"Shrinking stalled after {no_progress} candidates that were not simpler; "
                            f"reporting best value so far"
                        )
                        outcome.stalled = True
                        return outcome
                    continue
                result = self._still_fails(candidate)
                outcome.calls += 1
                if result.outcome != Outcome.FAILED:
                    continue
                outcome.best = candidate
                outcome.reason = result.reason
                outcome.steps += 1
                improved = True
                logger.debug(f"Shrink step {outcome.steps}: complexity {candidate.complexity}")
                break
            if not improved:
                break

        logger.info(
            f"Shrinking finished after {outcome.steps} steps and {outcome.calls} property calls"
        )
        return outcome

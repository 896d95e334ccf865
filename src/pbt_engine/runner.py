"""Property runner: fresh trials, regression replays, shrinking on the first failure."""

import asyncio
import time
from typing import Any, Callable, List, Optional, Tuple

from loguru import logger

from pbt_engine.config import EngineSettings
from pbt_engine.database.store import ExampleDatabase
from pbt_engine.engine.schema import (
    Counterexample,
    Outcome,
    ReplayToken,
    RunResult,
    TrialResult,
    render_value,
)
from pbt_engine.engine.shrinker import Shrinker
from pbt_engine.engine.trial import draw_trial, evaluate
from pbt_engine.random_source import resolve_seed
from pbt_engine.strategies.base import Shrinkable, Strategy

# Trials scheduled per worker between checks for a failure in parallel mode
_BATCH_FACTOR = 4

TrialRecord = Tuple[TrialResult, Optional[Shrinkable]]


def resolve_settings(settings: Optional[EngineSettings] = None, **overrides: Any) -> EngineSettings:
    """Apply keyword overrides to ``settings`` (or the defaults), validating the result."""
    base = settings or EngineSettings()
    if not overrides:
        return base
    return EngineSettings.model_validate({**base.model_dump(), **overrides})


class PropertyRunner:
    """Runs one property against one strategy."""

    def __init__(
        self,
        strategy: Strategy,
        prop: Callable[[Any], Any],
        settings: Optional[EngineSettings] = None,
        *,
        name: Optional[str] = None,
        database: Optional[ExampleDatabase] = None,
    ):
        self.strategy = strategy
        self.prop = prop
        self.settings = settings or EngineSettings()
        self.name = name or getattr(prop, "__qualname__", repr(prop))
        self.database = database

    # ── Single trial ─────────────────────────────────────────────────────────

    def run_trial(self, seed: int, trial_index: int) -> TrialRecord:
        """Draw and evaluate trial ``trial_index`` of a run seeded with ``seed``."""
        tree, early = draw_trial(self.strategy, seed, trial_index, self.settings.filter_retry_limit)
        if early is not None:
            return early, None
        result = evaluate(
            self.prop,
            tree.value,
            timeout=self.settings.per_trial_timeout,
            trial_index=trial_index,
            seed=seed,
        )
        return result, tree

    # ── Run ──────────────────────────────────────────────────────────────────

    def run(self, replay: Optional[ReplayToken] = None) -> RunResult:
        """Run the property.

        Args:
            replay: Re-execute only this trial (and shrink it if it fails).

        Returns:
            RunResult describing the first non-passing trial, or success.
        """
        started = time.perf_counter()

        if replay is not None:
            logger.info(f"{self.name}: replaying trial {replay.encode()}")
            trial, tree = self.run_trial(replay.seed, replay.trial_index)
            return self._conclude(replay.seed, trial, tree, trials_run=1, started=started)

        if self.database is not None:
            for token in self.database.fetch(self.name):
                trial, tree = self.run_trial(token.seed, token.trial_index)
                if not trial.passed:
                    logger.info(f"{self.name}: stored example {token.encode()} still fails")
                    return self._conclude(token.seed, trial, tree, trials_run=1, started=started)
                self.database.delete(self.name, token)

        seed = resolve_seed(self.settings.seed)
        logger.info(
            f"{self.name}: running {self.settings.trial_count} trials with seed {seed} "
            f"against {self.strategy!r}"
        )

        if self.settings.workers > 1:
            trials_run, first = asyncio.run(self._run_parallel(seed))
        else:
            trials_run, first = self._run_sequential(seed)

        if first is not None:
            trial, tree = first
            return self._conclude(seed, trial, tree, trials_run=trials_run, started=started)

        elapsed = time.perf_counter() - started
        logger.info(f"{self.name}: passed {trials_run} trials in {elapsed:.3f}s")
        return RunResult(
            property_name=self.name,
            outcome=Outcome.PASSED,
            seed=seed,
            trial_count=self.settings.trial_count,
            trials_run=trials_run,
            elapsed=elapsed,
        )

    def _run_sequential(self, seed: int) -> Tuple[int, Optional[TrialRecord]]:
        for i in range(self.settings.trial_count):
            trial, tree = self.run_trial(seed, i)
            if not trial.passed:
                return i + 1, (trial, tree)
        return self.settings.trial_count, None

    async def _run_parallel(self, seed: int) -> Tuple[int, Optional[TrialRecord]]:
        """Run trials on worker threads in index-ordered batches.

        The lowest failing index of a batch wins, so the outcome matches a
        sequential run with the same seed. The trial count includes every
        trial of the final batch, since all of them ran.
        """
        semaphore = asyncio.Semaphore(self.settings.workers)

        async def _limited(i: int) -> TrialRecord:
            async with semaphore:
                return await asyncio.to_thread(self.run_trial, seed, i)

        batch_size = self.settings.workers * _BATCH_FACTOR
        for start in range(0, self.settings.trial_count, batch_size):
            stop = min(start + batch_size, self.settings.trial_count)
            records: List[TrialRecord] = await asyncio.gather(
                *(_limited(i) for i in range(start, stop))
            )
            for trial, tree in records:
                if not trial.passed:
                    return stop, (trial, tree)
        return self.settings.trial_count, None

    # ── Conclusion ───────────────────────────────────────────────────────────

    def _conclude(
        self,
        seed: int,
        trial: TrialResult,
        tree: Optional[Shrinkable],
        *,
        trials_run: int,
        started: float,
    ) -> RunResult:
        if trial.outcome == Outcome.PASSED:
            return RunResult(
                property_name=self.name,
                outcome=Outcome.PASSED,
                seed=seed,
                trial_count=self.settings.trial_count,
                trials_run=trials_run,
                elapsed=time.perf_counter() - started,
            )

        if trial.outcome != Outcome.FAILED or tree is None:
            logger.warning(
                f"{self.name}: trial {trial.trial_index} ended as {trial.outcome.value}: {trial.reason}"
            )
            return RunResult(
                property_name=self.name,
                outcome=trial.outcome,
                seed=seed,
                trial_count=self.settings.trial_count,
                trials_run=trials_run,
                elapsed=time.perf_counter() - started,
                failed_trial=trial.trial_index,
                message=trial.reason,
            )

        logger.info(f"{self.name}: trial {trial.trial_index} failed, shrinking")
        shrinker = Shrinker(
            self.prop,
            max_shrink_steps=self.settings.max_shrink_steps,
            max_no_progress=self.settings.max_no_progress,
            timeout=self.settings.per_trial_timeout,
        )
        shrunk = shrinker.shrink(tree, trial.reason)
        counterexample = Counterexample(
            seed=seed,
            trial_index=trial.trial_index,
            original_value=tree.value,
            minimal_value=shrunk.best.value,
            original_repr=render_value(tree.value),
            minimal_repr=render_value(shrunk.best.value),
            reason=shrunk.reason,
            shrink_steps=shrunk.steps,
            shrink_calls=shrunk.calls,
            shrink_stalled=shrunk.stalled,
        )
        if self.database is not None:
            self.database.save(self.name, counterexample.replay_token)

        return RunResult(
            property_name=self.name,
            outcome=Outcome.FAILED,
            seed=seed,
            trial_count=self.settings.trial_count,
            trials_run=trials_run,
            elapsed=time.perf_counter() - started,
            failed_trial=trial.trial_index,
            message=shrunk.reason,
            counterexample=counterexample,
        )


def run(
    strategy: Strategy,
    prop: Callable[[Any], Any],
    settings: Optional[EngineSettings] = None,
    *,
    name: Optional[str] = None,
    replay: Optional[ReplayToken] = None,
    database: Optional[ExampleDatabase] = None,
    **overrides: Any,
) -> RunResult:
    """Check ``prop`` against values drawn from ``strategy``.

    Passing means only that the sampled trials passed; it is not a proof.
    """
    runner = PropertyRunner(
        strategy,
        prop,
        resolve_settings(settings, **overrides),
        name=name,
        database=database,
    )
    return runner.run(replay=replay)

"""Differential testing of a candidate set implementation against a reference.

The bundled candidate is :class:`~pbt_engine.oracle.treap.Treap`; pass any
other factory producing a :class:`SetModel` to test your own structure.
"""

from typing import Any, Callable, List, Optional, Sequence

from loguru import logger

from pbt_engine.config import EngineSettings
from pbt_engine.database.store import ExampleDatabase
from pbt_engine.engine.schema import ReplayToken, RunResult
from pbt_engine.errors import OracleMismatch
from pbt_engine.oracle.schema import Insert, Operation, Query, ReferenceSet, Remove, SetModel, is_query
from pbt_engine.oracle.treap import Treap
from pbt_engine.runner import run
from pbt_engine.strategies.base import Strategy
from pbt_engine.strategies.combinators import ListStrategy, builds, one_of
from pbt_engine.strategies.primitives import integers

DEFAULT_WEIGHTS = (2.0, 1.0, 1.0)


def operations(
    keys: Optional[Strategy] = None,
    weights: Sequence[float] = DEFAULT_WEIGHTS,
) -> Strategy[Operation]:
    """Single operations; weights are for (Insert, Remove, Query)."""
    keys = keys or integers(0, 9)
    return one_of(builds(Insert, keys), builds(Remove, keys), builds(Query, keys), weights=weights)


def operation_sequences(
    keys: Optional[Strategy] = None,
    min_size: int = 0,
    max_size: int = 30,
    weights: Sequence[float] = DEFAULT_WEIGHTS,
) -> ListStrategy:
    """Operation sequences that shrink by dropping queries first, latest first."""
    return ListStrategy(
        operations(keys, weights),
        min_size=min_size,
        max_size=max_size,
        prefer_removal=is_query,
    )


class OracleDriver:
    """Replays operation sequences against a fresh candidate and reference in lockstep."""

    def __init__(
        self,
        candidate_factory: Callable[[], SetModel] = Treap,
        reference_factory: Callable[[], SetModel] = ReferenceSet,
        name: Optional[str] = None,
    ):
        self.candidate_factory = candidate_factory
        self.reference_factory = reference_factory
        self.name = name or f"oracle[{getattr(candidate_factory, '__name__', candidate_factory)}]"

    def replay(self, ops: Sequence[Operation]) -> List[bool]:
        """Apply ``ops`` to both sides and return the observable trace.

        Raises:
            OracleMismatch: at the first step where results differ, when the
                final enumerations differ, or when the candidate's own
                invariant check fails.
        """
        if not ops:
            return []

        candidate = self.candidate_factory()
        reference = self.reference_factory()
        trace: List[bool] = []

        for step, op in enumerate(ops):
            got = op.apply(candidate)
            expected = op.apply(reference)
            if got != expected:
                raise OracleMismatch(
                    f"Step {step}: {op!r} returned {got!r}, reference returned {expected!r}",
                    step=step,
                )
            trace.append(expected)

        got_items = list(candidate)
        expected_items = list(reference)
        if got_items != expected_items:
            raise OracleMismatch(
                f"Final contents differ: candidate {got_items!r}, reference {expected_items!r}",
                step=len(ops),
            )

        check = getattr(candidate, "check_invariants", None)
        if check is not None and check() is False:
            raise OracleMismatch("Candidate structural invariant violated", step=len(ops))

        return trace

    def check(self, ops: Sequence[Operation]) -> bool:
        self.replay(ops)
        return True

    def run(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        keys: Optional[Strategy] = None,
        max_size: int = 30,
        replay: Optional[ReplayToken] = None,
        database: Optional[ExampleDatabase] = None,
        **overrides: Any,
    ) -> RunResult:
        strategy = operation_sequences(keys, max_size=max_size)
        logger.info(f"{self.name}: differential run over {strategy!r}")
        return run(
            strategy,
            self.check,
            settings,
            name=self.name,
            replay=replay,
            database=database,
            **overrides,
        )

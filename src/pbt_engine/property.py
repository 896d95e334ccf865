"""Property definition surface: the ``given`` decorator."""

import inspect
from typing import Any, Callable, Optional

from pbt_engine.config import EngineSettings
from pbt_engine.database.store import ExampleDatabase
from pbt_engine.engine.schema import Outcome, ReplayToken, RunResult
from pbt_engine.errors import PropertyFailure, StrategyError, StrategyExhausted, TrialTimeout
from pbt_engine.report.reporter import format_report
from pbt_engine.runner import PropertyRunner, resolve_settings
from pbt_engine.strategies.base import Strategy
from pbt_engine.strategies.combinators import TupleStrategy

_OUTCOME_ERRORS = {
    Outcome.FAILED: PropertyFailure,
    Outcome.EXHAUSTED: StrategyExhausted,
    Outcome.TIMEOUT: TrialTimeout,
    Outcome.ERROR: StrategyError,
}


class Property:
    """A predicate bound to the strategies that feed its arguments.

    Drawn values are tuples of the positional arguments followed by the
    keyword arguments in declaration order.
    """

    def __init__(
        self,
        fn: Callable[..., Any],
        strategies: tuple[Strategy, ...],
        kw_strategies: dict[str, Strategy],
        settings: Optional[EngineSettings] = None,
        name: Optional[str] = None,
        database: Optional[ExampleDatabase] = None,
    ):
        self.fn = fn
        self.n_args = len(strategies)
        self.keys = tuple(kw_strategies)
        self.strategy = TupleStrategy(strategies + tuple(kw_strategies.values()))
        self.settings = settings or EngineSettings()
        self.name = name or f"{fn.__module__}.{fn.__qualname__}"
        self.database = database

    def __repr__(self) -> str:
        return f"Property({self.name})"

    def __call__(self, values: tuple) -> Any:
        positional = values[: self.n_args]
        named = dict(zip(self.keys, values[self.n_args :]))
        return self.fn(*positional, **named)

    def run(
        self,
        settings: Optional[EngineSettings] = None,
        *,
        replay: Optional[ReplayToken] = None,
        database: Optional[ExampleDatabase] = None,
        **overrides: Any,
    ) -> RunResult:
        runner = PropertyRunner(
            self.strategy,
            self,
            resolve_settings(settings or self.settings, **overrides),
            name=self.name,
            database=database or self.database,
        )
        return runner.run(replay=replay)

    def check(self, **kwargs: Any) -> RunResult:
        """Run and raise the exception matching any non-passing outcome."""
        result = self.run(**kwargs)
        if not result.passed:
            raise _OUTCOME_ERRORS[result.outcome](format_report(result))
        return result


def given(
    *strategies: Strategy,
    settings: Optional[EngineSettings] = None,
    name: Optional[str] = None,
    database: Optional[ExampleDatabase] = None,
    **kw_strategies: Strategy,
) -> Callable[[Callable[..., Any]], Callable[[], None]]:
    """Turn a predicate into a zero-argument test function.

    Calling the returned function runs the engine and raises
    :class:`PropertyFailure` (an ``AssertionError``) with the report when the
    property is falsified. The underlying :class:`Property` is available as
    ``.property``.
    """

    def decorate(fn: Callable[..., Any]) -> Callable[[], None]:
        prop = Property(fn, strategies, kw_strategies, settings, name, database)

        def test() -> None:
            prop.check()

        test.__name__ = fn.__name__
        test.__qualname__ = fn.__qualname__
        test.__module__ = fn.__module__
        test.__doc__ = fn.__doc__
        # Test collectors must not treat the drawn arguments as fixtures.
        test.__signature__ = inspect.Signature()  # type: ignore[attr-defined]
        test.property = prop  # type: ignore[attr-defined]
        return test

    return decorate

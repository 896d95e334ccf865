"""Composite strategies: tuples, collections, weighted unions and builds."""

from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple

from loguru import logger

from pbt_engine.errors import InvalidArgument, StrategyExhausted
from pbt_engine.random_source import RandomSource
from pbt_engine.strategies.base import Shrinkable, Strategy

DEFAULT_EXTRA_SIZE = 10


def _check_strategy(obj: Any, where: str) -> Strategy:
    if not isinstance(obj, Strategy):
        raise InvalidArgument(f"{where} expected a Strategy, got {obj!r}")
    return obj


# ── Tuples ───────────────────────────────────────────────────────────────────


def _tuple_tree(parts: Tuple[Shrinkable, ...]) -> Shrinkable[tuple]:
    return Shrinkable(
        tuple(p.value for p in parts),
        sum(p.complexity for p in parts),
        lambda: _tuple_shrinks(parts),
    )


def _tuple_shrinks(parts: Tuple[Shrinkable, ...]) -> Iterator[Shrinkable[tuple]]:
    # One component at a time, the others held fixed.
    for i, part in enumerate(parts):
        for child in part.shrinks():
            yield _tuple_tree(parts[:i] + (child,) + parts[i + 1 :])


class TupleStrategy(Strategy[tuple]):
    def __init__(self, strategies: Sequence[Strategy]):
        self.strategies = tuple(_check_strategy(s, "tuples()") for s in strategies)

    def __repr__(self) -> str:
        return f"tuples({', '.join(repr(s) for s in self.strategies)})"

    def do_draw(self, source: RandomSource) -> Shrinkable[tuple]:
        return _tuple_tree(tuple(s.do_draw(source.fork()) for s in self.strategies))


def tuples(*strategies: Strategy) -> TupleStrategy:
    return TupleStrategy(strategies)


# ── Collections ──────────────────────────────────────────────────────────────


def _list_tree(
    elements: List[Shrinkable],
    min_size: int,
    prefer_removal: Optional[Callable[[Any], bool]],
) -> Shrinkable[list]:
    return Shrinkable(
        [e.value for e in elements],
        sum(1 + e.complexity for e in elements),
        lambda: _list_shrinks(elements, min_size, prefer_removal),
    )


def _list_shrinks(
    elements: List[Shrinkable],
    min_size: int,
    prefer_removal: Optional[Callable[[Any], bool]],
) -> Iterator[Shrinkable[list]]:
    """Shrink order: shortest allowed, preferred removals, chunk removals, elements."""
    n = len(elements)

    def rebuild(new_elements: List[Shrinkable]) -> Shrinkable[list]:
        return _list_tree(new_elements, min_size, prefer_removal)

    if n > min_size:
        yield rebuild(elements[:min_size])

        if prefer_removal is not None:
            for i in range(n - 1, -1, -1):
                if prefer_removal(elements[i].value):
                    yield rebuild(elements[:i] + elements[i + 1 :])

        # Binary collapse: halve the chunk size each round, latest chunks first.
        size = n // 2
        while size > 0:
            if n - size >= min_size:
                start = n - size
                while start >= 0:
                    yield rebuild(elements[:start] + elements[start + size :])
                    start -= size
            size //= 2

    for i, element in enumerate(elements):
        for child in element.shrinks():
            yield rebuild(elements[:i] + [child] + elements[i + 1 :])


class ListStrategy(Strategy[list]):
    """Ordered sequences of variable length drawn from an element strategy.

    ``prefer_removal`` marks elements whose single removal is tried before
    the generic chunk removals while shrinking.
    """

    def __init__(
        self,
        elements: Strategy,
        min_size: int = 0,
        max_size: Optional[int] = None,
        prefer_removal: Optional[Callable[[Any], bool]] = None,
    ):
        self.elements = _check_strategy(elements, "lists()")
        if min_size < 0:
            raise InvalidArgument(f"min_size must be non-negative, got {min_size}")
        if max_size is None:
            max_size = min_size + DEFAULT_EXTRA_SIZE
        if max_size < min_size:
            raise InvalidArgument(f"max_size={max_size} is smaller than min_size={min_size}")
        self.min_size = min_size
        self.max_size = max_size
        self.prefer_removal = prefer_removal

    def __repr__(self) -> str:
        return f"lists({self.elements!r}, min_size={self.min_size}, max_size={self.max_size})"

    def do_draw(self, source: RandomSource) -> Shrinkable[list]:
        length = source.integer(self.min_size, self.max_size)
        drawn = [self.elements.do_draw(source.fork()) for _ in range(length)]
        return _list_tree(drawn, self.min_size, self.prefer_removal)


def lists(
    elements: Strategy,
    min_size: int = 0,
    max_size: Optional[int] = None,
    prefer_removal: Optional[Callable[[Any], bool]] = None,
) -> ListStrategy:
    return ListStrategy(elements, min_size, max_size, prefer_removal)


# ── Unions ───────────────────────────────────────────────────────────────────


class OneOfStrategy(Strategy[Any]):
    """Chooses among alternatives proportionally to their weights.

    Shrinking first switches to earlier-listed alternatives that are
    strictly simpler, then shrinks within the chosen alternative.
    """

    def __init__(self, alternatives: Sequence[Strategy], weights: Optional[Sequence[float]] = None):
        if not alternatives:
            raise InvalidArgument("one_of() needs at least one alternative")
        self.alternatives = tuple(_check_strategy(s, "one_of()") for s in alternatives)
        if weights is None:
            weights = [1.0] * len(self.alternatives)
        if len(weights) != len(self.alternatives):
            raise InvalidArgument(
                f"Got {len(weights)} weights for {len(self.alternatives)} alternatives"
            )
        if any(w < 0 for w in weights) or sum(weights) <= 0:
            raise InvalidArgument(f"Weights must be non-negative with a positive sum: {weights}")
        total = float(sum(weights))
        self.weights = tuple(w / total for w in weights)

    def __repr__(self) -> str:
        return f"one_of({', '.join(repr(s) for s in self.alternatives)})"

    def do_draw(self, source: RandomSource) -> Shrinkable[Any]:
        index = source.weighted_index(self.weights)
        branch_source = source.fork()
        return self._wrap(index, self.alternatives[index].do_draw(branch_source), branch_source)

    def _wrap(self, index: int, tree: Shrinkable, branch_source: RandomSource) -> Shrinkable:
        return Shrinkable(
            tree.value,
            tree.complexity + index,
            lambda: self._shrinks(index, tree, branch_source),
        )

    def _shrinks(self, index: int, tree: Shrinkable, branch_source: RandomSource) -> Iterator[Shrinkable]:
        current = tree.complexity + index
        for j in range(index):
            if self.weights[j] == 0:
                continue
            try:
                other = self.alternatives[j].do_draw(branch_source.replica())
            except StrategyExhausted:
                logger.debug(f"Alternative {j} of {self!r} exhausted while shrinking")
                continue
            except Exception as e:
                logger.debug(f"Alternative {j} of {self!r} raised {e!r} while shrinking")
                continue
            if other.complexity + j < current:
                yield self._wrap(j, other, branch_source)
        for child in tree.shrinks():
            yield self._wrap(index, child, branch_source)


def one_of(*alternatives: Strategy, weights: Optional[Sequence[float]] = None) -> OneOfStrategy:
    return OneOfStrategy(alternatives, weights)


# ── Builds ───────────────────────────────────────────────────────────────────


class BuildsStrategy(Strategy[Any]):
    """Calls ``target`` with arguments drawn from the given strategies."""

    def __init__(self, target: Callable[..., Any], args: Sequence[Strategy], kwargs: dict):
        self.target = target
        self.n_args = len(args)
        self.keys = tuple(kwargs)
        self.arguments = TupleStrategy(tuple(args) + tuple(kwargs.values()))

    def __repr__(self) -> str:
        return f"builds({getattr(self.target, '__name__', self.target)})"

    def _call(self, values: tuple) -> Any:
        positional = values[: self.n_args]
        named = dict(zip(self.keys, values[self.n_args :]))
        return self.target(*positional, **named)

    def do_draw(self, source: RandomSource) -> Shrinkable[Any]:
        return self.arguments.do_draw(source).map(self._call)


def builds(target: Callable[..., Any], *args: Strategy, **kwargs: Strategy) -> BuildsStrategy:
    return BuildsStrategy(target, args, kwargs)

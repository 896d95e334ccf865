"""Strategy base class and the shrink tree every draw produces."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, Iterator, Optional, TypeVar

from loguru import logger

from pbt_engine.errors import InvalidArgument, StrategyExhausted
from pbt_engine.random_source import RandomSource

T = TypeVar("T")
U = TypeVar("U")


class Shrinkable(Generic[T]):
    """A drawn value together with its lazily computed simpler candidates.

    ``complexity`` is a non-negative integer; every candidate yielded by
    :meth:`shrinks` of a well-behaved strategy has a strictly smaller one.
    """

    __slots__ = ("value", "complexity", "_children")

    def __init__(
        self,
        value: T,
        complexity: int = 0,
        children: Optional[Callable[[], Iterable["Shrinkable[T]"]]] = None,
    ):
        self.value = value
        self.complexity = complexity
        self._children = children

    def __repr__(self) -> str:
        return f"Shrinkable({self.value!r}, complexity={self.complexity})"

    def shrinks(self) -> Iterator["Shrinkable[T]"]:
        if self._children is None:
            return iter(())
        return iter(self._children())

    def map(self, fn: Callable[[T], U]) -> "Shrinkable[U]":
        return Shrinkable(fn(self.value), self.complexity, lambda: self._mapped_shrinks(fn))

    def _mapped_shrinks(self, fn: Callable[[T], U]) -> Iterator["Shrinkable[U]"]:
        for child in self.shrinks():
            try:
                mapped = child.map(fn)
            except Exception as e:
                logger.debug(f"Skipping shrink candidate {child.value!r}: transform raised {e!r}")
                continue
            yield mapped

    def filter(self, predicate: Callable[[T], bool]) -> "Shrinkable[T]":
        return Shrinkable(self.value, self.complexity, lambda: self._filtered_shrinks(predicate))

    def _filtered_shrinks(self, predicate: Callable[[T], bool]) -> Iterator["Shrinkable[T]"]:
        for child in self.shrinks():
            try:
                keep = predicate(child.value)
            except Exception as e:
                logger.debug(f"Skipping shrink candidate {child.value!r}: filter raised {e!r}")
                continue
            if keep:
                yield child.filter(predicate)


class Strategy(ABC, Generic[T]):
    """Generator/shrinker pair for a value-space.

    Strategies are immutable descriptions: build them once and reuse them
    across any number of trials.
    """

    @abstractmethod
    def do_draw(self, source: RandomSource) -> Shrinkable[T]:
        """Draw a value and its shrink tree from ``source``."""
        ...

    def draw(self, source: RandomSource) -> T:
        return self.do_draw(source).value

    def shrink(self, tree: Shrinkable[T]) -> Iterator[T]:
        """Lazily yield the candidate values one shrink step below ``tree``."""
        return (child.value for child in tree.shrinks())

    def map(self, fn: Callable[[T], U]) -> "Strategy[U]":
        return MappedStrategy(self, fn)

    def filter(self, predicate: Callable[[T], bool], max_attempts: Optional[int] = None) -> "Strategy[T]":
        return FilteredStrategy(self, predicate, max_attempts)


class MappedStrategy(Strategy[U]):
    def __init__(self, base: Strategy[Any], fn: Callable[[Any], U]):
        self.base = base
        self.fn = fn

    def __repr__(self) -> str:
        return f"{self.base!r}.map({getattr(self.fn, '__name__', self.fn)})"

    def do_draw(self, source: RandomSource) -> Shrinkable[U]:
        return self.base.do_draw(source).map(self.fn)


class FilteredStrategy(Strategy[T]):
    """Re-draws until ``predicate`` holds, up to a bounded number of attempts.

    The bound is ``max_attempts`` when given, otherwise the retry limit
    carried by the random source.
    """

    def __init__(
        self,
        base: Strategy[T],
        predicate: Callable[[T], bool],
        max_attempts: Optional[int] = None,
    ):
        if max_attempts is not None and max_attempts < 1:
            raise InvalidArgument(f"max_attempts must be >= 1, got {max_attempts}")
        self.base = base
        self.predicate = predicate
        self.max_attempts = max_attempts

    def __repr__(self) -> str:
        return f"{self.base!r}.filter({getattr(self.predicate, '__name__', self.predicate)})"

    def do_draw(self, source: RandomSource) -> Shrinkable[T]:
        attempts = self.max_attempts or source.filter_retry_limit
        for _ in range(attempts):
            tree = self.base.do_draw(source.fork())
            if self.predicate(tree.value):
                return tree.filter(self.predicate)
        logger.debug(f"{self!r}: no value satisfied the filter in {attempts} attempts")
        raise StrategyExhausted(f"{self!r} rejected {attempts} consecutive draws")

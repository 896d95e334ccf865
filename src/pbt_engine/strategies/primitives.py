"""Primitive strategies."""

import string
from typing import Any, Iterator, Optional, Sequence

from pbt_engine.errors import InvalidArgument
from pbt_engine.random_source import RandomSource
from pbt_engine.strategies.base import Shrinkable, Strategy
from pbt_engine.strategies.combinators import lists

# Bounds used for an unbounded side of integers()
_INT_MIN = -(1 << 63)
_INT_MAX = (1 << 63) - 1

# Draws near the shrink target are common sources of bugs
_SMALL_SPAN = 16


class IntegersStrategy(Strategy[int]):
    """Integers in ``[min_value, max_value]``, shrinking toward the value closest to zero."""

    def __init__(self, min_value: Optional[int] = None, max_value: Optional[int] = None):
        lo = _INT_MIN if min_value is None else min_value
        hi = _INT_MAX if max_value is None else max_value
        if lo > hi:
            raise InvalidArgument(f"min_value={lo} is greater than max_value={hi}")
        self.min_value = min_value
        self.max_value = max_value
        self.lo = lo
        self.hi = hi
        if lo <= 0 <= hi:
            self.target = 0
        else:
            self.target = lo if lo > 0 else hi

    def __repr__(self) -> str:
        return f"integers(min_value={self.min_value}, max_value={self.max_value})"

    def do_draw(self, source: RandomSource) -> Shrinkable[int]:
        mode = source.integer(0, 7)
        if mode == 0:
            value = (self.lo, self.hi, self.target)[source.integer(0, 2)]
        elif mode <= 3:
            value = source.integer(
                max(self.lo, self.target - _SMALL_SPAN),
                min(self.hi, self.target + _SMALL_SPAN),
            )
        else:
            value = source.integer(self.lo, self.hi)
        return self._tree(value)

    def _complexity(self, value: int) -> int:
        return 2 * abs(value - self.target) + (1 if value < self.target else 0)

    def _tree(self, value: int) -> Shrinkable[int]:
        return Shrinkable(value, self._complexity(value), lambda: self._shrinks(value))

    def _shrinks(self, value: int) -> Iterator[Shrinkable[int]]:
        if value == self.target:
            return
        yield self._tree(self.target)
        if value < 0 and self.target == 0 and -value <= self.hi:
            yield self._tree(-value)
        diff = value - self.target
        step = abs(diff) // 2
        sign = 1 if diff > 0 else -1
        while step > 0:
            yield self._tree(value - sign * step)
            step //= 2


def integers(min_value: Optional[int] = None, max_value: Optional[int] = None) -> IntegersStrategy:
    return IntegersStrategy(min_value, max_value)


class BooleansStrategy(Strategy[bool]):
    def __repr__(self) -> str:
        return "booleans()"

    def do_draw(self, source: RandomSource) -> Shrinkable[bool]:
        if source.boolean():
            return Shrinkable(True, 1, lambda: [Shrinkable(False, 0)])
        return Shrinkable(False, 0)


def booleans() -> BooleansStrategy:
    return BooleansStrategy()


class JustStrategy(Strategy[Any]):
    def __init__(self, value: Any):
        self.value = value

    def __repr__(self) -> str:
        return f"just({self.value!r})"

    def do_draw(self, source: RandomSource) -> Shrinkable[Any]:
        return Shrinkable(self.value, 0)


def just(value: Any) -> JustStrategy:
    return JustStrategy(value)


def sampled_from(elements: Sequence[Any]) -> Strategy[Any]:
    """Pick one of ``elements``, shrinking toward the first."""
    values = tuple(elements)
    if not values:
        raise InvalidArgument("sampled_from() needs at least one element")
    return integers(0, len(values) - 1).map(values.__getitem__)


def binary(min_size: int = 0, max_size: Optional[int] = None) -> Strategy[bytes]:
    """Byte strings; shrink like lists of byte values."""
    return lists(integers(0, 255), min_size=min_size, max_size=max_size).map(bytes)


def text(
    alphabet: str = string.ascii_letters + string.digits,
    min_size: int = 0,
    max_size: Optional[int] = None,
) -> Strategy[str]:
    """Strings over ``alphabet``; characters shrink toward the alphabet's first."""
    return lists(sampled_from(alphabet), min_size=min_size, max_size=max_size).map("".join)

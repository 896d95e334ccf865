"""Operations replayed against an oracle pair, and the reference set."""

from dataclasses import dataclass
from typing import Any, ClassVar, Iterator, Protocol, Set


class SetModel(Protocol):
    """What both sides of an oracle pair must provide."""

    def insert(self, key: Any) -> bool: ...

    def remove(self, key: Any) -> bool: ...

    def contains(self, key: Any) -> bool: ...

    def __iter__(self) -> Iterator[Any]: ...


@dataclass(frozen=True)
class Operation:
    key: Any
    method: ClassVar[str] = ""

    def apply(self, model: SetModel) -> bool:
        return getattr(model, self.method)(self.key)


@dataclass(frozen=True)
class Insert(Operation):
    """Add ``key``; observable result is whether it was newly added."""

    method: ClassVar[str] = "insert"


@dataclass(frozen=True)
class Remove(Operation):
    """Delete ``key``; observable result is whether it was present."""

    method: ClassVar[str] = "remove"


@dataclass(frozen=True)
class Query(Operation):
    """Membership test for ``key``."""

    method: ClassVar[str] = "contains"


def is_query(op: Operation) -> bool:
    return isinstance(op, Query)


class ReferenceSet:
    """Trusted set semantics on top of the builtin ``set``."""

    def __init__(self) -> None:
        self._items: Set[Any] = set()

    def insert(self, key: Any) -> bool:
        if key in self._items:
            return False
        self._items.add(key)
        return True

    def remove(self, key: Any) -> bool:
        if key not in self._items:
            return False
        self._items.remove(key)
        return True

    def contains(self, key: Any) -> bool:
        return key in self._items

    def __iter__(self) -> Iterator[Any]:
        return iter(sorted(self._items))

    def __len__(self) -> int:
        return len(self._items)

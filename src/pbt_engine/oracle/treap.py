"""Treap-backed ordered set, checked against ReferenceSet by the oracle driver."""

from random import Random
from typing import Any, Iterator, List, Optional


class _Node:
    __slots__ = ("key", "priority", "left", "right")

    def __init__(self, key: Any, priority: float):
        self.key = key
        self.priority = priority
        self.left: Optional["_Node"] = None
        self.right: Optional["_Node"] = None


def _rotate_right(node: _Node) -> _Node:
    pivot = node.left
    node.left = pivot.right
    pivot.right = node
    return pivot


def _rotate_left(node: _Node) -> _Node:
    pivot = node.right
    node.right = pivot.left
    pivot.left = node
    return pivot


class Treap:
    """Binary search tree on keys, max-heap on random priorities."""

    def __init__(self, seed: int = 0):
        self._rng = Random(seed)
        self._root: Optional[_Node] = None
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: Any) -> bool:
        return self.contains(key)

    def contains(self, key: Any) -> bool:
        return self._find(key)

    def _find(self, key: Any) -> bool:
        node = self._root
        while node is not None:
            if key == node.key:
                return True
            node = node.left if key < node.key else node.right
        return False

    def insert(self, key: Any) -> bool:
        if self._find(key):
            return False
        self._root = self._insert(self._root, key, self._rng.random())
        self._size += 1
        return True

    def _insert(self, node: Optional[_Node], key: Any, priority: float) -> _Node:
        if node is None:
            return _Node(key, priority)
        if key < node.key:
            node.left = self._insert(node.left, key, priority)
            if node.left.priority > node.priority:
                node = _rotate_right(node)
        else:
            node.right = self._insert(node.right, key, priority)
            if node.right.priority > node.priority:
                node = _rotate_left(node)
        return node

    def remove(self, key: Any) -> bool:
        if not self._find(key):
            return False
        self._root = self._remove(self._root, key)
        self._size -= 1
        return True

    def _remove(self, node: Optional[_Node], key: Any) -> Optional[_Node]:
        if node is None:
            return None
        if key < node.key:
            node.left = self._remove(node.left, key)
        elif key > node.key:
            node.right = self._remove(node.right, key)
        else:
            # Rotate the higher-priority child up until the node is a leaf or has one child.
            if node.left is None:
                return node.right
            if node.right is None:
                return node.left
            if node.left.priority > node.right.priority:
                node = _rotate_right(node)
                node.right = self._remove(node.right, key)
            else:
                node = _rotate_left(node)
                node.left = self._remove(node.left, key)
        return node

    def __iter__(self) -> Iterator[Any]:
        stack: List[_Node] = []
        node = self._root
        while stack or node is not None:
            while node is not None:
                stack.append(node)
                node = node.left
            node = stack.pop()
            yield node.key
            node = node.right

    def check_invariants(self) -> bool:
        """BST order on keys, heap order on priorities, and a consistent size."""
        count = 0
        stack: List[tuple[_Node, Any, Any]] = []
        if self._root is not None:
            stack.append((self._root, None, None))
        while stack:
            node, low, high = stack.pop()
            count += 1
            if low is not None and not low < node.key:
                return False
            if high is not None and not node.key < high:
                return False
            for child in (node.left, node.right):
                if child is not None and child.priority > node.priority:
                    return False
            if node.left is not None:
                stack.append((node.left, low, node.key))
            if node.right is not None:
                stack.append((node.right, node.key, high))
        return count == self._size

"""Seeded, forkable source of pseudo-random bits."""

import hashlib
import time
from random import Random
from typing import Literal, Sequence

from loguru import logger

from pbt_engine.errors import InvalidArgument

_SEED_BITS = 64
_UNIT_BITS = 53

DEFAULT_FILTER_RETRY_LIMIT = 100


def derive_seed(*parts: object) -> int:
    """Derive a 64-bit seed from an ordered tuple of parts.

    The derivation is a hash, so it is stable across processes and
    interpreter versions (unlike ``hash()``).
    """
    payload = ":".join(str(p) for p in parts).encode("utf-8")
    digest = hashlib.blake2b(payload, digest_size=_SEED_BITS // 8).digest()
    return int.from_bytes(digest, "big")


def resolve_seed(seed: int | Literal["auto"]) -> int:
    """Turn a configured seed into a concrete one, drawing from the clock for ``"auto"``."""
    if seed == "auto":
        resolved = time.time_ns() & ((1 << _SEED_BITS) - 1)
        logger.info(f"Using time-derived seed {resolved}")
        return resolved
    return int(seed)


class RandomSource:
    """Deterministic bit stream identified by a seed and a position.

    A source is owned by a single draw; combinators hand independent
    children to their parts through :meth:`fork` so that one part drawing
    more or fewer bits does not shift the values of its siblings.
    """

    def __init__(self, seed: int, filter_retry_limit: int = DEFAULT_FILTER_RETRY_LIMIT):
        self.seed = seed
        self.filter_retry_limit = filter_retry_limit
        self._rng = Random(seed)
        self._position = 0
        self._forks = 0

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed}, position={self._position})"

    @property
    def position(self) -> int:
        """Number of bits consumed so far."""
        return self._position

    def next_bits(self, n_bits: int) -> int:
        if n_bits < 0:
            raise InvalidArgument(f"n_bits must be non-negative, got {n_bits}")
        if n_bits == 0:
            return 0
        self._position += n_bits
        return self._rng.getrandbits(n_bits)

    def fork(self) -> "RandomSource":
        """Return an independent child source. Does not consume parent bits."""
        child_seed = derive_seed(self.seed, "fork", self._forks)
        self._forks += 1
        return RandomSource(child_seed, self.filter_retry_limit)

    def replica(self) -> "RandomSource":
        """Return a fresh source replaying this one's stream from the start."""
        return RandomSource(self.seed, self.filter_retry_limit)

    def integer(self, lo: int, hi: int) -> int:
        """Uniform integer in ``[lo, hi]`` by rejection sampling."""
        if lo > hi:
            raise InvalidArgument(f"Empty range [{lo}, {hi}]")
        span = hi - lo
        if span == 0:
            return lo
        bits = span.bit_length()
        while True:
            candidate = self.next_bits(bits)
            if candidate <= span:
                return lo + candidate

    def unit(self) -> float:
        """Uniform float in ``[0, 1)``."""
        return self.next_bits(_UNIT_BITS) / (1 << _UNIT_BITS)

    def boolean(self, p: float = 0.5) -> bool:
        return self.unit() < p

    def weighted_index(self, weights: Sequence[float]) -> int:
        """Pick an index with probability proportional to its weight."""
        total = float(sum(weights))
        if total <= 0:
            raise InvalidArgument("Weights must sum to a positive value")
        point = self.unit() * total
        acc = 0.0
        for i, w in enumerate(weights):
            acc += w
            if point < acc:
                return i
        # Float rounding can leave point == total; fall back to the last positive weight.
        return max(i for i, w in enumerate(weights) if w > 0)

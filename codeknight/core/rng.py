"""Seedable RNG wrapper so encounters can be replayed in tests."""

from __future__ import annotations

from random import Random
from typing import Optional, Sequence, TypeVar

T = TypeVar("T")


class RNG:
    """Thin wrapper around random.Random."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self._random = Random(seed)

    def randint(self, a: int, b: int) -> int:
        """Return N such that a <= N <= b."""
        return self._random.randint(a, b)

    def random(self) -> float:
        return self._random.random()

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise ValueError("Cannot choose from an empty sequence.")
        return self._random.choice(seq)

"""A-Res weighted reservoir for a single group.

Every record with weight ``w > 0`` gets the key ``ln(u) / w`` for
``u ~ Uniform(0, 1)`` (drawn as ``-E / w`` with ``E ~ Exp(1)``). The
reservoir keeps the ``k`` largest keys. Because a record's key depends only
on its own draw, merging two reservoirs is the union of their candidates cut
back to the best ``k``; the result does not depend on how the input was
partitioned or in which order partials arrive. Unweighted sampling is the
same procedure with every weight equal to ``1.0``.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator

import numpy as np

_TIEBREAK_HIGH = 2**63 - 1


@dataclass(order=True, frozen=True)
class Candidate:
    """A record ranked by ``(key, tiebreak)``; the record is never compared."""

    key: float
    tiebreak: int
    record: Any = field(compare=False)


def draw_candidate(record: Any, weight: float, rng: np.random.Generator) -> Candidate:
    """Rank *record* with an A-Res log key.

    Raises:
        ValueError: If *weight* is not positive.
    """
    if not weight > 0.0:
        raise ValueError(f"weight must be > 0, got {weight}")
    key = -rng.standard_exponential() / weight
    tiebreak = int(rng.integers(0, _TIEBREAK_HIGH))
    return Candidate(key=float(key), tiebreak=tiebreak, record=record)


class Reservoir:
    """Bounded min-heap holding the ``capacity`` best-ranked candidates.

    Attributes:
        capacity: Maximum number of retained candidates (``k``).
        n_seen: Number of eligible records offered, including those offered
            to reservoirs merged into this one.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.n_seen = 0
        self._heap: list[Candidate] = []

    def add(self, record: Any, weight: float, rng: np.random.Generator) -> bool:
        """Draw a key for *record* and offer it. Returns ``True`` if retained."""
        return self.offer(draw_candidate(record, weight, rng))

    def offer(self, candidate: Candidate) -> bool:
        """Offer an already-ranked candidate. Returns ``True`` if retained."""
        self.n_seen += 1
        if self.capacity == 0:
            return False
        if len(self._heap) < self.capacity:
            heapq.heappush(self._heap, candidate)
            return True
        if candidate > self._heap[0]:
            heapq.heapreplace(self._heap, candidate)
            return True
        return False

    def merge(self, other: Reservoir) -> Reservoir:
        """Return a new reservoir equivalent to one fed both inputs.

        Raises:
            ValueError: If the capacities differ.
        """
        if other.capacity != self.capacity:
            raise ValueError(
                f"Cannot merge reservoirs of different capacity "
                f"({self.capacity} vs {other.capacity})"
            )
        merged = Reservoir(self.capacity)
        merged._heap = heapq.nlargest(self.capacity, self._heap + other._heap)
        heapq.heapify(merged._heap)
        merged.n_seen = self.n_seen + other.n_seen
        return merged

    @classmethod
    def merge_all(cls, reservoirs: Iterable[Reservoir], capacity: int) -> Reservoir:
        """Merge any number of partial reservoirs of the same capacity."""
        merged = cls(capacity)
        for reservoir in reservoirs:
            merged = merged.merge(reservoir)
        return merged

    @property
    def candidates(self) -> list[Candidate]:
        """Retained candidates, best first."""
        return sorted(self._heap, reverse=True)

    def records(self) -> list[Any]:
        """Retained records, best first."""
        return [c.record for c in self.candidates]

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.records())

    def __repr__(self) -> str:
        return (
            f"Reservoir(capacity={self.capacity}, "
            f"retained={len(self._heap)}, seen={self.n_seen})"
        )

"""Per-group reservoirs with partition-local combine and cross-partition merge."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

import numpy as np

from recsample.grouping import GroupKey
from recsample.reservoir.base import Candidate, Reservoir


class ReservoirCombiner:
    """One :class:`Reservoir` per group key, created lazily.

    A combiner built from one partition is a *partial*; partials for the same
    key are merged after the shuffle. Memory grows as ``O(G * k)`` for ``G``
    distinct keys seen, so grouping fields should have bounded cardinality.

    Attributes:
        capacity: Per-group sample size ``k``.
        n_excluded: Records dropped because their weight was not positive.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self.capacity = capacity
        self.n_excluded = 0
        self._reservoirs: dict[GroupKey, Reservoir] = {}

    def reservoir(self, key: GroupKey) -> Reservoir:
        """Return the reservoir for *key*, creating it on first use."""
        reservoir = self._reservoirs.get(key)
        if reservoir is None:
            reservoir = self._reservoirs[key] = Reservoir(self.capacity)
        return reservoir

    def add(self, key: GroupKey, record: Any, weight: float, rng: np.random.Generator) -> bool:
        """Offer *record* to the reservoir for *key*.

        Non-positive weights have zero selection probability: the record is
        counted in :attr:`n_excluded` and never ranked.
        """
        if not weight > 0.0:
            self.n_excluded += 1
            return False
        return self.reservoir(key).add(record, weight, rng)

    def offer(self, key: GroupKey, candidate: Candidate) -> bool:
        return self.reservoir(key).offer(candidate)

    def merge_reservoir(self, key: GroupKey, partial: Reservoir) -> None:
        """Fold a partial reservoir for *key* into this combiner."""
        current = self._reservoirs.get(key)
        if current is None:
            current = Reservoir(self.capacity)
        self._reservoirs[key] = current.merge(partial)

    def merge(self, other: ReservoirCombiner) -> ReservoirCombiner:
        """Return a new combiner holding the key-wise merge of both inputs."""
        if other.capacity != self.capacity:
            raise ValueError(
                f"Cannot merge combiners of different capacity "
                f"({self.capacity} vs {other.capacity})"
            )
        merged = ReservoirCombiner(self.capacity)
        for source in (self, other):
            for key, reservoir in source.items():
                merged.merge_reservoir(key, reservoir)
            merged.n_excluded += source.n_excluded
        return merged

    @classmethod
    def merge_all(cls, combiners: Iterable[ReservoirCombiner], capacity: int) -> ReservoirCombiner:
        merged = cls(capacity)
        for combiner in combiners:
            merged = merged.merge(combiner)
        return merged

    def items(self) -> Iterator[tuple[GroupKey, Reservoir]]:
        return iter(self._reservoirs.items())

    def keys(self) -> list[GroupKey]:
        return sorted(self._reservoirs)

    def __getitem__(self, key: GroupKey) -> Reservoir:
        return self._reservoirs[key]

    def __contains__(self, key: object) -> bool:
        return key in self._reservoirs

    def __len__(self) -> int:
        return len(self._reservoirs)

    @property
    def n_seen(self) -> int:
        return sum(r.n_seen for r in self._reservoirs.values())

    def extract(self) -> Iterator[Any]:
        """Yield retained records in sorted key order, best-ranked first per key."""
        for key in self.keys():
            yield from self._reservoirs[key].records()

"""Independent per-record (Bernoulli) sampling."""

from __future__ import annotations

from typing import Any, Iterable, Iterator

import numpy as np


class BernoulliSampler:
    """Keep each record independently with probability ``probability``.

    Expected output size is ``p * N`` with variance ``N * p * (1 - p)``.
    There is no reservoir and nothing to merge across partitions.
    """

    def __init__(self, probability: float) -> None:
        if not 0.0 < probability < 1.0:
            raise ValueError(f"probability must be in (0, 1), got {probability}")
        self.probability = probability

    def filter(self, records: Iterable[Any], rng: np.random.Generator) -> Iterator[Any]:
        """Lazily yield the retained subset of *records*."""
        p = self.probability
        for record in records:
            if rng.random() < p:
                yield record

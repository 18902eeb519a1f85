"""Evaluation utilities for sampler output.

These helpers turn repeated sampling trials into inclusion-frequency tables
and goodness-of-fit checks. They depend only on ``numpy``, ``pandas`` and
``scipy`` and are used to verify the probability guarantees of a sampler.
"""

from __future__ import annotations

from collections import Counter
from typing import Hashable, Iterable, Sequence

import numpy as np
import pandas as pd
from scipy.stats import chisquare


def inclusion_frequencies(
    trials: Iterable[Iterable[Hashable]],
    population: Sequence[Hashable],
) -> pd.DataFrame:
    """Count how often each population item was selected across trials.

    Args:
        trials: One iterable of selected items per trial.
        population: Every item that could have been selected, in the order
            rows should appear in the result.

    Returns:
        ``pandas.DataFrame`` with columns ``item``, ``count`` and
        ``frequency`` (count divided by the number of trials).
    """
    counts: Counter[Hashable] = Counter()
    n_trials = 0
    for selected in trials:
        n_trials += 1
        counts.update(set(selected))
    if n_trials == 0:
        raise ValueError("At least one trial is required")
    rows = [
        {"item": item, "count": counts.get(item, 0), "frequency": counts.get(item, 0) / n_trials}
        for item in population
    ]
    return pd.DataFrame(rows, columns=["item", "count", "frequency"])


def expected_inclusion(weights: Sequence[float], k: int) -> np.ndarray:
    """Exact inclusion probabilities for ``k = 1`` or equal weights.

    Returns ``w_i / sum(w)`` when ``k == 1`` and ``min(k, N) / N`` when every
    weight is equal; other cases have no closed form.

    Raises:
        ValueError: For unequal weights with ``k > 1``.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.size == 0:
        return w
    if k == 1:
        return w / w.sum()
    if np.all(w == w[0]):
        return np.full(w.size, min(k, w.size) / w.size)
    raise ValueError("Closed-form inclusion probabilities need k == 1 or equal weights")


def uniformity_pvalue(counts: Sequence[int] | pd.Series) -> float:
    """Chi-square p-value for the hypothesis that all counts share one rate.

    Returns ``1.0`` when there are fewer than two categories or no counts.
    """
    observed = np.asarray(counts, dtype=np.float64)
    if observed.size < 2 or observed.sum() == 0:
        return 1.0
    return float(chisquare(observed).pvalue)

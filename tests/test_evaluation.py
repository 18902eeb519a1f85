"""Tests for sampler evaluation helpers."""

from __future__ import annotations

import numpy as np
import pytest

from recsample.evaluation import expected_inclusion, inclusion_frequencies, uniformity_pvalue


def test_inclusion_frequencies_counts_each_trial_once() -> None:
    trials = [["a", "b"], ["a", "a"], []]
    freq = inclusion_frequencies(trials, population=["a", "b", "c"])
    assert freq["count"].tolist() == [2, 1, 0]
    assert freq["frequency"].tolist() == pytest.approx([2 / 3, 1 / 3, 0.0])


def test_inclusion_frequencies_requires_trials() -> None:
    with pytest.raises(ValueError):
        inclusion_frequencies([], population=["a"])


def test_expected_inclusion() -> None:
    assert expected_inclusion([1.0, 3.0], 1) == pytest.approx([0.25, 0.75])
    assert expected_inclusion([2.0] * 4, 3) == pytest.approx([0.75] * 4)
    assert expected_inclusion([2.0] * 2, 3) == pytest.approx([1.0, 1.0])
    with pytest.raises(ValueError):
        expected_inclusion([1.0, 2.0], 2)


def test_uniformity_pvalue_separates_flat_and_skewed_counts() -> None:
    assert uniformity_pvalue([100, 98, 103, 99]) > 0.5
    assert uniformity_pvalue(np.array([10, 10, 200, 10])) < 1e-6
    assert uniformity_pvalue([5]) == 1.0

"""Reservoir samplers."""

from recsample.reservoir.base import Candidate, Reservoir, draw_candidate
from recsample.reservoir.bernoulli import BernoulliSampler
from recsample.reservoir.combiner import ReservoirCombiner

__all__ = [
    "Candidate",
    "Reservoir",
    "draw_candidate",
    "ReservoirCombiner",
    "BernoulliSampler",
]

"""Sampling plans: the closed set of execution paths chosen once per run.

A plan is resolved from a :class:`~recsample.config.SampleConfig` and the
record schema before any record is read. Each size plan owns its own
local-combine loop, so the per-record path carries no mode checks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Iterator

import numpy as np

from recsample.config import SampleConfig
from recsample.grouping import GLOBAL_KEY, GroupKeyExtractor
from recsample.records import Record, Schema
from recsample.reservoir.bernoulli import BernoulliSampler
from recsample.reservoir.combiner import ReservoirCombiner
from recsample.weighting import WeightAssigner


@dataclass
class LocalPartial:
    """Output of one local-combine task.

    Attributes:
        partition: Index of the partition this partial was built from.
        combiner: Per-key partial reservoirs.
        records_read: Records consumed from the partition.
        weights_defaulted: Records whose weight value was replaced by the default.
    """

    partition: int
    combiner: ReservoirCombiner
    records_read: int = 0
    weights_defaulted: int = 0


class SamplingPlan(ABC):
    """Base interface for sampling plans."""

    name: str = "plan"


class SizePlan(SamplingPlan):
    """Fixed-size A-Res sampling; subclasses differ only in their local loop."""

    def __init__(self, size: int) -> None:
        self.size = size

    @abstractmethod
    def local_combine(
        self, partition: int, records: Iterable[Record], rng: np.random.Generator
    ) -> LocalPartial:
        """Build partial reservoirs for one partition."""


class UniformSizePlan(SizePlan):
    """``size`` records uniformly at random from the whole input."""

    name = "uniform-size"

    def local_combine(
        self, partition: int, records: Iterable[Record], rng: np.random.Generator
    ) -> LocalPartial:
        combiner = ReservoirCombiner(self.size)
        n_read = 0
        for record in records:
            n_read += 1
            combiner.add(GLOBAL_KEY, record, 1.0, rng)
        return LocalPartial(partition, combiner, records_read=n_read)


class WeightedSizePlan(SizePlan):
    """``size`` records from the whole input, weighted by a record field."""

    name = "weighted-size"

    def __init__(self, size: int, weigher: WeightAssigner) -> None:
        super().__init__(size)
        self.weigher = weigher

    def local_combine(
        self, partition: int, records: Iterable[Record], rng: np.random.Generator
    ) -> LocalPartial:
        combiner = ReservoirCombiner(self.size)
        n_read = n_defaulted = 0
        weigh = self.weigher.weigh
        for record in records:
            n_read += 1
            weight, substituted = weigh(record)
            n_defaulted += substituted
            combiner.add(GLOBAL_KEY, record, weight, rng)
        return LocalPartial(partition, combiner, records_read=n_read, weights_defaulted=n_defaulted)


class GroupedSizePlan(SizePlan):
    """``size`` records per distinct group key, optionally weighted."""

    name = "grouped-size"

    def __init__(self, size: int, weigher: WeightAssigner, grouper: GroupKeyExtractor) -> None:
        super().__init__(size)
        self.weigher = weigher
        self.grouper = grouper

    def local_combine(
        self, partition: int, records: Iterable[Record], rng: np.random.Generator
    ) -> LocalPartial:
        combiner = ReservoirCombiner(self.size)
        n_read = n_defaulted = 0
        weigh = self.weigher.weigh
        key_of = self.grouper
        for record in records:
            n_read += 1
            weight, substituted = weigh(record)
            n_defaulted += substituted
            combiner.add(key_of(record), record, weight, rng)
        return LocalPartial(partition, combiner, records_read=n_read, weights_defaulted=n_defaulted)


class ProbabilityPlan(SamplingPlan):
    """Keep each record independently with a fixed probability."""

    name = "probability"

    def __init__(self, probability: float) -> None:
        self.sampler = BernoulliSampler(probability)

    def filter(self, records: Iterable[Record], rng: np.random.Generator) -> Iterator[Record]:
        return self.sampler.filter(records, rng)


def resolve_plan(config: SampleConfig, schema: Schema | None) -> SamplingPlan:
    """Pick the plan for *config* and validate its fields against *schema*.

    Raises:
        ConfigurationError: If the configuration is invalid.
        SchemaError: If weight or grouping fields do not fit the schema.
    """
    config.validate()
    if not config.is_size_mode:
        return ProbabilityPlan(config.probability)

    weigher = WeightAssigner(
        schema,
        weight_field=config.weight_field,
        invert=config.weight_invert,
        default_weight=config.weight_default,
    )
    grouper = GroupKeyExtractor.from_names(schema, config.group_fields)
    if grouper.is_grouped:
        return GroupedSizePlan(config.size, weigher, grouper)
    if weigher.is_weighted:
        return WeightedSizePlan(config.size, weigher)
    return UniformSizePlan(config.size)

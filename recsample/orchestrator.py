"""Two-stage sampling driver: SampleOrchestrator plus the sample_records shim.

The primary API is :class:`SampleOrchestrator`: construct it with a
:class:`~recsample.config.SampleConfig` (validated immediately), call
:meth:`SampleOrchestrator.run` on a :class:`~recsample.records.Records`
source, then hand the result to a sink with :meth:`SampleOrchestrator.write`.

Size-based runs go through four stages:

1. local combine: every partition builds per-key partial reservoirs with its
   own random generator;
2. shuffle: partials are bucketed by a stable hash of their key, so every key
   is owned by exactly one merge task;
3. global merge: each merge task folds all partials of its keys together;
4. extraction: final reservoirs are flattened in sorted key order.

Probability runs skip the combine and merge stages and return a lazy filter
over the partitions.
"""

from __future__ import annotations

import logging
import zlib
from concurrent.futures import Executor
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Iterable, Iterator, Protocol

import numpy as np
from tqdm import tqdm

from recsample.config import SampleConfig
from recsample.errors import ExecutionError, SamplingError
from recsample.grouping import GroupKey
from recsample.plans import LocalPartial, ProbabilityPlan, SamplingPlan, SizePlan, resolve_plan
from recsample.records import Record, Records, Schema
from recsample.reservoir.base import Reservoir
from recsample.reservoir.combiner import ReservoirCombiner

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    """Lifecycle of a sampling run."""

    CONFIGURED = "configured"
    LOCAL_COMBINE = "local_combine"
    SHUFFLE = "shuffle"
    GLOBAL_MERGE = "global_merge"
    EXTRACTED = "extracted"
    WRITTEN = "written"
    FAILED = "failed"


class RecordSink(Protocol):
    """Destination for sampled records."""

    def write(self, records: Iterable[Record], schema: Schema | None) -> None: ...


@dataclass
class SampleStats:
    """Counters collected during a run.

    For probability runs the counters fill in as the result is consumed.

    Attributes:
        plan: Name of the sampling plan used.
        partitions: Partitions processed.
        records_read: Input records consumed.
        records_excluded: Records dropped for a non-positive final weight.
        weights_defaulted: Records whose weight value was replaced by the default.
        groups: Distinct group keys in the final sample.
        records_sampled: Records in the output.
    """

    plan: str = ""
    partitions: int = 0
    records_read: int = 0
    records_excluded: int = 0
    weights_defaulted: int = 0
    groups: int = 0
    records_sampled: int = 0


@dataclass
class SampleResult:
    """Sampled records, their schema, and run counters."""

    records: Iterable[Record]
    schema: Schema | None
    stats: SampleStats = field(default_factory=SampleStats)


# ---------------------------------------------------------------------------
# Task functions (module level so process pools can pickle them)
# ---------------------------------------------------------------------------


def partition_rng(seed: int | None, partition: int) -> np.random.Generator:
    """Independent generator for *partition*, derived from the root *seed*."""
    root = np.random.SeedSequence(seed)
    return np.random.default_rng(np.random.SeedSequence(root.entropy, spawn_key=(partition,)))


def _local_task(args: tuple[SizePlan, int, Iterable[Record], Any]) -> LocalPartial:
    plan, partition, records, entropy = args
    return plan.local_combine(partition, records, partition_rng(entropy, partition))


def _merge_task(args: tuple[int, list[tuple[GroupKey, Reservoir]]]) -> ReservoirCombiner:
    capacity, partials = args
    merged = ReservoirCombiner(capacity)
    for key, reservoir in partials:
        merged.merge_reservoir(key, reservoir)
    return merged


def merge_bucket(key: GroupKey, n_buckets: int) -> int:
    """Stable merge-task assignment for *key* (independent of ``PYTHONHASHSEED``)."""
    return zlib.crc32(key.encode("utf-8")) % n_buckets


# ---------------------------------------------------------------------------
# SampleOrchestrator
# ---------------------------------------------------------------------------


class SampleOrchestrator:
    """Runs one sampling job through local combine, shuffle, merge, and extraction.

    Attributes:
        config: Validated run configuration.
        executor: Optional executor running local and merge tasks; tasks run
            serially in the calling thread when ``None``.
        stage: Current :class:`Stage`.
        plan: Plan resolved by the last :meth:`run`.
    """

    def __init__(self, config: SampleConfig, executor: Executor | None = None) -> None:
        config.validate()
        self.config = config
        self.executor = executor
        self.stage = Stage.CONFIGURED
        self.plan: SamplingPlan | None = None
        # Fixed per orchestrator so every partition derives from one root.
        self._entropy = np.random.SeedSequence(config.seed).entropy

    # ------------------------------------------------------------------
    # Core API
    # ------------------------------------------------------------------

    def run(self, records: Records) -> SampleResult:
        """Sample *records* according to the configuration.

        Raises:
            SchemaError: If weight or grouping fields do not fit the schema.
            ExecutionError: If reading partitions or running tasks fails.
        """
        try:
            self.plan = resolve_plan(self.config, records.schema)
            logger.info(f"Sampling with plan {self.plan.name}")
            if isinstance(self.plan, ProbabilityPlan):
                return self._run_probability(self.plan, records)
            return self._run_size(self.plan, records)
        except SamplingError:
            self.stage = Stage.FAILED
            raise
        except Exception as exc:
            failed_in = self.stage
            self.stage = Stage.FAILED
            raise ExecutionError(f"Sampling failed during {failed_in.value}: {exc}") from exc

    def write(self, result: SampleResult, sink: RecordSink) -> None:
        """Hand the sample to *sink*; the run is complete once this returns."""
        if self.stage is not Stage.EXTRACTED:
            raise ExecutionError(f"Cannot write a sample in stage {self.stage.value}")
        try:
            sink.write(result.records, result.schema)
        except SamplingError:
            self.stage = Stage.FAILED
            raise
        except Exception as exc:
            self.stage = Stage.FAILED
            raise ExecutionError(f"Writing the sample failed: {exc}") from exc
        self._transition(Stage.WRITTEN)
        s = result.stats
        logger.info(
            f"Wrote {s.records_sampled:,} of {s.records_read:,} records "
            f"({s.groups:,} groups, {s.records_excluded:,} excluded, "
            f"{s.weights_defaulted:,} default weights)"
        )

    # ------------------------------------------------------------------
    # Internal stages
    # ------------------------------------------------------------------

    def _transition(self, stage: Stage) -> None:
        logger.info(f"Stage {self.stage.value} -> {stage.value}")
        self.stage = stage

    def _map(self, fn: Callable[[Any], Any], tasks: Iterable[Any]) -> Iterator[Any]:
        if self.executor is None:
            return map(fn, tasks)
        return self.executor.map(fn, tasks)

    def _run_size(self, plan: SizePlan, records: Records) -> SampleResult:
        stats = SampleStats(plan=plan.name)

        self._transition(Stage.LOCAL_COMBINE)
        tasks = (
            (plan, partition, rows, self._entropy)
            for partition, rows in enumerate(records.partitions)
        )
        partials: list[LocalPartial] = []
        progress = tqdm(
            self._map(_local_task, tasks),
            desc="local combine",
            disable=not self.config.show_progress,
        )
        for partial in progress:
            stats.partitions += 1
            stats.records_read += partial.records_read
            stats.records_excluded += partial.combiner.n_excluded
            stats.weights_defaulted += partial.weights_defaulted
            partials.append(partial)
        logger.info(f"Combined {stats.records_read:,} records from {stats.partitions} partitions")

        self._transition(Stage.SHUFFLE)
        n_buckets = self.config.merge_partitions
        buckets: list[list[tuple[GroupKey, Reservoir]]] = [[] for _ in range(n_buckets)]
        for partial in partials:
            for key, reservoir in partial.combiner.items():
                buckets[merge_bucket(key, n_buckets)].append((key, reservoir))
        del partials

        self._transition(Stage.GLOBAL_MERGE)
        merged = list(self._map(_merge_task, ((plan.size, bucket) for bucket in buckets)))

        final = ReservoirCombiner(plan.size)
        for combiner in merged:
            for key, reservoir in combiner.items():
                final.merge_reservoir(key, reservoir)
        stats.groups = len(final)
        stats.records_sampled = sum(len(reservoir) for _, reservoir in final.items())

        self._transition(Stage.EXTRACTED)
        return SampleResult(records=list(final.extract()), schema=records.schema, stats=stats)

    def _run_probability(self, plan: ProbabilityPlan, records: Records) -> SampleResult:
        stats = SampleStats(plan=plan.name)
        entropy = self._entropy

        def _stream() -> Iterator[Record]:
            for partition, rows in enumerate(records.partitions):
                stats.partitions += 1
                rng = partition_rng(entropy, partition)
                for record in plan.filter(_counted(rows), rng):
                    stats.records_sampled += 1
                    yield record

        def _counted(rows: Iterable[Record]) -> Iterator[Record]:
            for row in rows:
                stats.records_read += 1
                yield row

        self._transition(Stage.EXTRACTED)
        return SampleResult(records=_stream(), schema=records.schema, stats=stats)


# ---------------------------------------------------------------------------
# Functional API
# ---------------------------------------------------------------------------


def sample_records(
    records: Records,
    config: SampleConfig,
    sink: RecordSink | None = None,
    executor: Executor | None = None,
) -> SampleResult:
    """Run one sampling job and optionally write it.

    This is a thin wrapper around :class:`SampleOrchestrator`.

    Args:
        records: Partitioned record source.
        config: Run configuration.
        sink: Optional destination; when given, the sample is written before
            returning (and a lazy result is consumed).
        executor: Optional executor for local and merge tasks.

    Returns:
        The :class:`SampleResult`.
    """
    orchestrator = SampleOrchestrator(config, executor=executor)
    result = orchestrator.run(records)
    if sink is not None:
        orchestrator.write(result, sink)
    return result

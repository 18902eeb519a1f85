"""recsample: reservoir sampling over large, partitioned record sets.

Public API
----------
The entire usable surface is importable directly from ``recsample``::

    from recsample import SampleOrchestrator, sample_records, SampleConfig, Records
    from recsample.reservoir import Reservoir, ReservoirCombiner
    from recsample.io import read_csv_records, CsvSink
"""

from __future__ import annotations

# Configuration
from recsample.config import SampleConfig

# Errors
from recsample.errors import (
    ConfigurationError,
    DataError,
    ExecutionError,
    SamplingError,
    SchemaError,
)

# Record components
from recsample.grouping import GroupKeyExtractor, encode_key

# Driver: primary and functional APIs
from recsample.orchestrator import (
    SampleOrchestrator,
    SampleResult,
    SampleStats,
    Stage,
    sample_records,
)
from recsample.records import Field, FieldType, Record, Records, Schema

# Sampling core
from recsample.reservoir import BernoulliSampler, Reservoir, ReservoirCombiner
from recsample.weighting import WeightAssigner

__version__ = "0.1.0"

__all__ = [
    # Primary abstractions
    "SampleOrchestrator",
    "SampleConfig",
    "SampleResult",
    "SampleStats",
    "Stage",
    "Records",
    "Record",
    "Schema",
    "Field",
    "FieldType",
    # Functional API
    "sample_records",
    # Components
    "WeightAssigner",
    "GroupKeyExtractor",
    "encode_key",
    "Reservoir",
    "ReservoirCombiner",
    "BernoulliSampler",
    # Errors
    "SamplingError",
    "ConfigurationError",
    "SchemaError",
    "DataError",
    "ExecutionError",
    "__version__",
]

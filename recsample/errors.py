"""Error taxonomy for recsample."""

from __future__ import annotations


class SamplingError(Exception):
    """Base class for all errors raised by recsample."""


class ConfigurationError(SamplingError, ValueError):
    """Invalid or contradictory sampling options; raised before any data is read."""


class SchemaError(SamplingError):
    """Weight or grouping fields missing from, or mistyped in, the record schema."""


class DataError(SamplingError):
    """A record could not be interpreted against its schema."""


class ExecutionError(SamplingError):
    """Failure while reading partitions, running tasks, or writing the sample."""

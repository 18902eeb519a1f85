"""Sampling run configuration."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

from recsample.errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class SampleConfig:
    """Options for one sampling run.

    Exactly one of ``size`` and ``probability`` must be active. ``0`` (or
    ``0.0``) means unset for both, matching the command-line defaults.

    Attributes:
        size: Records to keep per group (or overall when ungrouped).
        probability: Independent retention probability, in ``(0, 1)``.
        group_fields: Ordered field names defining sampling groups. Size mode only.
        weight_field: Numeric field used as the sampling weight. Size mode only.
        weight_invert: Prefer small weight-field values instead of large ones.
        weight_default: Weight used when the field value is ``<= 0`` or invalid.
        seed: Root seed; partition seeds are derived from it. ``None`` draws
            fresh entropy.
        merge_partitions: Number of key-partitioned merge tasks after the shuffle.
        show_progress: Display a progress bar over local-combine tasks.
    """

    size: int = 0
    probability: float = 0.0
    group_fields: list[str] = field(default_factory=list)
    weight_field: str | None = None
    weight_invert: bool = False
    weight_default: float = 0.0
    seed: int | None = None
    merge_partitions: int = 1
    show_progress: bool = False

    @property
    def is_size_mode(self) -> bool:
        return self.size > 0

    def validate(self) -> None:
        """Check option consistency without touching any data.

        Raises:
            ConfigurationError: On contradictory or out-of-range options.
        """
        if self.size < 0:
            raise ConfigurationError(f"size must be >= 0, got {self.size}")
        if math.isnan(self.probability) or self.probability < 0.0:
            raise ConfigurationError(f"probability must be >= 0, got {self.probability}")
        if self.size > 0 and self.probability > 0.0:
            raise ConfigurationError("size and probability are mutually exclusive options.")
        if self.size == 0 and not 0.0 < self.probability < 1.0:
            raise ConfigurationError(
                f"Invalid input args: sample size = {self.size}, "
                f"sample prob = {self.probability:.4f}"
            )
        if not math.isfinite(self.weight_default) or self.weight_default < 0.0:
            raise ConfigurationError(f"weight_default must be >= 0, got {self.weight_default}")
        if self.merge_partitions < 1:
            raise ConfigurationError(
                f"merge_partitions must be >= 1, got {self.merge_partitions}"
            )
        if not self.is_size_mode and (self.group_fields or self.weight_field):
            logger.warning("group_fields and weight_field are ignored in probability mode")

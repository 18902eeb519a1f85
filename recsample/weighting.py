"""Per-record weights for weighted reservoir sampling."""

from __future__ import annotations

import logging
import math
from typing import Any

from recsample.errors import ConfigurationError, SchemaError
from recsample.records import Record, Schema

logger = logging.getLogger(__name__)


def _as_float(value: Any) -> float | None:
    """Return *value* as a finite float, or ``None`` if it is not one."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


class WeightAssigner:
    """Derive a sampling weight from a numeric record field.

    Values that are missing, unparseable, non-finite, or ``<= 0`` are replaced
    by ``default_weight``. With ``invert`` set, the effective weight is the
    reciprocal of the (substituted) value, so small raw values are preferred.
    A final weight of zero gives the record zero probability of selection.
    """

    def __init__(
        self,
        schema: Schema | None,
        weight_field: str | None = None,
        invert: bool = False,
        default_weight: float = 0.0,
    ) -> None:
        """Validate the weight field against the schema.

        Args:
            schema: Schema of the incoming records.
            weight_field: Name of the numeric weight field, or ``None`` for
                unweighted sampling.
            invert: Prefer records with small weight-field values.
            default_weight: Substitute for non-positive or invalid values.

        Raises:
            ConfigurationError: If ``default_weight`` is negative or not finite.
            SchemaError: If the field is missing or not numeric.
        """
        if not math.isfinite(default_weight) or default_weight < 0:
            raise ConfigurationError(f"default weight must be >= 0, got {default_weight}")
        self.weight_field = weight_field
        self.invert = invert
        self.default_weight = float(default_weight)
        self._index: int | None = None
        if weight_field is not None:
            if schema is None:
                raise SchemaError(f"Weight field {weight_field!r} requires a record schema")
            self._index = schema.index_of(weight_field)
            if not schema.is_numeric(weight_field):
                raise SchemaError(f"Non-numeric weight field: {weight_field}")

    @property
    def is_weighted(self) -> bool:
        return self._index is not None

    def weigh(self, record: Record) -> tuple[float, bool]:
        """Return ``(weight, substituted)`` for *record*.

        ``substituted`` is ``True`` when the default weight replaced the raw
        field value.
        """
        if self._index is None:
            return 1.0, False
        value = _as_float(record[self._index])
        substituted = value is None or value <= 0.0
        if substituted:
            logger.debug(f"Default weight for {self.weight_field}={record[self._index]!r}")
            value = self.default_weight
        if self.invert:
            value = 1.0 / value if value > 0.0 else 0.0
        return value, substituted

    def __repr__(self) -> str:
        return (
            f"WeightAssigner(weight_field={self.weight_field!r}, invert={self.invert}, "
            f"default_weight={self.default_weight})"
        )

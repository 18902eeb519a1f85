"""Group keys for per-group sampling."""

from __future__ import annotations

import math
from typing import Any, Sequence

from recsample.errors import SchemaError
from recsample.records import Record, Schema

GroupKey = str

GLOBAL_KEY: GroupKey = ""

_NULL = "-"
_SEPARATOR = "|"


def _canonical(value: Any) -> str | None:
    """Canonical text of a field value, or ``None`` for null/NaN."""
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalars
        value = value.item()
    if value is None:
        return None
    if isinstance(value, float):
        return None if math.isnan(value) else repr(value)
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="backslashreplace")
    return str(value)


def encode_key(values: Sequence[Any]) -> GroupKey:
    """Encode field values into an unambiguous group key.

    Each component is length-prefixed (``"3:abc"``) and nulls render as
    ``"-"``, so no two distinct value tuples share a key.

    Examples:
        >>> encode_key(["a|b", "c"])
        '3:a|b|1:c'
        >>> encode_key(["a", "b|c"])
        '1:a|3:b|c'
    """
    parts = []
    for value in values:
        text = _canonical(value)
        parts.append(_NULL if text is None else f"{len(text)}:{text}")
    return _SEPARATOR.join(parts)


class GroupKeyExtractor:
    """Extract a :data:`GroupKey` from a fixed, ordered set of field positions."""

    def __init__(self, field_ids: Sequence[int] = ()) -> None:
        self.field_ids = list(field_ids)

    @classmethod
    def from_names(cls, schema: Schema | None, names: Sequence[str]) -> GroupKeyExtractor:
        """Resolve grouping field names through *schema*.

        Raises:
            SchemaError: If a field is missing or names are given without a schema.
        """
        if not names:
            return cls()
        if schema is None:
            raise SchemaError(f"Grouping fields {list(names)} require a record schema")
        return cls(schema.field_ids(names))

    @property
    def is_grouped(self) -> bool:
        return bool(self.field_ids)

    def __call__(self, record: Record) -> GroupKey:
        if not self.field_ids:
            return GLOBAL_KEY
        return encode_key([record[i] for i in self.field_ids])

    def __repr__(self) -> str:
        return f"GroupKeyExtractor(field_ids={self.field_ids})"

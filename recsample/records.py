"""Record, schema, and partitioned record-source types.

A record is a plain ``tuple`` of field values. The optional :class:`Schema`
names and types each position so weight and grouping fields can be resolved
by name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator, Sequence

import numpy as np
import pandas as pd

from recsample.errors import SchemaError

Record = tuple


class FieldType(str, Enum):
    """Column types understood by the sampler."""

    NUMERIC = "numeric"
    CATEGORICAL = "categorical"
    IDENTIFIER = "identifier"
    IGNORED = "ignored"

    @classmethod
    def parse(cls, text: str) -> FieldType:
        """Parse a header-file type token, accepting common aliases."""
        token = text.strip().lower()
        aliases = {
            "symbolic": cls.CATEGORICAL,
            "string": cls.CATEGORICAL,
            "id": cls.IDENTIFIER,
            "double": cls.NUMERIC,
            "float": cls.NUMERIC,
            "int": cls.NUMERIC,
        }
        if token in aliases:
            return aliases[token]
        try:
            return cls(token)
        except ValueError as exc:
            raise SchemaError(f"Unknown field type: {text!r}") from exc


@dataclass(frozen=True)
class Field:
    """A named, typed column."""

    name: str
    type: FieldType = FieldType.CATEGORICAL


@dataclass(frozen=True)
class Schema:
    """Ordered field list with name → index lookup.

    Attributes:
        fields: Fields in record order.
    """

    fields: tuple[Field, ...]
    _index: dict[str, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: dict[str, int] = {}
        for i, f in enumerate(self.fields):
            if f.name in index:
                raise SchemaError(f"Duplicate field name in schema: {f.name!r}")
            index[f.name] = i
        object.__setattr__(self, "_index", index)

    @classmethod
    def of(cls, *fields: tuple[str, str | FieldType] | str) -> Schema:
        """Build a schema from ``name`` or ``(name, type)`` items."""
        built = []
        for item in fields:
            if isinstance(item, str):
                built.append(Field(item))
            else:
                name, ftype = item
                if not isinstance(ftype, FieldType):
                    ftype = FieldType.parse(ftype)
                built.append(Field(name, ftype))
        return cls(tuple(built))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> Schema:
        """Infer a schema from DataFrame dtypes (numeric columns → ``numeric``)."""
        fields = []
        for name, dtype in df.dtypes.items():
            numeric = pd.api.types.is_numeric_dtype(dtype) and not pd.api.types.is_bool_dtype(dtype)
            fields.append(Field(str(name), FieldType.NUMERIC if numeric else FieldType.CATEGORICAL))
        return cls(tuple(fields))

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    def __len__(self) -> int:
        return len(self.fields)

    def index_of(self, name: str) -> int:
        """Return the position of *name*.

        Raises:
            SchemaError: If the schema has no such field.
        """
        try:
            return self._index[name]
        except KeyError:
            raise SchemaError(f"Unknown field: {name!r}") from None

    def field_ids(self, names: Sequence[str]) -> list[int]:
        """Resolve an ordered list of field names to indices."""
        return [self.index_of(name) for name in names]

    def is_numeric(self, name: str) -> bool:
        return self.fields[self.index_of(name)].type is FieldType.NUMERIC


@dataclass
class Records:
    """A partitioned record source with an optional schema.

    Each partition is processed by exactly one local-combine task, so a
    partition is the unit of parallelism.

    Attributes:
        partitions: Iterable of record iterables. May be a one-shot generator.
        schema: Schema describing every record, or ``None`` for untyped input.
    """

    partitions: Iterable[Iterable[Record]]
    schema: Schema | None = None

    @classmethod
    def from_iterable(
        cls,
        rows: Iterable[Sequence[Any]],
        partition_size: int = 10_000,
        schema: Schema | None = None,
    ) -> Records:
        """Chunk a flat row iterable into partitions of *partition_size* rows."""
        if partition_size < 1:
            raise ValueError("partition_size must be >= 1")

        def _chunks() -> Iterator[list[Record]]:
            chunk: list[Record] = []
            for row in rows:
                chunk.append(tuple(row))
                if len(chunk) == partition_size:
                    yield chunk
                    chunk = []
            if chunk:
                yield chunk

        return cls(partitions=_chunks(), schema=schema)

    @classmethod
    def from_dataframe(
        cls,
        df: pd.DataFrame,
        n_partitions: int = 1,
        schema: Schema | None = None,
    ) -> Records:
        """Split a DataFrame into *n_partitions* contiguous partitions.

        The schema is inferred from the dtypes unless one is given.
        """
        if n_partitions < 1:
            raise ValueError("n_partitions must be >= 1")
        if schema is None:
            schema = Schema.from_dataframe(df)
        bounds = np.array_split(np.arange(len(df)), n_partitions)
        partitions = [
            list(df.iloc[idx].itertuples(index=False, name=None)) for idx in bounds if len(idx) > 0
        ]
        return cls(partitions=partitions, schema=schema)

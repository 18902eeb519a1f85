"""CSV record input/output backed by pandas.

These are thin adapters between files and :class:`~recsample.records.Records`;
the sampler itself never touches storage.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Iterator

import pandas as pd

from recsample.errors import DataError, SchemaError
from recsample.records import Field, FieldType, Record, Records, Schema

logger = logging.getLogger(__name__)


def read_header_file(path: str | Path) -> Schema:
    """Load a schema from a header file.

    One field per line as ``name`` or ``name,type``; blank lines and lines
    starting with ``#`` are skipped. Types default to ``categorical``.

    Raises:
        FileNotFoundError: If *path* does not exist.
        SchemaError: On an unknown type or duplicate name.
    """
    header_path = Path(path)
    if not header_path.exists():
        raise FileNotFoundError(f"Could not find header file at {header_path}")
    fields = []
    with header_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            name, _, type_text = line.partition(",")
            ftype = FieldType.parse(type_text) if type_text.strip() else FieldType.CATEGORICAL
            fields.append(Field(name.strip(), ftype))
    if not fields:
        raise SchemaError(f"Header file {header_path} defines no fields")
    logger.info(f"Loaded {len(fields)} fields from header file {header_path}")
    return Schema(tuple(fields))


def _coerce(chunk: pd.DataFrame, schema: Schema) -> pd.DataFrame:
    """Cast numeric schema columns to float64; unparseable cells become NaN.

    The cast does not depend on what a chunk happens to contain, so the same
    value reads the same in every partition.
    """
    for column, f in zip(chunk.columns, schema.fields):
        if f.type is FieldType.NUMERIC:
            chunk[column] = pd.to_numeric(chunk[column], errors="coerce").astype("float64")
    return chunk


def read_csv_records(
    path: str | Path,
    schema: Schema | None = None,
    has_header: bool = False,
    chunksize: int = 100_000,
    delimiter: str = ",",
) -> Records:
    """Read a delimited text file as partitioned records.

    Each chunk of *chunksize* rows becomes one partition; chunks are read
    lazily, so the returned partitions can be iterated once.

    Args:
        path: Input file (gzip etc. handled by pandas).
        schema: Field names and types. When ``None`` and *has_header* is set,
            the schema is inferred from the header row and the first chunk.
        has_header: Whether the first line is a header row.
        chunksize: Rows per partition.
        delimiter: Field separator.

    Raises:
        FileNotFoundError: If *path* does not exist.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Could not find input file at {csv_path}")
    if chunksize < 1:
        raise ValueError("chunksize must be >= 1")

    header = 0 if has_header else None

    def _reader(dtype: Any = object) -> Any:
        return pd.read_csv(
            csv_path,
            sep=delimiter,
            header=header,
            index_col=False,
            dtype=dtype,
            chunksize=chunksize,
            keep_default_na=True,
        )

    # Only the first chunk is type-inferred; every partition is then read as
    # text and cast through the schema.
    if schema is None and has_header:
        with _reader(dtype=None) as reader:
            first = next(iter(reader), None)
        if first is not None:
            schema = Schema.from_dataframe(first)
            logger.info(f"Inferred schema from {csv_path}: {schema.names}")

    def _partitions() -> Iterator[list[Record]]:
        with _reader() as reader:
            for chunk in reader:
                if schema is not None:
                    if chunk.shape[1] != len(schema):
                        raise DataError(
                            f"{csv_path} has {chunk.shape[1]} columns "
                            f"but the schema has {len(schema)}"
                        )
                    chunk.columns = schema.names
                    chunk = _coerce(chunk, schema)
                chunk = chunk.astype(object).where(chunk.notna(), None)
                yield list(chunk.itertuples(index=False, name=None))

    return Records(partitions=_partitions(), schema=schema)


class CsvSink:
    """Write sampled records to a delimited text file in chunks."""

    def __init__(
        self,
        path: str | Path,
        delimiter: str = ",",
        write_header: bool = True,
        chunksize: int = 100_000,
    ) -> None:
        self.path = Path(path)
        self.delimiter = delimiter
        self.write_header = write_header
        self.chunksize = chunksize
        self.n_written = 0

    def _flush(
        self, target: Path, rows: list[Record], columns: list[str] | None, first: bool
    ) -> None:
        df = pd.DataFrame(rows, columns=columns)
        df.to_csv(
            target,
            sep=self.delimiter,
            index=False,
            header=self.write_header and columns is not None and first,
            mode="w" if first else "a",
        )
        self.n_written += len(rows)

    def write(self, records: Iterable[Record], schema: Schema | None) -> None:
        """Write *records* to ``self.path``.

        Rows go to a temporary file beside the target, which replaces
        ``self.path`` only once every record has been written. If *records*
        raises, the temporary file is removed and ``self.path`` is untouched.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        columns = schema.names if schema is not None else None
        self.n_written = 0
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            first = True
            buffer: list[Record] = []
            for record in records:
                buffer.append(record)
                if len(buffer) >= self.chunksize:
                    self._flush(tmp_path, buffer, columns, first)
                    first = False
                    buffer = []
            if buffer or first:
                self._flush(tmp_path, buffer, columns, first)
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            self.n_written = 0
            raise
        logger.info(f"Wrote {self.n_written:,} records to {self.path}")

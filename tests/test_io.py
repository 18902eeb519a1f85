"""Tests for CSV record input/output and header files."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from recsample.config import SampleConfig
from recsample.errors import DataError, ExecutionError, SchemaError
from recsample.io import CsvSink, read_csv_records, read_header_file
from recsample.orchestrator import sample_records
from recsample.records import FieldType, Records, Schema


@pytest.fixture()
def header_file(tmp_path: Path) -> Path:
    path = tmp_path / "header.csv"
    path.write_text("# customer table\nid,identifier\nregion\nspend,numeric\n", encoding="utf-8")
    return path


def test_read_header_file_parses_names_and_types(header_file: Path) -> None:
    schema = read_header_file(header_file)
    assert schema.names == ["id", "region", "spend"]
    assert [f.type for f in schema.fields] == [
        FieldType.IDENTIFIER,
        FieldType.CATEGORICAL,
        FieldType.NUMERIC,
    ]
    assert schema.is_numeric("spend")


def test_read_header_file_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_header_file(tmp_path / "nope.csv")
    bad = tmp_path / "bad.csv"
    bad.write_text("id,complex\n", encoding="utf-8")
    with pytest.raises(SchemaError):
        read_header_file(bad)


def test_read_csv_records_partitions_and_coerces(tmp_path: Path, header_file: Path) -> None:
    data = tmp_path / "data.csv"
    data.write_text("1,north,2.5\n2,south,\n3,north,abc\n4,east,7\n5,west,1\n", encoding="utf-8")
    records = read_csv_records(data, schema=read_header_file(header_file), chunksize=2)
    partitions = [list(p) for p in records.partitions]
    assert [len(p) for p in partitions] == [2, 2, 1]
    rows = [row for p in partitions for row in p]
    assert rows[0] == ("1", "north", 2.5)
    assert rows[1][2] is None
    assert rows[2][2] is None
    assert rows[3][2] == 7


def test_read_csv_records_infers_schema_from_header_row(tmp_path: Path) -> None:
    data = tmp_path / "data.csv"
    data.write_text("name,score\na,1.5\nb,2.0\n", encoding="utf-8")
    records = read_csv_records(data, has_header=True)
    assert records.schema is not None
    assert records.schema.names == ["name", "score"]
    assert records.schema.is_numeric("score")
    assert not records.schema.is_numeric("name")
    assert [row for p in records.partitions for row in p] == [("a", 1.5), ("b", 2.0)]


def test_read_csv_records_column_mismatch_is_data_error(tmp_path: Path) -> None:
    data = tmp_path / "data.csv"
    data.write_text("1,2\n3,4\n", encoding="utf-8")
    records = read_csv_records(data, schema=Schema.of("a", "b", "c"))
    with pytest.raises(DataError):
        list(records.partitions)


def test_read_csv_records_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_csv_records(tmp_path / "missing.csv")


def test_csv_sink_writes_header_and_rows(tmp_path: Path) -> None:
    out = tmp_path / "out" / "sample.csv"
    sink = CsvSink(out, chunksize=2)
    schema = Schema.of("name", ("score", "numeric"))
    sink.write(iter([("a", 1.0), ("b", 2.0), ("c", 3.0)]), schema)
    df = pd.read_csv(out)
    assert list(df.columns) == ["name", "score"]
    assert df["name"].tolist() == ["a", "b", "c"]
    assert sink.n_written == 3


def test_csv_sink_without_schema_writes_no_header(tmp_path: Path) -> None:
    out = tmp_path / "sample.csv"
    CsvSink(out).write([("a", 1), ("b", 2)], None)
    assert out.read_text(encoding="utf-8").splitlines() == ["a,1", "b,2"]


@pytest.mark.parametrize("has_header", [False, True])
def test_numeric_group_column_is_one_group_across_chunks(tmp_path: Path, has_header: bool) -> None:
    """A blank cell in a later chunk must not split ``bucket=1`` into two groups."""
    data = tmp_path / "data.csv"
    lines = ["id,bucket"] if has_header else []
    lines += ["0,1", "1,1", "2,1", "3,", "4,1", "5,1"]
    data.write_text("\n".join(lines) + "\n", encoding="utf-8")
    schema = None
    if not has_header:
        header = tmp_path / "header.csv"
        header.write_text("id,identifier\nbucket,numeric\n", encoding="utf-8")
        schema = read_header_file(header)

    records = read_csv_records(data, schema=schema, has_header=has_header, chunksize=3)
    result = sample_records(records, SampleConfig(size=1, group_fields=["bucket"], seed=3))

    assert result.stats.groups == 2
    buckets = sorted((r[1] for r in result.records), key=lambda v: v is None)
    assert buckets == [1.0, None]


def test_numeric_values_have_one_type_in_every_partition(tmp_path: Path) -> None:
    data = tmp_path / "data.csv"
    data.write_text("n,tag\n1,a\n2,b\n,c\n4,d\n", encoding="utf-8")
    records = read_csv_records(data, has_header=True, chunksize=2)
    rows = [row for p in records.partitions for row in p]
    assert [row[0] for row in rows] == [1.0, 2.0, None, 4.0]
    assert all(isinstance(row[0], float) for row in rows if row[0] is not None)


def test_csv_sink_leaves_no_file_when_records_fail(tmp_path: Path) -> None:
    out = tmp_path / "sample.csv"

    def _records():
        for i in range(25):
            yield (str(i), float(i))
        raise OSError("stream broke")

    sink = CsvSink(out, chunksize=10)
    with pytest.raises(OSError, match="stream broke"):
        sink.write(_records(), Schema.of("name", ("score", "numeric")))
    assert not out.exists()
    assert list(tmp_path.iterdir()) == []
    assert sink.n_written == 0


def test_csv_sink_keeps_previous_output_on_failure(tmp_path: Path) -> None:
    out = tmp_path / "sample.csv"
    out.write_text("name\nprevious\n", encoding="utf-8")

    def _records():
        yield ("a",)
        raise OSError("stream broke")

    with pytest.raises(OSError):
        CsvSink(out, chunksize=1).write(_records(), Schema.of("name"))
    assert out.read_text(encoding="utf-8") == "name\nprevious\n"


def test_failed_probability_run_writes_no_output(tmp_path: Path) -> None:
    out = tmp_path / "sample.csv"

    def _partitions():
        yield [(i,) for i in range(200)]
        raise OSError("partition read failed")

    records = Records(partitions=_partitions(), schema=Schema.of(("id", "numeric")))
    sink = CsvSink(out, chunksize=10)
    with pytest.raises(ExecutionError, match="partition read failed"):
        sample_records(records, SampleConfig(probability=0.5, seed=1), sink=sink)
    assert not out.exists()
    assert list(tmp_path.iterdir()) == []

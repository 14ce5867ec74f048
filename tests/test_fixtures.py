# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

import datetime
import math

import pyarrow as pa
import pytest

from common_fixtures import DENSE_VECTOR, EXTENSION_TYPES, UDT_ROWS, UDT_SCHEMA, DenseVectorType
from dualpath.comparator import compare
from dualpath.errors import ConfigurationError
from dualpath.fixtures import (
    decode_from_file,
    encode_to_file,
    load_fixed_resource,
    read_arrow,
    resource_path,
    to_arrow,
)
from dualpath.schema import LogicalType, ResultSet, Schema, TimestampPolicy, TypeKind
from dualpath.settings import RESOURCES_DIR_ENV, HarnessSettings


@pytest.mark.parametrize("fmt", ["parquet", "orc"])
def test_native_types_survive_a_file(tmp_path, fmt):
    schema = Schema.of(
        ("i", LogicalType.integer(32)),
        ("l", LogicalType.integer(64)),
        ("d", LogicalType.floating(64)),
        ("s", LogicalType.string()),
        ("b", LogicalType.boolean()),
        ("day", LogicalType.date()),
        ("v", LogicalType.array(LogicalType.floating(64))),
    )
    rows = [
        (1, 2**40, 0.5, "a", True, datetime.date(2020, 1, 1), [1.0, None]),
        (None, None, None, None, None, None, None),
    ]
    path = str(tmp_path / f"native.{fmt}")
    encode_to_file(ResultSet(schema, rows), path, fmt)
    decoded = decode_from_file(path, fmt)
    assert decoded.schema == schema
    assert decoded.rows == tuple(tuple(row) for row in rows)


ALL_TYPES_SCHEMA = Schema.of(
    ("i8", LogicalType.integer(8)),
    ("i16", LogicalType.integer(16)),
    ("i32", LogicalType.integer(32)),
    ("i64", LogicalType.integer(64)),
    ("f32", LogicalType.floating(32)),
    ("f64", LogicalType.floating(64)),
    ("b", LogicalType.boolean()),
    ("s", LogicalType.string()),
    ("day", LogicalType.date()),
    ("utc", LogicalType.timestamp(TimestampPolicy.UTC)),
    ("local", LogicalType.timestamp(TimestampPolicy.LOCAL)),
    ("v", LogicalType.array(LogicalType.floating(64))),
    ("udt", DENSE_VECTOR),
)
ALL_TYPES_ROWS = [
    (
        -128,
        -32768,
        2**31 - 1,
        -(2**40),
        1.25,
        math.nan,
        True,
        "text",
        datetime.date(1999, 12, 31),
        datetime.datetime(2019, 6, 15, 12, 0, 0, 123000, tzinfo=datetime.timezone.utc),
        datetime.datetime(2019, 6, 15, 12, 0, 0, 456000),
        [1.0, None],
        [0.25, 2.25],
    ),
    (127, 32767, 0, 0, -0.5, -math.inf, False, "", datetime.date(1970, 1, 1), None, None, [], [4.25]),
    (None, None, None, None, None, None, None, None, None, None, None, None, None),
]


def test_every_type_kind_is_covered():
    kinds = {f.type.kind for f in ALL_TYPES_SCHEMA}
    assert kinds == set(TypeKind)


@pytest.mark.parametrize("fmt", ["parquet", "orc"])
def test_every_type_survives_a_file_with_the_original_schema(tmp_path, fmt):
    original = ResultSet(ALL_TYPES_SCHEMA, ALL_TYPES_ROWS)
    path = str(tmp_path / f"all_types.{fmt}")
    encode_to_file(original, path, fmt)
    decoded = decode_from_file(path, fmt, ALL_TYPES_SCHEMA, EXTENSION_TYPES)
    assert decoded.schema == ALL_TYPES_SCHEMA
    outcome = compare(original, decoded)
    assert outcome.passed, outcome.render()


def test_timestamps_survive_parquet(tmp_path):
    schema = Schema.of(("t", LogicalType.timestamp(TimestampPolicy.UTC)))
    value = datetime.datetime(2019, 6, 15, 12, 0, 0, 123000, tzinfo=datetime.timezone.utc)
    path = str(tmp_path / "timestamps.parquet")
    encode_to_file(ResultSet(schema, [(value,)]), path, "parquet")
    decoded = decode_from_file(path, "parquet")
    assert decoded.schema == schema
    assert decoded.rows[0][0] == value


@pytest.mark.parametrize("fmt", ["parquet", "orc"])
def test_extension_columns_are_written_as_storage(tmp_path, fmt):
    path = str(tmp_path / f"udt.{fmt}")
    encode_to_file(ResultSet(UDT_SCHEMA, UDT_ROWS), path, fmt)

    stored_type = read_arrow(path, fmt).schema.field("c1").type
    assert pa.types.is_list(stored_type)
    assert stored_type.value_type == pa.float64()

    inferred = decode_from_file(path, fmt)
    assert inferred.schema == UDT_SCHEMA.decoded()
    assert inferred.rows == ((1, [0.25, 2.25, 4.25]),)

    requested = decode_from_file(path, fmt, UDT_SCHEMA, EXTENSION_TYPES)
    assert requested.schema == UDT_SCHEMA
    assert requested.schema.fields[1].type == DENSE_VECTOR
    assert requested.rows == ((1, [0.25, 2.25, 4.25]),)


def test_to_arrow_wraps_extension_columns():
    table = to_arrow(ResultSet(UDT_SCHEMA, UDT_ROWS), EXTENSION_TYPES)
    assert table.schema.field("c1").type == DenseVectorType()
    empty = to_arrow(ResultSet(UDT_SCHEMA, []), EXTENSION_TYPES)
    assert empty.num_rows == 0
    assert empty.schema == table.schema


def test_requesting_a_missing_column_fails(tmp_path):
    path = str(tmp_path / "udt.parquet")
    encode_to_file(ResultSet(UDT_SCHEMA, UDT_ROWS), path, "parquet")
    with pytest.raises(ValueError, match="not in the file"):
        decode_from_file(path, "parquet", Schema.of(("missing", LogicalType.integer(32))))


def test_unsupported_format_is_rejected(tmp_path):
    with pytest.raises(ConfigurationError, match="Unsupported file format 'csv'"):
        encode_to_file(ResultSet(UDT_SCHEMA, UDT_ROWS), str(tmp_path / "udt.csv"), "csv")


def test_resources_are_found_in_configured_directories(resources_dir):
    settings = HarnessSettings(resource_dirs=["/does/not/exist", str(resources_dir)])
    assert resource_path("udt.orc", settings) == (resources_dir / "udt.orc").resolve()
    with load_fixed_resource("udt.orc", settings) as stream:
        assert stream.read(3) == b"ORC"


def test_resources_dir_from_environment(resources_dir, monkeypatch):
    monkeypatch.setenv(RESOURCES_DIR_ENV, str(resources_dir))
    assert resource_path("udt.parquet").name == "udt.parquet"


def test_missing_resource_is_a_configuration_error(tmp_path, monkeypatch):
    monkeypatch.delenv(RESOURCES_DIR_ENV, raising=False)
    with pytest.raises(ConfigurationError) as excinfo:
        resource_path("nope.orc", HarnessSettings(resource_dirs=[str(tmp_path)]))
    assert excinfo.value.details["resource"] == "nope.orc"
    with pytest.raises(ConfigurationError):
        resource_path(str(tmp_path / "absolute.orc"))

# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Fixture files: locating fixed resources, and encoding/decoding result sets to Parquet and ORC.

Extension typed columns are decomposed into their storage type on write, so a file written
from a schema with an extension column carries only the native container type (for example
``array<double>``). Reading it back with no schema yields that container type; reading it
with the original schema re-wraps the column into the extension type.
"""

import os
from pathlib import Path

import pyarrow as pa
import pyarrow.orc as orc
import pyarrow.parquet as pq

from .errors import ConfigurationError
from .schema import ResultSet, Schema
from .settings import RESOURCES_DIR_ENV

SUPPORTED_FORMATS = ("parquet", "orc")


def _resource_dirs(settings):
    if settings is not None and settings.resource_dirs:
        return [Path(d) for d in settings.resource_dirs]
    env_dirs = os.environ.get(RESOURCES_DIR_ENV)
    return [Path(d) for d in env_dirs.split(os.pathsep)] if env_dirs else []


def resource_path(name, settings=None):
    path = Path(name)
    if path.is_absolute():
        if not path.exists():
            raise ConfigurationError(f"Resource file '{path}' does not exist")
        return path
    search_dirs = _resource_dirs(settings)
    for directory in search_dirs:
        candidate = directory / name
        if candidate.exists():
            return candidate.resolve()
    raise ConfigurationError(
        f"Could not find resource '{name}' (searched {', '.join(str(d) for d in search_dirs) or 'nothing'}). "
        f"Set the resource directories in the harness config file or with ${RESOURCES_DIR_ENV}.",
        {"resource": name, "search_dirs": [str(d) for d in search_dirs]},
    )


def load_fixed_resource(name, settings=None):
    """Open a fixed resource file as a binary stream. The caller closes it."""
    return open(resource_path(name, settings), "rb")


def _check_format(fmt):
    if fmt not in SUPPORTED_FORMATS:
        raise ConfigurationError(f"Unsupported file format '{fmt}'. Supported formats: {', '.join(SUPPORTED_FORMATS)}")


def _column_array(values, arrow_type):
    if isinstance(arrow_type, pa.BaseExtensionType):
        storage = pa.array(values, type=arrow_type.storage_type)
        return pa.ExtensionArray.from_storage(arrow_type, storage)
    return pa.array(values, type=arrow_type)


def to_arrow(result_set, extension_types=None):
    arrow_schema = result_set.schema.to_arrow(extension_types)
    columns = list(zip(*result_set.rows)) if result_set.rows else [()] * len(arrow_schema)
    arrays = [_column_array(list(values), f.type) for values, f in zip(columns, arrow_schema)]
    return pa.Table.from_arrays(arrays, schema=arrow_schema)


def from_arrow(table, ordered=False, schema=None):
    schema = schema or Schema.from_arrow(table.schema)
    columns = [column.to_pylist() for column in table.columns]
    rows = tuple(zip(*columns)) if columns else ()
    return ResultSet(schema, rows, ordered)


def encode_to_file(result_set, path, fmt):
    """Write ``result_set`` to ``path``, decomposing extension columns into their storage type."""
    _check_format(fmt)
    table = to_arrow(ResultSet(result_set.schema.decoded(), result_set.rows, result_set.ordered))
    if fmt == "parquet":
        pq.write_table(table, path)
    else:
        orc.write_table(table, path)


def read_arrow(path, fmt):
    _check_format(fmt)
    if fmt == "parquet":
        return pq.read_table(path)
    return orc.read_table(path)


def apply_schema(table, schema, extension_types=None):
    """Cast the columns of ``table`` to ``schema``, re-wrapping extension typed columns."""
    missing = [name for name in schema.names if name not in table.column_names]
    if missing:
        raise ValueError(f"Columns {missing} requested by the schema are not in the file")
    arrays = []
    arrow_schema = schema.to_arrow(extension_types)
    for f, arrow_field in zip(schema.fields, arrow_schema):
        column = table.column(f.name).combine_chunks()
        storage = column.cast(f.type.decoded().to_arrow())
        if isinstance(arrow_field.type, pa.BaseExtensionType):
            storage = pa.ExtensionArray.from_storage(arrow_field.type, storage)
        arrays.append(storage)
    return pa.Table.from_arrays(arrays, schema=arrow_schema)


def decode_from_file(path, fmt, schema=None, extension_types=None):
    """Read ``path`` back as a result set, inferring the schema unless one is given."""
    table = read_arrow(path, fmt)
    if schema is None:
        return from_arrow(table)
    return from_arrow(apply_schema(table, schema, extension_types), schema=schema)

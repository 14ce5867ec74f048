# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Scenarios are immutable records: a logical query builder plus what is expected of the
accelerated run. The builders below cover the common shapes (inline data, fixed files,
writes, casts and SQL text).
"""

from __future__ import annotations

import dataclasses
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Any, Callable

import sqlglot

from .comparator import ToleranceRules
from .engine import ExecutionConfig
from .fixtures import SUPPORTED_FORMATS, resource_path
from .schema import Schema, TypeKind


@dataclass(frozen=True)
class InlineData:
    schema: Schema
    rows: tuple
    # One partition keeps row order reproducible between the two runs.
    num_partitions: int = 1

    def __post_init__(self):
        object.__setattr__(self, "rows", tuple(tuple(row) for row in self.rows))
        if self.num_partitions < 1:
            raise ValueError(f"num_partitions must be positive, got {self.num_partitions}")

    def build(self, engine):
        return engine.create_frame(self.schema, self.rows, self.num_partitions)


@dataclass(frozen=True)
class FileData:
    path: str
    fmt: str
    # None reads with the schema inferred from the file.
    schema: Schema | None = None

    def build(self, engine):
        return engine.read(self.path, self.fmt, self.schema)


@dataclass(frozen=True)
class Scenario:
    name: str
    query: Callable[[Any], Any]
    conf: ExecutionConfig = field(default_factory=ExecutionConfig)
    allowed_non_accelerated: frozenset = frozenset()
    # Operator that must be forced onto the reference path in the accelerated run.
    expected_fallback: str | None = None
    action: Callable[[Any, Any], Any] | None = None
    ordered: bool = False
    order_keys: tuple = ()
    tolerance: ToleranceRules | None = None
    compare_results: bool = True
    ambient_timezone: str | None = None
    required_types: tuple = ()
    required_casts: tuple = ()
    expect_accelerated_failure: bool = False

    def __post_init__(self):
        object.__setattr__(self, "allowed_non_accelerated", frozenset(self.allowed_non_accelerated))
        object.__setattr__(self, "order_keys", tuple(self.order_keys))
        if self.expected_fallback and self.expected_fallback not in self.allowed_non_accelerated:
            # An operator that must fall back is necessarily allowed to.
            object.__setattr__(
                self, "allowed_non_accelerated", self.allowed_non_accelerated | {self.expected_fallback}
            )


def is_ordered_query(query):
    return any(isinstance(expr, sqlglot.exp.Order) for expr in sqlglot.parse_one(query).iter_expressions())


def order_keys_of(query):
    """
    The ORDER BY keys of ``query`` as column names or 0-based positions. Empty when the query
    has no ORDER BY or a key is an expression that cannot be traced back to an output column.
    """
    order = sqlglot.parse_one(query).args.get("order")
    if order is None:
        return ()
    keys = []
    for ordered in order.expressions:
        key = ordered.this
        if isinstance(key, sqlglot.exp.Literal) and key.is_int and int(key.this) >= 1:
            keys.append(int(key.this) - 1)
        elif isinstance(key, sqlglot.exp.Column):
            keys.append(key.name)
        else:
            return ()
    return tuple(keys)


def _types_of(schema):
    return tuple(schema.types) if schema is not None else ()


def query_scenario(name, data, transform=None, **kwargs):
    """Scenario over inline or file data, optionally transformed by ``transform(engine, frame)``."""

    def query(engine):
        frame = data.build(engine)
        return transform(engine, frame) if transform else frame

    kwargs.setdefault("required_types", _types_of(data.schema))
    return Scenario(name=name, query=query, **kwargs)


def sql_scenario(name, sql, tables, **kwargs):
    """
    Scenario for SQL text over named inputs. Ordering is significant iff the query has an
    ORDER BY clause.
    """

    def query(engine):
        views = {table: data.build(engine) for table, data in tables.items()}
        return engine.sql(sql, views)

    kwargs.setdefault("ordered", is_ordered_query(sql))
    if kwargs["ordered"]:
        kwargs.setdefault("order_keys", order_keys_of(sql))
    return Scenario(name=name, query=query, **kwargs)


def cast_scenario(name, data, casts, **kwargs):
    """
    Select ``casts`` (``(column, target_type)`` pairs) from ``data``. When a float column is
    cast to a string, the results are compared as stringified floats.
    """
    casts = tuple(casts)
    required_casts = tuple((data.schema.fields[data.schema.index(column)].type, to_type) for column, to_type in casts)
    float_to_string = any(
        from_type.kind == TypeKind.FLOATING and to_type.kind == TypeKind.STRING for from_type, to_type in required_casts
    )
    if float_to_string and "tolerance" not in kwargs:
        kwargs["tolerance"] = ToleranceRules(compare_floats_as_strings=True)

    def query(engine):
        return engine.select_casts(data.build(engine), casts)

    kwargs.setdefault("required_types", _types_of(data.schema))
    return Scenario(name=name, query=query, required_casts=required_casts, **kwargs)


def _check_format(fmt):
    if fmt not in SUPPORTED_FORMATS:
        raise ValueError(f"Unsupported file format '{fmt}'. Supported formats: {', '.join(SUPPORTED_FORMATS)}")


def write_scenario(name, data, fmt, **kwargs):
    """
    Write ``data`` to a temporary ``fmt`` file in both runs and check the write plan.
    Rows are not compared since a write produces none.
    """
    _check_format(fmt)

    def write(engine, frame):
        temp_dir = tempfile.mkdtemp(prefix=f"dualpath-{fmt}-write-")
        try:
            engine.write(frame, os.path.join(temp_dir, f"output.{fmt}"), fmt)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    kwargs.setdefault("required_types", _types_of(data.schema))
    return Scenario(
        name=name, query=lambda engine: data.build(engine), action=write, compare_results=False, **kwargs
    )


def read_scenario(name, resource, fmt, schema=None, settings=None, **kwargs):
    """Read a fixed resource file, with the inferred schema or an explicitly requested one."""
    _check_format(fmt)
    data = FileData(str(resource_path(resource, settings)), fmt, schema)
    return query_scenario(name, data, **kwargs)


def timezone_variants(scenario, timezones):
    """The same scenario bound to each ambient timezone in ``timezones``."""
    return [
        dataclasses.replace(scenario, name=f"{scenario.name} [{timezone}]", ambient_timezone=timezone)
        for timezone in timezones
    ]

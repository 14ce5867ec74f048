# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Logical type model shared by the comparator, the fixture adapter and the engine adapters.

Types are compared by logical meaning, not by physical encoding: an int32 column read back
from an ORC file and an int32 column built in memory are the same type.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

import pyarrow as pa


class TypeKind(enum.Enum):
    INTEGER = "integer"
    FLOATING = "floating"
    BOOLEAN = "boolean"
    STRING = "string"
    DATE = "date"
    TIMESTAMP = "timestamp"
    ARRAY = "array"
    EXTENSION = "extension"


class TimestampPolicy(enum.Enum):
    # Values are instants and are normalized to UTC before comparison.
    UTC = "utc"
    # Values are wall-clock readings and are compared as they are.
    LOCAL = "local"


@dataclass(frozen=True)
class LogicalType:
    kind: TypeKind
    bits: int | None = None
    policy: TimestampPolicy | None = None
    element: LogicalType | None = None
    extension_name: str | None = None
    storage: LogicalType | None = None

    @classmethod
    def integer(cls, bits=32):
        if bits not in (8, 16, 32, 64):
            raise ValueError(f"Unsupported integer width: {bits}")
        return cls(TypeKind.INTEGER, bits=bits)

    @classmethod
    def floating(cls, bits=64):
        if bits not in (32, 64):
            raise ValueError(f"Unsupported floating point width: {bits}")
        return cls(TypeKind.FLOATING, bits=bits)

    @classmethod
    def boolean(cls):
        return cls(TypeKind.BOOLEAN)

    @classmethod
    def string(cls):
        return cls(TypeKind.STRING)

    @classmethod
    def date(cls):
        return cls(TypeKind.DATE)

    @classmethod
    def timestamp(cls, policy=TimestampPolicy.UTC):
        return cls(TypeKind.TIMESTAMP, policy=policy)

    @classmethod
    def array(cls, element):
        return cls(TypeKind.ARRAY, element=element)

    @classmethod
    def extension(cls, name, storage):
        """An extension (user defined) type that is stored as ``storage``."""
        if storage.kind == TypeKind.EXTENSION:
            raise ValueError("Extension types must declare a native storage type")
        return cls(TypeKind.EXTENSION, extension_name=name, storage=storage)

    @property
    def is_extension(self):
        return self.kind == TypeKind.EXTENSION

    def contains_extension(self):
        if self.kind == TypeKind.EXTENSION:
            return True
        if self.kind == TypeKind.ARRAY:
            return self.element.contains_extension()
        return False

    def decoded(self):
        """Return the native container type that an extension type falls back to."""
        if self.kind == TypeKind.EXTENSION:
            return self.storage
        if self.kind == TypeKind.ARRAY:
            return LogicalType.array(self.element.decoded())
        return self

    def __str__(self):
        if self.kind in (TypeKind.INTEGER, TypeKind.FLOATING):
            return f"{self.kind.value}{self.bits}"
        if self.kind == TypeKind.TIMESTAMP:
            return f"timestamp[{self.policy.value}]"
        if self.kind == TypeKind.ARRAY:
            return f"array<{self.element}>"
        if self.kind == TypeKind.EXTENSION:
            return f"{self.extension_name}<{self.storage}>"
        return self.kind.value

    @classmethod
    def from_arrow(cls, arrow_type):
        if isinstance(arrow_type, pa.BaseExtensionType):
            return cls.extension(arrow_type.extension_name, cls.from_arrow(arrow_type.storage_type))
        if pa.types.is_boolean(arrow_type):
            return cls.boolean()
        if pa.types.is_integer(arrow_type):
            return cls.integer(arrow_type.bit_width)
        if pa.types.is_floating(arrow_type):
            if pa.types.is_float16(arrow_type):
                raise TypeError("Half precision floats are not supported")
            return cls.floating(arrow_type.bit_width)
        if pa.types.is_string(arrow_type) or pa.types.is_large_string(arrow_type):
            return cls.string()
        if pa.types.is_date(arrow_type):
            return cls.date()
        if pa.types.is_timestamp(arrow_type):
            policy = TimestampPolicy.UTC if arrow_type.tz is not None else TimestampPolicy.LOCAL
            return cls.timestamp(policy)
        if pa.types.is_list(arrow_type) or pa.types.is_large_list(arrow_type):
            return cls.array(cls.from_arrow(arrow_type.value_type))
        raise TypeError(f"Unsupported arrow type: {arrow_type}")

    def to_arrow(self, extension_types=None):
        """
        Convert to an arrow type. ``extension_types`` maps extension names to registered
        ``pa.ExtensionType`` instances; unknown extensions map to their storage type.
        """
        if self.kind == TypeKind.INTEGER:
            return {8: pa.int8(), 16: pa.int16(), 32: pa.int32(), 64: pa.int64()}[self.bits]
        if self.kind == TypeKind.FLOATING:
            return pa.float32() if self.bits == 32 else pa.float64()
        if self.kind == TypeKind.BOOLEAN:
            return pa.bool_()
        if self.kind == TypeKind.STRING:
            return pa.string()
        if self.kind == TypeKind.DATE:
            return pa.date32()
        if self.kind == TypeKind.TIMESTAMP:
            return pa.timestamp("us", tz="UTC" if self.policy == TimestampPolicy.UTC else None)
        if self.kind == TypeKind.ARRAY:
            return pa.list_(self.element.to_arrow(extension_types))
        extension_type = (extension_types or {}).get(self.extension_name)
        if extension_type is not None:
            return extension_type
        return self.storage.to_arrow(extension_types)


@dataclass(frozen=True)
class Field:
    name: str
    type: LogicalType
    nullable: bool = True


@dataclass(frozen=True)
class Schema:
    fields: tuple[Field, ...]

    def __post_init__(self):
        object.__setattr__(self, "fields", tuple(self.fields))
        seen = set()
        for f in self.fields:
            if f.name in seen:
                raise ValueError(f"Duplicate field name '{f.name}' in schema")
            seen.add(f.name)

    @classmethod
    def of(cls, *pairs):
        """Build a schema from ``(name, type)`` pairs."""
        return cls(tuple(Field(name, logical_type) for name, logical_type in pairs))

    @property
    def names(self):
        return [f.name for f in self.fields]

    @property
    def types(self):
        return [f.type for f in self.fields]

    def __len__(self):
        return len(self.fields)

    def __iter__(self):
        return iter(self.fields)

    def index(self, name):
        return self.names.index(name)

    def decoded(self):
        return Schema(tuple(Field(f.name, f.type.decoded(), f.nullable) for f in self.fields))

    def has_extension_types(self):
        return any(f.type.contains_extension() for f in self.fields)

    def diff(self, other):
        """Describe how ``other`` differs from this schema. Empty when they are identical."""
        errors = []
        if self.names != other.names:
            errors.append(f"Column names differ: {self.names} vs {other.names}")
            return errors
        for expected, actual in zip(self.fields, other.fields):
            if expected.type != actual.type:
                errors.append(f"Column '{expected.name}' type differs: {expected.type} vs {actual.type}")
        return errors

    def __str__(self):
        return "struct<" + ",".join(f"{f.name}:{f.type}" for f in self.fields) + ">"

    @classmethod
    def from_arrow(cls, arrow_schema):
        return cls(
            tuple(Field(f.name, LogicalType.from_arrow(f.type), f.nullable) for f in arrow_schema)
        )

    def to_arrow(self, extension_types=None):
        return pa.schema(
            [pa.field(f.name, f.type.to_arrow(extension_types), nullable=f.nullable) for f in self.fields]
        )


@dataclass(frozen=True)
class ResultSet:
    schema: Schema
    rows: tuple[tuple, ...] = field(default_factory=tuple)
    # True when the query specifies an ordering that comparison must honor.
    ordered: bool = False
    # ORDER BY keys as column names or 0-based positions. Empty means every column is ordered.
    order_keys: tuple = ()

    def __post_init__(self):
        object.__setattr__(self, "order_keys", tuple(self.order_keys))
        rows = tuple(tuple(row) for row in self.rows)
        width = len(self.schema)
        for index, row in enumerate(rows):
            if len(row) != width:
                raise ValueError(f"Row {index} has {len(row)} values but the schema has {width} fields")
        object.__setattr__(self, "rows", rows)

    def __len__(self):
        return len(self.rows)

    @property
    def columns(self):
        return self.schema.names

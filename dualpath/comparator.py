# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Value level equivalence of two result sets.

Comparison is pure: input result sets are never modified. Rows of unordered results are
sorted by a total order over all columns (nulls first) before they are compared pairwise.
"""

from __future__ import annotations

import datetime
import decimal
import math
import re
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .errors import ResultMismatch
from .schema import TimestampPolicy, TypeKind

DEFAULT_MAX_MISMATCHES = 100
DEFAULT_STRING_FLOAT_REL_TOL = 1e-6

_EPOCH = datetime.datetime(1970, 1, 1)


@dataclass(frozen=True)
class ToleranceRules:
    abs_tol: float = 0.0
    rel_tol: float = 0.0
    # Compare string columns as rendered floating point numbers (cast-to-string scenarios).
    compare_floats_as_strings: bool = False
    string_float_rel_tol: float = DEFAULT_STRING_FLOAT_REL_TOL
    max_mismatches: int = DEFAULT_MAX_MISMATCHES


@dataclass(frozen=True)
class Mismatch:
    row: int
    column: str
    expected: Any
    actual: Any
    reason: str | None = None

    def render(self):
        text = f"Row: {self.row}, Column: {self.column}: {self.expected!r} vs {self.actual!r}"
        if self.reason:
            text += f" ({self.reason})"
        return text


@dataclass
class CompareResult:
    expected_row_count: int
    actual_row_count: int
    schema_errors: list[str] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)
    total_mismatches: int = 0
    max_mismatches: int = DEFAULT_MAX_MISMATCHES

    @property
    def row_count_matches(self):
        return self.expected_row_count == self.actual_row_count

    @property
    def truncated(self):
        return self.total_mismatches > len(self.mismatches)

    @property
    def passed(self):
        return not self.schema_errors and self.row_count_matches and self.total_mismatches == 0

    def render(self):
        if self.passed:
            return "Results match"
        if self.schema_errors:
            return "Schema mismatch:\n  " + "\n  ".join(self.schema_errors)
        if not self.row_count_matches:
            return f"Row count mismatch: {self.expected_row_count} vs {self.actual_row_count}"
        truncated_msg = f" (showing first {len(self.mismatches)})" if self.truncated else ""
        mismatch_details = "\n  ".join(m.render() for m in self.mismatches)
        return f"Found {self.total_mismatches} mismatches{truncated_msg}:\n  {mismatch_details}"

    def to_dict(self):
        return {
            "passed": self.passed,
            "expected_row_count": self.expected_row_count,
            "actual_row_count": self.actual_row_count,
            "schema_errors": list(self.schema_errors),
            "total_mismatches": self.total_mismatches,
            "mismatches": [
                {"row": m.row, "column": m.column, "expected": repr(m.expected), "actual": repr(m.actual),
                 "reason": m.reason}
                for m in self.mismatches
            ],
        }

    def raise_for_mismatch(self):
        if not self.passed:
            raise ResultMismatch(self)
        return self


def normalize_timestamp(value, policy):
    """Normalize a timestamp to a naive datetime at microsecond granularity."""
    if isinstance(value, int):
        # Engines may hand back raw microseconds since the epoch.
        return _EPOCH + datetime.timedelta(microseconds=value)
    if hasattr(value, "to_pydatetime"):
        value = value.to_pydatetime()
    if value.tzinfo is not None:
        if policy == TimestampPolicy.LOCAL:
            return value.replace(tzinfo=None)
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    # Naive values are taken as already expressed in UTC (or as wall clock readings for
    # LOCAL), never in the host's default timezone.
    return value


def normalize_value(value, logical_type):
    if value is None:
        return None
    kind = logical_type.kind
    if kind == TypeKind.FLOATING:
        return float(value)
    if kind == TypeKind.TIMESTAMP:
        return normalize_timestamp(value, logical_type.policy)
    if kind == TypeKind.DATE:
        if isinstance(value, str):
            return datetime.date.fromisoformat(value)
        if isinstance(value, datetime.datetime):
            return value.date()
        return value
    if kind == TypeKind.ARRAY:
        return tuple(normalize_value(v, logical_type.element) for v in value)
    if kind == TypeKind.EXTENSION:
        return normalize_value(value, logical_type.storage)
    return value


def normalize_rows(rows, schema):
    types = schema.types
    return [tuple(normalize_value(value, types[i]) for i, value in enumerate(row)) for row in rows]


def _value_sort_key(value, logical_type, numeric_strings=False):
    if value is None:
        return (0,)
    kind = logical_type.kind
    if kind == TypeKind.FLOATING:
        # NaN is greater than any other value, including positive infinity.
        if math.isnan(value):
            return (1, 1, 0.0)
        return (1, 0, value)
    if kind == TypeKind.STRING and numeric_strings:
        # Rendered numbers order by value so that different spellings line up.
        number = _parse_float_string(value)
        if number is None:
            return (1, 1, value)
        if number.is_nan():
            return (1, 0, 1, 0.0)
        return (1, 0, 0, float(number))
    if kind == TypeKind.ARRAY:
        return (1, tuple(_value_sort_key(v, logical_type.element, numeric_strings) for v in value))
    if kind == TypeKind.EXTENSION:
        return _value_sort_key(value, logical_type.storage, numeric_strings)
    return (1, value)


def sort_key(row, schema, numeric_strings=False):
    """Total order over normalized rows, comparing fields left to right with nulls first."""
    return tuple(_value_sort_key(value, schema.types[i], numeric_strings) for i, value in enumerate(row))


def floats_equal(expected, actual, abs_tol=0.0, rel_tol=0.0):
    if math.isnan(expected) or math.isnan(actual):
        return math.isnan(expected) and math.isnan(actual)
    if math.isinf(expected) or math.isinf(actual):
        return expected == actual
    return abs(expected - actual) <= max(abs_tol, rel_tol * max(abs(expected), abs(actual)))


# How engines print floats: plain or exponent notation, NaN and infinities.
FLOAT_RENDERING = re.compile(r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|nan|inf|infinity)", re.IGNORECASE)


def _parse_float_string(text):
    text = text.strip()
    if not FLOAT_RENDERING.fullmatch(text):
        return None
    try:
        return decimal.Decimal(text)
    except decimal.InvalidOperation:
        return None


def compare_stringified_floats(expected, actual, rel_tol=DEFAULT_STRING_FLOAT_REL_TOL):
    """
    Compare two renderings of a floating point number.

    Engines disagree on how to print floats ("1.0E-5" vs "1e-05", "0.1" vs "0.10000000000000001",
    "Infinity" vs "inf"). Those are treated as equal when the parsed values are within ``rel_tol``
    of each other. Text that does not parse as a number must match exactly.
    """
    if expected == actual:
        return True
    expected_value = _parse_float_string(expected)
    actual_value = _parse_float_string(actual)
    if expected_value is None or actual_value is None:
        return expected.strip() == actual.strip()
    if expected_value.is_nan() or actual_value.is_nan():
        return expected_value.is_nan() and actual_value.is_nan()
    if expected_value.is_infinite() or actual_value.is_infinite():
        return expected_value == actual_value
    if expected_value == actual_value:
        return True
    scale = max(abs(expected_value), abs(actual_value))
    return abs(expected_value - actual_value) <= decimal.Decimal(repr(rel_tol)) * scale


def values_equal(expected, actual, logical_type, rules):
    if expected is None or actual is None:
        return expected is None and actual is None
    kind = logical_type.kind
    if kind == TypeKind.FLOATING:
        return floats_equal(expected, actual, rules.abs_tol, rules.rel_tol)
    if kind == TypeKind.STRING and rules.compare_floats_as_strings:
        return compare_stringified_floats(expected, actual, rules.string_float_rel_tol)
    if kind == TypeKind.ARRAY:
        if len(expected) != len(actual):
            return False
        return all(values_equal(e, a, logical_type.element, rules) for e, a in zip(expected, actual))
    if kind == TypeKind.EXTENSION:
        return values_equal(expected, actual, logical_type.storage, rules)
    return expected == actual


def _mismatch_reason(expected, actual, logical_type, rules):
    if expected is None or actual is None:
        return "null mismatch"
    if logical_type.kind == TypeKind.FLOATING and not (math.isnan(expected) or math.isnan(actual)):
        return f"diff={abs(expected - actual):.6g}, abs_tol={rules.abs_tol}, rel_tol={rules.rel_tol}"
    return None


def _order_key_indices(result_set):
    """Column indices of the ORDER BY keys, or None when a key names no column of the result."""
    schema = result_set.schema
    indices = []
    for key in result_set.order_keys:
        if isinstance(key, int) and 0 <= key < len(schema):
            indices.append(key)
        elif isinstance(key, str) and key in schema.names:
            indices.append(schema.index(key))
        else:
            return None
    return indices


def _collect_mismatches(result, expected_rows, actual_rows, schema, column_indices, rules, reason=None):
    for row_idx, (expected_row, actual_row) in enumerate(zip(expected_rows, actual_rows)):
        for col_idx in column_indices:
            f = schema.fields[col_idx]
            expected_value, actual_value = expected_row[col_idx], actual_row[col_idx]
            if values_equal(expected_value, actual_value, f.type, rules):
                continue
            result.total_mismatches += 1
            if len(result.mismatches) < rules.max_mismatches:
                result.mismatches.append(
                    Mismatch(row_idx, f.name, expected_value, actual_value,
                             reason or _mismatch_reason(expected_value, actual_value, f.type, rules))
                )


def compare(expected, actual, rules=None):
    """
    Compare ``actual`` (the accelerated run) against ``expected`` (the reference run).

    Ordered results with ORDER BY keys are compared twice: fully sorted, since rows whose keys
    tie may come back in any order, and then on the key columns alone in the order each run
    returned them. Ordered results without keys are compared row by row.

    Mismatches are collected up to ``rules.max_mismatches`` rather than stopping at the first one.
    """
    rules = rules or ToleranceRules()
    result = CompareResult(len(expected), len(actual), max_mismatches=rules.max_mismatches)

    result.schema_errors = expected.schema.diff(actual.schema)
    if result.schema_errors or not result.row_count_matches:
        return result

    schema = expected.schema
    all_columns = range(len(schema))
    expected_rows = normalize_rows(expected.rows, schema)
    actual_rows = normalize_rows(actual.rows, schema)
    order_indices = _order_key_indices(expected) if expected.ordered else None
    if expected.ordered and not order_indices:
        _collect_mismatches(result, expected_rows, actual_rows, schema, all_columns, rules)
        return result

    numeric_strings = rules.compare_floats_as_strings
    sorted_expected = sorted(expected_rows, key=lambda row: sort_key(row, schema, numeric_strings))
    sorted_actual = sorted(actual_rows, key=lambda row: sort_key(row, schema, numeric_strings))
    _collect_mismatches(result, sorted_expected, sorted_actual, schema, all_columns, rules)
    if order_indices:
        _collect_mismatches(result, expected_rows, actual_rows, schema, order_indices, rules, "order mismatch")
    return result


def assert_results_equal(expected, actual, rules=None):
    return compare(expected, actual, rules).raise_for_mismatch()


def show_result_preview(columns, rows, preview_rows_count, result_source, name):
    start_line = f"\n{'-' * 50} {result_source} {name} Result Preview {'-' * 50}"
    print(start_line)
    preview_rows_count = min(preview_rows_count, len(rows))
    print(f"Showing {preview_rows_count} of {len(rows)} rows...\n")
    df = pd.DataFrame(list(rows[:preview_rows_count]), columns=columns)
    print(df)
    print("-" * len(start_line))

# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Cast scenarios: every column cast to a set of target types, run on the reference and the
accelerated path and compared.
"""

import dataclasses
import datetime

import pytest

from common_fixtures import (
    booleans_data,
    dates_data,
    doubles_with_nans_data,
    longs_data,
    mixed_with_nulls_data,
    narrow_numbers_data,
    timestamps_data,
)
from dualpath.ambient import scoped_timezone
from dualpath.errors import FallbackViolation
from dualpath.report import ERROR, FAILED, PASSED, SKIPPED
from dualpath.scenario import cast_scenario, timezone_variants
from dualpath.schema import LogicalType, TypeKind
from dualpath.verifier import assert_verified, run_suite, verify
from local_engine import LocalEngine

BYTE = LogicalType.integer(8)
SHORT = LogicalType.integer(16)
INT = LogicalType.integer(32)
LONG = LogicalType.integer(64)
FLOAT = LogicalType.floating(32)
DOUBLE = LogicalType.floating(64)
STRING = LogicalType.string()
BOOLEAN = LogicalType.boolean()
DATE = LogicalType.date()
TIMESTAMP = LogicalType.timestamp()

TIMEZONES = ["UTC", "Etc/UTC", "America/Los_Angeles", "Asia/Kolkata"]


@pytest.mark.parametrize(
    "name, data, casts",
    [
        ("Test cast from long", longs_data, [("longs", STRING), ("longs", DOUBLE), ("more_longs", BOOLEAN)]),
        ("Test cast from double to float", doubles_with_nans_data, [("doubles", FLOAT), ("more_doubles", DOUBLE)]),
        ("Test cast with nulls", mixed_with_nulls_data, [("ints", STRING), ("longs", DOUBLE), ("strings", STRING)]),
        ("Test cast to timestamp", longs_data, [("more_longs", TIMESTAMP)]),
        ("Test cast from long to timestamp", narrow_numbers_data, [("longs", TIMESTAMP)]),
        ("Test cast from double to timestamp", narrow_numbers_data, [("seconds", TIMESTAMP)]),
        ("Test cast from float to timestamp", narrow_numbers_data, [("floats", TIMESTAMP)]),
        (
            "Test cast from boolean",
            booleans_data,
            [("bools", INT), ("bools", LONG), ("bools", DOUBLE), ("bools", STRING)],
        ),
        ("Test cast from date", dates_data, [("dates", STRING), ("dates", TIMESTAMP)]),
        (
            "Test cast from long to byte, short and int",
            narrow_numbers_data,
            [("longs", BYTE), ("longs", SHORT), ("longs", INT)],
        ),
        (
            "Test cast from double to byte, short and int",
            narrow_numbers_data,
            [("doubles", BYTE), ("doubles", SHORT), ("doubles", INT)],
        ),
    ],
)
def test_casts(engine, harness_settings, name, data, casts):
    report = assert_verified(engine, cast_scenario(name, data(), casts), harness_settings)
    assert "*GpuProjectExec [accelerated]" in report.accelerated_plan


@pytest.mark.parametrize("accelerated", [False, True])
def test_numbers_cast_to_timestamps_as_epoch_seconds(engine, accelerated):
    casts = [("longs", TIMESTAMP), ("seconds", TIMESTAMP)]
    scenario = cast_scenario("Test cast to timestamp", narrow_numbers_data(), casts)
    config = scenario.conf.accelerated() if accelerated else scenario.conf.reference()
    rows = engine.execute(scenario.query, config).result.rows
    utc = datetime.timezone.utc
    assert rows[1] == (
        datetime.datetime(1969, 12, 31, 23, 59, 59, tzinfo=utc),
        datetime.datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=utc),
    )
    assert rows[2][1] == datetime.datetime(1969, 12, 31, 23, 59, 56, 750000, tzinfo=utc)
    # NaN has no instant.
    assert rows[3][1] is None


def test_cast_double_to_string_compares_rendered_floats(engine, harness_settings):
    scenario = cast_scenario("Test cast from double to string", doubles_with_nans_data(), [("doubles", STRING)])
    assert scenario.tolerance.compare_floats_as_strings
    assert assert_verified(engine, scenario, harness_settings).status == PASSED


@pytest.mark.parametrize("timezone", TIMEZONES)
def test_timestamp_casts_in_every_timezone(engine, harness_settings, timezone):
    scenario = cast_scenario(
        "Test cast from timestamp",
        timestamps_data(),
        [("time", STRING), ("time", DATE), ("time", LONG)],
        ambient_timezone=timezone,
    )
    assert assert_verified(engine, scenario, harness_settings).status == PASSED
    assert engine.default_timezone() == "UTC"


def test_timezone_variants_run_independently(engine, harness_settings):
    base = cast_scenario("Test cast from timestamp to string", timestamps_data(), [("time", STRING)])
    variants = timezone_variants(base, TIMEZONES)
    assert [variant.name for variant in variants] == [f"{base.name} [{zone}]" for zone in TIMEZONES]
    reports = run_suite(engine, variants, harness_settings, "timestamp_casts")
    assert all(report.status == PASSED for report in reports)


def test_ambient_timezone_changes_the_rendered_values(engine):
    scenario = cast_scenario("Test cast from timestamp to string", timestamps_data(), [("time", STRING)])

    def rendered(timezone):
        with scoped_timezone(engine, timezone):
            return engine.execute(scenario.query, scenario.conf.accelerated()).result.rows

    assert rendered("UTC")[0] == ("2019-01-01 00:30:00",)
    assert rendered("Etc/UTC") == rendered("UTC")
    assert rendered("America/Los_Angeles")[0] == ("2018-12-31 16:30:00",)
    assert rendered("Asia/Kolkata")[0] == ("2019-01-01 06:00:00",)


def test_session_timezone_takes_precedence_over_the_ambient_one(engine):
    scenario = cast_scenario("Test cast from timestamp to date", timestamps_data(), [("time", DATE)])
    config = scenario.conf.accelerated()
    with scoped_timezone(engine, "UTC"):
        utc_dates = engine.execute(scenario.query, config).result.rows
        la_config = dataclasses.replace(config, timezone="America/Los_Angeles")
        la_dates = engine.execute(scenario.query, la_config).result.rows
    assert utc_dates[0] != la_dates[0]


def test_uncastable_pairs_are_skipped(harness_settings):
    engine = LocalEngine(uncastable={(TypeKind.INTEGER, TypeKind.BOOLEAN)})
    report = verify(engine, cast_scenario("Test cast from long", longs_data(), [("longs", BOOLEAN)]), harness_settings)
    assert report.status == SKIPPED
    assert engine.executions == []


def test_unsupported_accelerated_cast_must_be_allowed_to_fall_back(harness_settings):
    engine = LocalEngine(unsupported_casts={(TypeKind.FLOATING, TypeKind.STRING)})
    casts = [("doubles", STRING)]

    report = verify(engine, cast_scenario("Test cast from double", doubles_with_nans_data(), casts), harness_settings)
    assert report.status == FAILED
    assert isinstance(report.failures[0], FallbackViolation)
    assert "ProjectExec" in report.fallback_diagnostics[0]

    allowed = cast_scenario(
        "Test cast from double", doubles_with_nans_data(), casts, allowed_non_accelerated={"ProjectExec"}
    )
    assert verify(engine, allowed, harness_settings).status == PASSED


def test_reference_cast_overflow_is_an_error(engine, harness_settings):
    report = verify(engine, cast_scenario("Test cast from long to int", longs_data(), [("longs", INT)]), harness_settings)
    assert report.status == ERROR
    assert "reference run" in report.error

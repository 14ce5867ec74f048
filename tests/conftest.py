# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

import os
import sys

import pytest

# Enable imports of the test helpers (local_engine, common_fixtures) from the tests directory.
tests_dir = os.path.dirname(os.path.realpath(__file__))
if tests_dir not in sys.path:
    sys.path.insert(0, tests_dir)

from common_fixtures import EXTENSION_TYPES, UDT_ROWS, UDT_SCHEMA  # noqa: E402
from dualpath.fixtures import encode_to_file  # noqa: E402
from dualpath.schema import ResultSet  # noqa: E402
from dualpath.settings import load_settings  # noqa: E402
from local_engine import LocalEngine  # noqa: E402


def pytest_addoption(parser):
    parser.addoption("--dual-path-config")
    parser.addoption("--report-dir")
    parser.addoption("--max-mismatches", type=int)
    parser.addoption("--show-result-preview", action="store_true", default=False)
    parser.addoption("--preview-rows-count", default=3, type=int)


@pytest.fixture(scope="session")
def resources_dir(tmp_path_factory):
    """
    Fixed resource files. udt.orc holds the rows of UDT_SCHEMA as written by the reference
    path: the dense vector column is stored as array<double>.
    """
    directory = tmp_path_factory.mktemp("resources")
    encode_to_file(ResultSet(UDT_SCHEMA, UDT_ROWS), str(directory / "udt.orc"), "orc")
    encode_to_file(ResultSet(UDT_SCHEMA, UDT_ROWS), str(directory / "udt.parquet"), "parquet")
    return directory


@pytest.fixture(scope="session")
def harness_settings(request, resources_dir):
    config = request.config
    overrides = {
        "report_dir": config.getoption("--report-dir"),
        "max_mismatches": config.getoption("--max-mismatches"),
        "show_result_preview": config.getoption("--show-result-preview"),
        "preview_rows_count": config.getoption("--preview-rows-count"),
        "resource_dirs": [str(resources_dir)],
    }
    return load_settings(config.getoption("--dual-path-config"), overrides)


@pytest.fixture
def engine():
    return LocalEngine(extension_types=EXTENSION_TYPES)

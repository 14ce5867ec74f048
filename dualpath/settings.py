# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Harness settings: built-in defaults, overridden by an optional YAML file, then by
environment variables, then by explicit (command line) overrides.
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .comparator import DEFAULT_MAX_MISMATCHES, DEFAULT_STRING_FLOAT_REL_TOL, ToleranceRules
from .errors import ConfigurationError

RESOURCES_DIR_ENV = "DUAL_PATH_RESOURCES_DIR"
REPORT_DIR_ENV = "DUAL_PATH_REPORT_DIR"


@dataclass
class HarnessSettings:
    abs_tol: float = 0.0
    rel_tol: float = 0.0
    string_float_rel_tol: float = DEFAULT_STRING_FLOAT_REL_TOL
    max_mismatches: int = DEFAULT_MAX_MISMATCHES
    plan_capture_timeout_ms: int = 10000
    resource_dirs: list[str] = field(default_factory=list)
    report_dir: str | None = None
    show_result_preview: bool = False
    preview_rows_count: int = 3

    def tolerance_rules(self):
        return ToleranceRules(
            abs_tol=self.abs_tol,
            rel_tol=self.rel_tol,
            string_float_rel_tol=self.string_float_rel_tol,
            max_mismatches=self.max_mismatches,
        )


def _field_names():
    return {f.name for f in dataclasses.fields(HarnessSettings)}


def _read_config_file(path):
    config_file = Path(path)
    if not config_file.exists():
        raise ConfigurationError(f"Harness config file '{config_file}' does not exist")
    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ConfigurationError(f"Harness config file '{config_file}' must contain a mapping")
    unknown = set(config) - _field_names()
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in harness config file '{config_file}': {', '.join(sorted(unknown))}",
            {"unknown_keys": sorted(unknown)},
        )
    return config


def _read_environment():
    config = {}
    resources_dir = os.environ.get(RESOURCES_DIR_ENV)
    if resources_dir:
        config["resource_dirs"] = resources_dir.split(os.pathsep)
    report_dir = os.environ.get(REPORT_DIR_ENV)
    if report_dir:
        config["report_dir"] = report_dir
    return config


def load_settings(path=None, overrides=None):
    config = {}
    if path:
        config.update(_read_config_file(path))
    config.update(_read_environment())
    config.update({key: value for key, value in (overrides or {}).items() if value is not None})

    unknown = set(config) - _field_names()
    if unknown:
        raise ConfigurationError(f"Unknown harness settings: {', '.join(sorted(unknown))}")
    settings = HarnessSettings(**config)
    if settings.max_mismatches < 1:
        raise ConfigurationError(f"max_mismatches must be positive, got {settings.max_mismatches}")
    return settings

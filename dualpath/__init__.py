# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

from .comparator import ToleranceRules, compare
from .controller import DualExecutionController, DualRun
from .engine import Engine, Execution, ExecutionConfig, RunKind
from .errors import (
    ConfigurationError,
    ExecutionFailure,
    FallbackViolation,
    HarnessError,
    ResultMismatch,
    ScenarioSkipped,
    UnexpectedAcceleration,
)
from .fallback import assert_fallback, assert_no_unexpected_acceleration
from .plan import OperatorPath, PlanNode, classify, render_plan
from .scenario import (
    FileData,
    InlineData,
    Scenario,
    cast_scenario,
    query_scenario,
    read_scenario,
    sql_scenario,
    timezone_variants,
    write_scenario,
)
from .schema import Field, LogicalType, ResultSet, Schema, TimestampPolicy
from .settings import HarnessSettings, load_settings
from .verifier import assert_verified, run_suite, verify

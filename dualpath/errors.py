# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from typing import Any


class HarnessError(Exception):
    """
    Base class for structured harness failures.

    Parameters
    ----------
    message : str
        The message to display.
    details : dict[str, Any] | None, optional
        Context needed to reproduce the failure without re-running the scenario.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(HarnessError):
    pass


class ScenarioSkipped(HarnessError):
    """The engine statically reports that a scenario's types or casts are unsupported."""


class ExecutionFailure(HarnessError):
    def __init__(self, scenario: str, run_kind: str, cause: BaseException, plan_dump: str | None = None):
        message = f"Scenario '{scenario}' failed during the {run_kind} run: {type(cause).__name__}: {cause}"
        details = {"scenario": scenario, "run_kind": run_kind, "cause": repr(cause)}
        if plan_dump is not None:
            details["plan"] = plan_dump
        super().__init__(message, details)
        self.scenario = scenario
        self.run_kind = run_kind
        self.cause = cause


class ResultMismatch(HarnessError, AssertionError):
    def __init__(self, compare_result):
        super().__init__(compare_result.render(), compare_result.to_dict())
        self.compare_result = compare_result


class FallbackViolation(HarnessError, AssertionError):
    def __init__(self, extra_names, plan_dump: str):
        names = ", ".join(sorted(extra_names))
        super().__init__(
            f"Part of the plan was not accelerated: {names}\n{plan_dump}",
            {"extra_names": sorted(extra_names), "plan": plan_dump},
        )
        self.extra_names = frozenset(extra_names)
        self.plan_dump = plan_dump


class UnexpectedAcceleration(HarnessError, AssertionError):
    def __init__(self, operator_name: str, plan_dump: str):
        super().__init__(
            f"Expected '{operator_name}' to fall back to the reference path, but it did not\n{plan_dump}",
            {"operator_name": operator_name, "plan": plan_dump},
        )
        self.operator_name = operator_name
        self.plan_dump = plan_dump

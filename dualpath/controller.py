# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Runs one scenario twice: first with every operator on the reference path, then with
acceleration enabled (minus the scenario's forced-disabled operators).

The two runs are sequential and share the scenario's ambient timezone, which is applied
once around both runs and restored afterwards.
"""

from __future__ import annotations

import dataclasses
import os
import time
from dataclasses import dataclass

from .ambient import scoped_timezone
from .engine import Execution, RunKind
from .errors import ExecutionFailure, ScenarioSkipped
from .plan import classify, render_plan

# Set DUAL_PATH_DEBUG=1 or DEBUG=1 to trace each run's configuration and timing.
_DEBUG = os.environ.get("DUAL_PATH_DEBUG") or os.environ.get("DEBUG")


def _debug(msg: str) -> None:
    if _DEBUG:
        print(f"[controller] {msg}")


@dataclass
class DualRun:
    scenario: object
    reference: Execution
    accelerated: Execution | None
    accelerated_error: ExecutionFailure | None = None


class DualExecutionController:
    def __init__(self, engine):
        self.engine = engine

    def check_supported(self, scenario):
        for logical_type in scenario.required_types:
            if not self.engine.supports_type(logical_type):
                raise ScenarioSkipped(
                    f"{self.engine.name} does not support type {logical_type}", {"scenario": scenario.name}
                )
        for from_type, to_type in scenario.required_casts:
            if not self.engine.can_cast(from_type, to_type):
                raise ScenarioSkipped(
                    f"{self.engine.name} cannot cast {from_type} to {to_type}", {"scenario": scenario.name}
                )

    def run(self, scenario) -> DualRun:
        """
        Execute both runs. A reference failure raises ``ExecutionFailure``; an accelerated
        failure is captured in the returned ``DualRun``.
        """
        self.check_supported(scenario)
        with scoped_timezone(self.engine, scenario.ambient_timezone):
            reference = self._execute(scenario, RunKind.REFERENCE)
            try:
                accelerated = self._execute(scenario, RunKind.ACCELERATED)
            except ExecutionFailure as e:
                return DualRun(scenario, reference, None, e)
        return DualRun(scenario, reference, accelerated)

    def _execute(self, scenario, run_kind):
        config = scenario.conf.for_run(run_kind)
        _debug(f"{scenario.name}: starting {run_kind.value} run with {config}")
        start = time.perf_counter()
        try:
            execution = self.engine.execute(scenario.query, config, scenario.action)
        except Exception as e:
            # Engines may attach the plan they had built before failing.
            plan = getattr(e, "plan", None)
            plan_dump = render_plan(plan, classify(plan, self.engine.accelerated_names)) if plan is not None else None
            raise ExecutionFailure(scenario.name, run_kind.value, e, plan_dump) from e
        execution.duration_seconds = time.perf_counter() - start
        _debug(f"{scenario.name}: {run_kind.value} run finished in {execution.duration_seconds:.3f}s")
        if execution.result is not None:
            execution.result = dataclasses.replace(
                execution.result, ordered=scenario.ordered, order_keys=scenario.order_keys
            )
        return execution

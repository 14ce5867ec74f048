# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Scenario verification: dual execution, fallback assertions and result comparison,
collected into a per-scenario report.
"""

import time

from .comparator import compare, show_result_preview
from .controller import DualExecutionController
from .errors import ExecutionFailure, FallbackViolation, HarnessError, ScenarioSkipped, UnexpectedAcceleration
from .fallback import assert_fallback, assert_no_unexpected_acceleration
from .plan import classify, render_plan
from .report import ERROR, SKIPPED, ScenarioReport, write_reports
from .settings import HarnessSettings


def _render(plan, accelerated_names):
    if plan is None:
        return None
    return render_plan(plan, classify(plan, accelerated_names))


def _check_plans(scenario, plan, accelerated_names, report):
    if plan is None:
        report.fail(HarnessError(f"The engine reported no plan for the accelerated run of '{scenario.name}'"))
        report.fallback_diagnostics.append(report.failures[-1].message)
        return
    try:
        assert_fallback(plan, scenario.allowed_non_accelerated, accelerated_names)
    except FallbackViolation as e:
        report.fallback_diagnostics.append(e.message)
        report.fail(e)
    if scenario.expected_fallback:
        try:
            assert_no_unexpected_acceleration(plan, scenario.expected_fallback, accelerated_names)
        except UnexpectedAcceleration as e:
            report.fallback_diagnostics.append(e.message)
            report.fail(e)


def _check_results(scenario, dual_run, settings, report):
    expected = dual_run.reference.result
    actual = dual_run.accelerated.result
    if settings.show_result_preview:
        for source, result in (("Reference", expected), ("Accelerated", actual)):
            if result is not None:
                show_result_preview(result.columns, result.rows, settings.preview_rows_count, source, scenario.name)
    if not scenario.compare_results:
        return
    if expected is None or actual is None:
        report.fail(HarnessError(f"Scenario '{scenario.name}' compares results but a run produced none"))
        report.error = report.failures[-1].message
        return
    compare_result = compare(expected, actual, scenario.tolerance or settings.tolerance_rules())
    if not compare_result.passed:
        report.comparator_diagnostics = compare_result.render()
        report.details["comparison"] = compare_result.to_dict()
        try:
            compare_result.raise_for_mismatch()
        except HarnessError as e:
            report.fail(e)


def verify(engine, scenario, settings=None):
    """
    Verify one scenario and return its report. Scenario failures are recorded in the report,
    never raised.
    """
    settings = settings or HarnessSettings()
    accelerated_names = engine.accelerated_names
    report = ScenarioReport(scenario.name)
    start = time.perf_counter()
    try:
        dual_run = DualExecutionController(engine).run(scenario)
    except ScenarioSkipped as e:
        report.status = SKIPPED
        report.error = e.message
        report.failures.append(e)
    except ExecutionFailure as e:
        # Nothing trustworthy to compare against without a reference result.
        report.fail(e, ERROR)
        report.error = e.message
        report.details.update(e.details)
    else:
        report.reference_plan = _render(dual_run.reference.plan, accelerated_names)
        if dual_run.accelerated_error is not None:
            failure = dual_run.accelerated_error
            report.accelerated_plan = failure.details.get("plan")
            report.details["accelerated_error"] = failure.details
            if not scenario.expect_accelerated_failure:
                report.fail(failure)
                report.error = failure.message
        else:
            report.accelerated_plan = _render(dual_run.accelerated.plan, accelerated_names)
            if scenario.expect_accelerated_failure:
                report.fail(HarnessError(f"Expected the accelerated run of '{scenario.name}' to fail, but it succeeded"))
                report.error = report.failures[-1].message
            _check_plans(scenario, dual_run.accelerated.plan, accelerated_names, report)
            _check_results(scenario, dual_run, settings, report)
    report.duration_seconds = time.perf_counter() - start
    return report


def assert_verified(engine, scenario, settings=None):
    """Verify one scenario and raise its first structured failure, if any."""
    report = verify(engine, scenario, settings)
    if report.failures:
        raise report.failures[0]
    return report


def run_suite(engine, scenarios, settings=None, suite_name="dualpath"):
    """
    Verify every scenario independently; one failing scenario never stops the others.
    Reports are written to ``settings.report_dir`` when it is set.
    """
    settings = settings or HarnessSettings()
    reports = [verify(engine, scenario, settings) for scenario in scenarios]
    if settings.report_dir:
        write_reports(reports, settings.report_dir, suite_name)
    return reports

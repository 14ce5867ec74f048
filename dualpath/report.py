# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

PASSED = "passed"
FAILED = "failed"
SKIPPED = "skipped"
ERROR = "error"


@dataclass
class ScenarioReport:
    name: str
    status: str = PASSED
    comparator_diagnostics: str | None = None
    fallback_diagnostics: list[str] = field(default_factory=list)
    reference_plan: str | None = None
    accelerated_plan: str | None = None
    duration_seconds: float = 0.0
    error: str | None = None
    details: dict = field(default_factory=dict)
    # Structured exceptions behind a failed status; not serialized.
    failures: list = field(default_factory=list, repr=False)

    @property
    def passed(self):
        return self.status == PASSED

    def fail(self, failure, status=FAILED):
        self.status = status
        self.failures.append(failure)

    def to_dict(self):
        return {
            "name": self.name,
            "status": self.status,
            "comparator_diagnostics": self.comparator_diagnostics,
            "fallback_diagnostics": list(self.fallback_diagnostics),
            "reference_plan": self.reference_plan,
            "accelerated_plan": self.accelerated_plan,
            "duration_seconds": self.duration_seconds,
            "error": self.error,
            "details": self.details,
        }


def summarize(reports):
    counts = Counter(report.status for report in reports)
    return {status: counts.get(status, 0) for status in (PASSED, FAILED, SKIPPED, ERROR)}


def _file_name(suite_name):
    return re.sub(r"[^A-Za-z0-9_.-]+", "_", suite_name).strip("_") or "suite"


def write_reports(reports, report_dir, suite_name="dualpath"):
    """Write the reports of one suite as a JSON file in ``report_dir``. Returns the file path."""
    output_dir = Path(report_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    output_file = output_dir / f"{_file_name(suite_name)}.json"
    content = {
        "suite": suite_name,
        "timestamp": datetime.now().isoformat(),
        "summary": summarize(reports),
        "scenarios": [report.to_dict() for report in reports],
    }
    with open(output_file, "w") as file:
        json.dump(content, file, indent=2, default=str)
    return output_file

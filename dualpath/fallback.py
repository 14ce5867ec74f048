# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

from .errors import FallbackViolation, UnexpectedAcceleration
from .plan import classify, render_plan


def find_unexpected_fallbacks(accelerated_plan, allowed_non_accelerated, accelerated_names=None):
    classification = classify(accelerated_plan, accelerated_names)
    return classification.reference_names - set(allowed_non_accelerated), classification


def assert_fallback(accelerated_plan, allowed_non_accelerated=frozenset(), accelerated_names=None):
    """
    Check that only operators in ``allowed_non_accelerated`` stayed on the reference path.

    An empty allowed set means the plan must run fully accelerated.
    """
    extra_names, classification = find_unexpected_fallbacks(
        accelerated_plan, allowed_non_accelerated, accelerated_names
    )
    if extra_names:
        raise FallbackViolation(extra_names, render_plan(accelerated_plan, classification))
    return classification


def assert_no_unexpected_acceleration(accelerated_plan, operator_name, accelerated_names=None):
    """Check that ``operator_name`` was forced off the accelerated path."""
    classification = classify(accelerated_plan, accelerated_names)
    if operator_name not in classification.reference_names:
        raise UnexpectedAcceleration(operator_name, render_plan(accelerated_plan, classification))
    return classification

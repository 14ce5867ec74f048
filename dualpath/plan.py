# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Physical plan trees reported by an engine, and their accelerated/reference partition.

Plans can be very deep (long chains of projections, unions of many inputs), so every
traversal here uses an explicit stack instead of recursion.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class OperatorPath(enum.Enum):
    ACCELERATED = "accelerated"
    REFERENCE = "reference"


@dataclass(eq=False)
class PlanNode:
    # eq=False keeps identity semantics: the same operator name can appear many times in one plan.
    name: str
    children: list[PlanNode] = field(default_factory=list)
    path: OperatorPath = OperatorPath.REFERENCE
    description: str | None = None

    @property
    def accelerated(self):
        return self.path == OperatorPath.ACCELERATED

    def __repr__(self):
        return f"PlanNode({self.name!r}, path={self.path.value}, children={len(self.children)})"


@dataclass
class Classification:
    accelerated: list[PlanNode]
    reference: list[PlanNode]
    _paths: dict = field(default_factory=dict, repr=False)

    @property
    def accelerated_names(self):
        return {node.name for node in self.accelerated}

    @property
    def reference_names(self):
        return {node.name for node in self.reference}

    def path_of(self, node):
        return self._paths[id(node)]


def tag_by_affixes(name, prefixes=(), suffixes=()):
    """Tag an operator name the way accelerator plugins name their replacement operators."""
    if name.startswith(tuple(prefixes)) or name.endswith(tuple(suffixes)):
        return OperatorPath.ACCELERATED
    return OperatorPath.REFERENCE


def walk(plan):
    """Yield ``(node, depth)`` pairs in pre-order."""
    stack = [(plan, 0)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        for child in reversed(node.children):
            stack.append((child, depth + 1))


def operator_names(plan):
    return [node.name for node, _ in walk(plan)]


def classify(plan, accelerated_names=None):
    """
    Partition the nodes of ``plan`` into accelerated and reference nodes.

    When ``accelerated_names`` is given, a node is accelerated iff its name is in the set.
    Otherwise the tag the engine adapter assigned at plan construction decides.
    """
    accelerated, reference, paths = [], [], {}
    for node, _ in walk(plan):
        if accelerated_names is not None:
            path = OperatorPath.ACCELERATED if node.name in accelerated_names else OperatorPath.REFERENCE
        else:
            path = node.path
        paths[id(node)] = path
        (accelerated if path == OperatorPath.ACCELERATED else reference).append(node)
    return Classification(accelerated, reference, paths)


def render_plan(plan, classification=None):
    """
    Render the plan as an indented tree, one operator per line.

    Accelerated operators are marked with ``*`` and reference-path operators with ``!``.
    """
    if plan is None:
        return "<no plan captured>"
    if classification is None:
        classification = classify(plan)
    lines = []
    for node, depth in walk(plan):
        path = classification.path_of(node)
        marker = "*" if path == OperatorPath.ACCELERATED else "!"
        line = f"{'  ' * depth}{marker}{node.name} [{path.value}]"
        if node.description:
            line += f" {node.description}"
        lines.append(line)
    return "\n".join(lines)

# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
The boundary between the harness and a query engine.

An engine runs a logical query under an ``ExecutionConfig`` and reports back the physical
plan it actually chose together with the materialized result.
"""

from __future__ import annotations

import abc
import dataclasses
import enum
import types
from dataclasses import dataclass, field
from typing import Any, Mapping

from .ambient import scoped_conf


class RunKind(enum.Enum):
    REFERENCE = "reference"
    ACCELERATED = "accelerated"


@dataclass(frozen=True)
class ExecutionConfig:
    acceleration_enabled: bool = True
    # Operators that must not run accelerated even when acceleration is enabled.
    disabled_operators: frozenset = frozenset()
    # Selects the data source implementation version, e.g. "orc" or "" for Spark's V1 source list.
    source_list: str | None = None
    timezone: str | None = None
    # Engine specific keys, read-only once the config is built.
    extra: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        object.__setattr__(self, "disabled_operators", frozenset(self.disabled_operators))
        object.__setattr__(self, "extra", types.MappingProxyType(dict(self.extra)))

    def reference(self):
        """The same configuration with every operator forced onto the reference path."""
        return dataclasses.replace(self, acceleration_enabled=False, disabled_operators=frozenset())

    def accelerated(self):
        return dataclasses.replace(self, acceleration_enabled=True)

    def for_run(self, run_kind):
        return self.reference() if run_kind == RunKind.REFERENCE else self.accelerated()

    def with_extra(self, **entries):
        return dataclasses.replace(self, extra={**self.extra, **entries})


@dataclass
class Execution:
    plan: Any
    result: Any
    duration_seconds: float = 0.0


class RuntimeConf:
    """In-memory configuration store with the ``pyspark.sql.RuntimeConfig`` interface."""

    def __init__(self, initial=None):
        self._values = dict(initial or {})

    def get(self, key, default=None):
        return self._values.get(key, default)

    def set(self, key, value):
        self._values[key] = value

    def unset(self, key):
        self._values.pop(key, None)

    def get_all(self):
        return dict(self._values)


class Engine(abc.ABC):
    name = "engine"
    # When set, classification is by name; otherwise by the tags the engine puts on plan nodes.
    accelerated_names = None

    @property
    @abc.abstractmethod
    def conf(self):
        """Runtime configuration store (``get``/``set``/``unset``)."""

    @abc.abstractmethod
    def conf_overrides(self, config: ExecutionConfig) -> dict:
        """Translate an ``ExecutionConfig`` into engine configuration keys."""

    @abc.abstractmethod
    def run(self, query, action=None) -> Execution:
        """
        Build the frame returned by ``query(engine)`` and execute it under the current
        configuration. With an ``action`` (e.g. a write) the action is executed instead of
        collecting rows, and the result is ``None``.
        """

    @abc.abstractmethod
    def create_frame(self, schema, rows, num_partitions=1):
        pass

    @abc.abstractmethod
    def read(self, path, fmt, schema=None):
        pass

    @abc.abstractmethod
    def write(self, frame, path, fmt):
        pass

    def select_casts(self, frame, casts):
        """Project ``frame`` to ``(column, target_type)`` casts, in order."""
        raise NotImplementedError(f"{type(self).__name__} does not support cast scenarios")

    def sql(self, text, views):
        """Run SQL ``text`` with ``views`` (name -> frame) registered as temporary tables."""
        raise NotImplementedError(f"{type(self).__name__} does not support SQL scenarios")

    @abc.abstractmethod
    def default_timezone(self) -> str:
        pass

    @abc.abstractmethod
    def set_default_timezone(self, timezone: str):
        pass

    def supports_type(self, logical_type) -> bool:
        return True

    def can_cast(self, from_type, to_type) -> bool:
        return True

    def execute(self, query, config: ExecutionConfig, action=None) -> Execution:
        with scoped_conf(self.conf, self.conf_overrides(config)):
            return self.run(query, action)

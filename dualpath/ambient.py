# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Scoped overrides of process wide state (runtime configuration, default timezone).

Prior state is restored on every exit path, including failures, so one scenario's
overrides never leak into the next.
"""

import contextlib


@contextlib.contextmanager
def scoped_conf(conf_store, overrides):
    """
    Apply ``overrides`` to ``conf_store`` for the duration of the block.

    ``conf_store`` follows the ``pyspark.sql.RuntimeConfig`` interface: ``get(key, default)``,
    ``set(key, value)`` and ``unset(key)``. A ``None`` override unsets the key.
    """
    saved = {}
    try:
        for key, value in overrides.items():
            if key not in saved:
                saved[key] = conf_store.get(key, None)
            if value is None:
                conf_store.unset(key)
            else:
                conf_store.set(key, value)
        yield conf_store
    finally:
        for key, value in saved.items():
            if value is None:
                conf_store.unset(key)
            else:
                conf_store.set(key, value)


@contextlib.contextmanager
def scoped_timezone(engine, timezone):
    """Run the block with ``timezone`` as the engine's ambient default timezone."""
    if timezone is None:
        yield
        return
    previous = engine.default_timezone()
    engine.set_default_timezone(timezone)
    try:
        yield
    finally:
        engine.set_default_timezone(previous)

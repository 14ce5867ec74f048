# SPDX-FileCopyrightText: Copyright (c) 2025-2026, NVIDIA CORPORATION.
# SPDX-License-Identifier: Apache-2.0

"""
Engine adapter for Spark with an accelerator plugin (RAPIDS or Gluten).

The reference run disables the plugin through its enable key; the accelerated run enables
it and turns off the scenario's disabled operators one key at a time. Plans are read back
from the JVM after execution, so what gets classified is the plan Spark actually ran.
"""

from __future__ import annotations

from dataclasses import dataclass

from pyspark.sql import SparkSession
from pyspark.sql import types as T
from pyspark.sql.functions import col

from ..engine import Engine, Execution
from ..plan import PlanNode, tag_by_affixes
from ..schema import Field, LogicalType, ResultSet, Schema, TimestampPolicy, TypeKind

V1_SOURCE_LIST_KEY = "spark.sql.sources.useV1SourceList"
SESSION_TIMEZONE_KEY = "spark.sql.session.timeZone"

# Plan nodes that only wrap the operators doing the work.
_WRAPPER_ACCESSORS = {
    "AdaptiveSparkPlanExec": "executedPlan",
    "ShuffleQueryStageExec": "plan",
    "BroadcastQueryStageExec": "plan",
    "TableCacheQueryStageExec": "plan",
    "ResultQueryStageExec": "plan",
    "WholeStageCodegenExec": "child",
    "InputAdapter": "child",
    "ReusedExchangeExec": "child",
}


@dataclass(frozen=True)
class AcceleratorProfile:
    name: str
    plugin_class: str
    enabled_key: str
    # Formatted with the disabled operator's name.
    operator_key_template: str
    prefixes: tuple = ()
    suffixes: tuple = ()
    capture_callback: str | None = None

    def tag(self, operator_name):
        return tag_by_affixes(operator_name, self.prefixes, self.suffixes)


RAPIDS = AcceleratorProfile(
    name="rapids",
    plugin_class="com.nvidia.spark.SQLPlugin",
    enabled_key="spark.rapids.sql.enabled",
    operator_key_template="spark.rapids.sql.exec.{name}",
    prefixes=("Gpu",),
    capture_callback="org.apache.spark.sql.rapids.ExecutionPlanCaptureCallback",
)

# Gluten operator switches are named by feature ("filter", "project", ...), not by class.
GLUTEN = AcceleratorProfile(
    name="gluten",
    plugin_class="org.apache.gluten.GlutenPlugin",
    enabled_key="spark.gluten.enabled",
    operator_key_template="spark.gluten.sql.columnar.{name}",
    prefixes=("Velox", "Columnar", "Cudf"),
    suffixes=("Transformer",),
)


def build_session(app_name, profile, jar_path, extra_conf=None):
    builder = (
        SparkSession.builder.appName(app_name)
        .master("local[*]")
        .config("spark.jars", jar_path)
        .config("spark.plugins", profile.plugin_class)
        .config("spark.sql.adaptive.enabled", "true")
    )
    for key, value in (extra_conf or {}).items():
        builder = builder.config(key, value)
    return builder.getOrCreate()


def _simple_name(jnode):
    return jnode.getClass().getSimpleName()


def _unwrap(jnode):
    name = _simple_name(jnode)
    while name in _WRAPPER_ACCESSORS:
        jnode = getattr(jnode, _WRAPPER_ACCESSORS[name])()
        name = _simple_name(jnode)
    return jnode, name


def convert_plan(jplan, tag):
    """Convert a JVM ``SparkPlan`` into ``PlanNode``s, tagging each node with ``tag(name)``."""
    root = None
    stack = [(jplan, None)]
    while stack:
        jnode, parent = stack.pop()
        jnode, name = _unwrap(jnode)
        node = PlanNode(name, path=tag(name))
        if parent is None:
            root = node
        else:
            parent.children.append(node)
        children = jnode.children()
        for index in reversed(range(children.size())):
            stack.append((children.apply(index), node))
    return root


_SPARK_TO_LOGICAL = {
    "byte": LogicalType.integer(8),
    "short": LogicalType.integer(16),
    "integer": LogicalType.integer(32),
    "long": LogicalType.integer(64),
    "float": LogicalType.floating(32),
    "double": LogicalType.floating(64),
    "boolean": LogicalType.boolean(),
    "string": LogicalType.string(),
    "date": LogicalType.date(),
    "timestamp": LogicalType.timestamp(TimestampPolicy.UTC),
    "timestamp_ntz": LogicalType.timestamp(TimestampPolicy.LOCAL),
}


def logical_type_from_spark(data_type):
    if isinstance(data_type, T.UserDefinedType):
        return LogicalType.extension(data_type.typeName(), logical_type_from_spark(data_type.sqlType()))
    if isinstance(data_type, T.ArrayType):
        return LogicalType.array(logical_type_from_spark(data_type.elementType))
    type_name = data_type.typeName()
    if type_name not in _SPARK_TO_LOGICAL:
        raise TypeError(f"Unsupported Spark type: {data_type.simpleString()}")
    return _SPARK_TO_LOGICAL[type_name]


def schema_from_spark(struct_type):
    return Schema(tuple(Field(f.name, logical_type_from_spark(f.dataType), f.nullable) for f in struct_type.fields))


def spark_type(logical_type, udts=None):
    kind = logical_type.kind
    if kind == TypeKind.INTEGER:
        return {8: T.ByteType(), 16: T.ShortType(), 32: T.IntegerType(), 64: T.LongType()}[logical_type.bits]
    if kind == TypeKind.FLOATING:
        return T.FloatType() if logical_type.bits == 32 else T.DoubleType()
    if kind == TypeKind.BOOLEAN:
        return T.BooleanType()
    if kind == TypeKind.STRING:
        return T.StringType()
    if kind == TypeKind.DATE:
        return T.DateType()
    if kind == TypeKind.TIMESTAMP:
        return T.TimestampType() if logical_type.policy == TimestampPolicy.UTC else T.TimestampNTZType()
    if kind == TypeKind.ARRAY:
        return T.ArrayType(spark_type(logical_type.element, udts))
    udt = (udts or {}).get(logical_type.extension_name)
    return udt if udt is not None else spark_type(logical_type.storage, udts)


def spark_schema(schema, udts=None):
    return T.StructType([T.StructField(f.name, spark_type(f.type, udts), f.nullable) for f in schema.fields])


class SparkEngine(Engine):
    def __init__(self, session, profile=RAPIDS, udts=None, plan_capture_timeout_ms=10000):
        self.session = session
        self.profile = profile
        # Extension type name -> pyspark UserDefinedType instance.
        self.udts = dict(udts or {})
        self.plan_capture_timeout_ms = plan_capture_timeout_ms
        self.name = f"spark-{profile.name}"

    @property
    def conf(self):
        return self.session.conf

    @property
    def _jvm(self):
        return self.session.sparkContext._jvm

    def conf_overrides(self, config):
        overrides = {self.profile.enabled_key: "true" if config.acceleration_enabled else "false"}
        for name in sorted(config.disabled_operators):
            overrides[self.profile.operator_key_template.format(name=name)] = "false"
        if config.source_list is not None:
            overrides[V1_SOURCE_LIST_KEY] = config.source_list
        if config.timezone is not None:
            overrides[SESSION_TIMEZONE_KEY] = config.timezone
        overrides.update({key: None if value is None else str(value) for key, value in config.extra.items()})
        return overrides

    def _convert(self, jplan):
        return convert_plan(jplan, self.profile.tag)

    def run(self, query, action=None):
        frame = query(self)
        if action is None:
            rows = [tuple(row) for row in frame.collect()]
            plan = self._convert(frame._jdf.queryExecution().executedPlan())
            return Execution(plan, ResultSet(schema_from_spark(frame.schema), rows))

        if self.profile.capture_callback is None:
            # Without a capture callback the best available plan is the one of the input frame.
            action(self, frame)
            return Execution(self._convert(frame._jdf.queryExecution().executedPlan()), None)

        callback = self._jvm
        for part in self.profile.capture_callback.split("."):
            callback = getattr(callback, part)
        callback.startCapture()
        action(self, frame)
        captured = list(callback.getResultsWithTimeout(self.plan_capture_timeout_ms))
        if not captured:
            raise RuntimeError(f"No plan was captured within {self.plan_capture_timeout_ms}ms")
        # The write command is the last plan executed by the action.
        return Execution(self._convert(captured[-1]), None)

    def create_frame(self, schema, rows, num_partitions=1):
        rdd = self.session.sparkContext.parallelize(list(rows), numSlices=num_partitions)
        return self.session.createDataFrame(rdd, spark_schema(schema, self.udts))

    def read(self, path, fmt, schema=None):
        reader = self.session.read
        if schema is not None:
            reader = reader.schema(spark_schema(schema, self.udts))
        return reader.format(fmt).load(path)

    def write(self, frame, path, fmt):
        frame.write.mode("overwrite").format(fmt).save(path)

    def select_casts(self, frame, casts):
        return frame.select(*[col(column).cast(spark_type(to_type, self.udts)) for column, to_type in casts])

    def sql(self, text, views):
        for name, frame in views.items():
            frame.createOrReplaceTempView(name)
        return self.session.sql(text)

    def default_timezone(self):
        return self._jvm.java.util.TimeZone.getDefault().getID()

    def set_default_timezone(self, timezone):
        time_zone = self._jvm.java.util.TimeZone
        time_zone.setDefault(time_zone.getTimeZone(timezone))

    def can_cast(self, from_type, to_type):
        data_type = self._jvm.org.apache.spark.sql.types.DataType
        return self._jvm.org.apache.spark.sql.catalyst.expressions.Cast.canCast(
            data_type.fromJson(spark_type(from_type, self.udts).json()),
            data_type.fromJson(spark_type(to_type, self.udts).json()),
        )

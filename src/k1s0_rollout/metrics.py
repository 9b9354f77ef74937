"""OpenTelemetry rollout メトリクス定義"""

from __future__ import annotations

from opentelemetry import metrics

_meter = metrics.get_meter("k1s0_rollout", version="0.1.0")

evaluations_total = _meter.create_counter(
    name="rollout_evaluations_total",
    description="Total number of modifier resolutions",
    unit="1",
)

condition_failures_total = _meter.create_counter(
    name="rollout_condition_failures_total",
    description="Total number of modifier conditions that raised",
    unit="1",
)

store_writes_total = _meter.create_counter(
    name="rollout_store_writes_total",
    description="Total number of writes to the backing store",
    unit="1",
)

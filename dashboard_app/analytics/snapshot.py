"""
Performance snapshot: current vs. trailing averages with directional intent.

The headline value is the mean of the newest ``SAMPLE_SIZE`` samples. The
delta compares the newest sample against the mean of the older ones, and
its intent says whether that change is an improvement: for latency a drop
is ``up``, for success rate a rise is ``up``.
"""

from __future__ import annotations

import math
import statistics
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..formatters import NO_DATA, format_metric_value
from ..models import DeltaIntent, SnapshotDelta, SnapshotMetric, TaskReportActivity
from .samples import SAMPLE_SIZE, extract_samples

LATENCY_UNIT = "ms"
SUCCESS_RATE_UNIT = "%"


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Latency and success-rate snapshot metrics for the dashboard."""

    latency: SnapshotMetric
    success_rate: SnapshotMetric

    def to_dict(self) -> dict[str, Any]:
        return {
            "latency": self.latency.to_dict(),
            "successRate": self.success_rate.to_dict(),
        }


def _average(values: Sequence[float]) -> float | None:
    # statistics.mean sums exactly, so finite samples never average to inf
    if not values:
        return None
    return statistics.mean(values)


def classify_intent(delta_raw: float, invert_delta: bool) -> DeltaIntent:
    """
    Classify a raw delta as improving, degrading, or steady.

    Args:
        delta_raw: Newest sample minus the trailing average.
        invert_delta: True when lower values are better (latency).

    Returns:
        ``STEADY`` for deltas smaller than float epsilon, regardless of
        ``invert_delta``; otherwise ``UP`` or ``DOWN``.
    """
    if abs(delta_raw) < sys.float_info.epsilon:
        return DeltaIntent.STEADY
    if invert_delta:
        return DeltaIntent.UP if delta_raw < 0 else DeltaIntent.DOWN
    return DeltaIntent.UP if delta_raw > 0 else DeltaIntent.DOWN


def compute_snapshot_metric(
    values: Sequence[float],
    *,
    unit: str,
    fraction_digits: int,
    invert_delta: bool = False,
    sample_size: int = SAMPLE_SIZE,
) -> SnapshotMetric:
    """
    Turn newest-first samples into a formatted value and optional delta.

    Args:
        values: Samples, newest first. Only the first ``sample_size`` are used.
        unit: ``"ms"`` or ``"%"``.
        fraction_digits: Decimals in both the value and the delta.
        invert_delta: True when a decrease is an improvement.
        sample_size: Cap applied to ``values``.

    Returns:
        ``SnapshotMetric("—")`` for no samples, a value without delta for a
        single sample or a delta too large to represent, otherwise a value
        with a signed delta.
    """
    sample = list(values[:sample_size])
    avg = _average(sample)
    if avg is None:
        return SnapshotMetric(value=NO_DATA)

    formatted_value = format_metric_value(avg, unit, fraction_digits)
    if len(sample) == 1:
        return SnapshotMetric(value=formatted_value)

    trailing_avg = _average(sample[1:])
    delta_raw = sample[0] - trailing_avg
    if not math.isfinite(delta_raw):
        return SnapshotMetric(value=formatted_value)
    return SnapshotMetric(
        value=formatted_value,
        delta=SnapshotDelta(
            value=format_metric_value(delta_raw, unit, fraction_digits, include_sign=True),
            intent=classify_intent(delta_raw, invert_delta),
        ),
    )


def build_performance_snapshot(
    reports: Iterable[TaskReportActivity | Mapping[str, Any]],
    sample_size: int = SAMPLE_SIZE,
) -> PerformanceSnapshot:
    """
    Build the latency and success-rate snapshot from newest-first reports.

    Latency is shown in whole milliseconds with lower-is-better deltas;
    success rate with one decimal and higher-is-better deltas.
    """
    samples = extract_samples(reports, sample_size=sample_size)
    return PerformanceSnapshot(
        latency=compute_snapshot_metric(
            samples.latencies[:sample_size],
            unit=LATENCY_UNIT,
            fraction_digits=0,
            invert_delta=True,
            sample_size=sample_size,
        ),
        success_rate=compute_snapshot_metric(
            samples.success_rates[:sample_size],
            unit=SUCCESS_RATE_UNIT,
            fraction_digits=1,
            sample_size=sample_size,
        ),
    )

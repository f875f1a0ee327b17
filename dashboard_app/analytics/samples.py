"""
Latency and success-rate sample extraction.

Turns a newest-first list of task reports into two numeric sample
sequences for the performance snapshot. Latency prefers ``p95Ms`` and falls
back to ``averageMs``. Success rate prefers the explicit
``metrics.successRate``; when a report has none, a rate is derived from the
``results`` counters, but only while fewer than ``sample_size`` success
samples have been collected. Explicit rates are not gated during collection.

Collection stops as soon as both sequences hold ``sample_size`` samples.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from ..models import TaskReportActivity, coerce_report, is_finite_number

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 10


@dataclass
class PerformanceSamples:
    """Latency (ms) and success-rate (%) samples, newest first."""

    latencies: list[float] = field(default_factory=list)
    success_rates: list[float] = field(default_factory=list)


def latency_sample(report: TaskReportActivity) -> float | None:
    """Return the report's latency sample: finite ``p95Ms``, else finite ``averageMs``."""
    metrics = report.metrics
    if metrics is None:
        return None
    if is_finite_number(metrics.p95_ms):
        return metrics.p95_ms
    if is_finite_number(metrics.average_ms):
        return metrics.average_ms
    return None


def explicit_success_rate(report: TaskReportActivity) -> float | None:
    """Return the finite ``metrics.successRate`` of a report, if any."""
    metrics = report.metrics
    if metrics is None or not is_finite_number(metrics.success_rate):
        return None
    return metrics.success_rate


def derived_success_rate(report: TaskReportActivity) -> float | None:
    """Return the success rate derived from ``results`` counters, if derivable."""
    results = report.results
    if results is None:
        return None
    return results.derived_success_rate()


def extract_samples(
    reports: Iterable[TaskReportActivity | Mapping[str, Any]],
    sample_size: int = SAMPLE_SIZE,
) -> PerformanceSamples:
    """
    Collect latency and success-rate samples from newest-first reports.

    Each report contributes at most one sample to each sequence.

    Args:
        reports: Parsed reports or raw report dicts, newest first.
        sample_size: Number of samples wanted per metric.

    Returns:
        The collected samples. The explicit success-rate path may push
        ``success_rates`` past ``sample_size``; callers truncate.
    """
    samples = PerformanceSamples()

    for raw_report in reports:
        report = coerce_report(raw_report)

        success_recorded = False
        if report.metrics is not None:
            latency = latency_sample(report)
            if latency is not None:
                samples.latencies.append(latency)

            rate = explicit_success_rate(report)
            if rate is not None:
                samples.success_rates.append(rate)
                success_recorded = True

        if not success_recorded and len(samples.success_rates) < sample_size:
            rate = derived_success_rate(report)
            if rate is not None:
                samples.success_rates.append(rate)

        if (
            len(samples.latencies) >= sample_size
            and len(samples.success_rates) >= sample_size
        ):
            break

    logger.debug(
        f"Extracted {len(samples.latencies)} latency and "
        f"{len(samples.success_rates)} success-rate samples"
    )
    return samples

"""
Latency anomaly detection against per-task p95 baselines.

For every task the most recent completed run is compared with the runs
that preceded it. The baseline is the mean and sample standard deviation of
those earlier p95 latencies, and the run is flagged when the absolute
z-score exceeds the configured threshold.

A baseline is only trusted when it has at least ``min_baseline_samples``
runs and a non-zero spread. Anything less is treated as insufficient
evidence, so the run is not flagged and no division by zero can occur.

The module also normalizes anomaly lists produced by the upstream API so
both sources share ordering and severity rules.
"""

from __future__ import annotations

import logging
import math
import statistics
import sys
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ..models import (
    AnomalySeverity,
    LatencyAnomaly,
    TaskReportActivity,
    coerce_report,
    get_number,
    get_string,
    is_finite_number,
)

logger = logging.getLogger(__name__)

DEFAULT_Z_THRESHOLD = 2.25
DEFAULT_CRITICAL_Z_THRESHOLD = 3.0
DEFAULT_MIN_BASELINE_SAMPLES = 3
DEFAULT_BASELINE_WINDOW = 20

# A standard deviation needs at least two points.
MIN_SAMPLES_FLOOR = 2

_DATETIME_MIN = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class AnomalyThresholds:
    """
    Tuning knobs for the anomaly classifier.

    Attributes:
        z_threshold: ``|z|`` above this marks a run as anomalous.
        critical_z_threshold: ``|z|`` at or above this marks it critical.
        min_baseline_samples: Baseline runs required before scoring.
            Values below 2 are raised to 2.
        baseline_window: Maximum number of preceding runs in the baseline.
    """

    z_threshold: float = DEFAULT_Z_THRESHOLD
    critical_z_threshold: float = DEFAULT_CRITICAL_Z_THRESHOLD
    min_baseline_samples: int = DEFAULT_MIN_BASELINE_SAMPLES
    baseline_window: int = DEFAULT_BASELINE_WINDOW

    def __post_init__(self) -> None:
        if self.min_baseline_samples < MIN_SAMPLES_FLOOR:
            object.__setattr__(self, "min_baseline_samples", MIN_SAMPLES_FLOOR)
        if self.baseline_window < self.min_baseline_samples:
            object.__setattr__(self, "baseline_window", self.min_baseline_samples)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "AnomalyThresholds":
        """Build thresholds from a Flask config mapping."""
        return cls(
            z_threshold=float(config.get("ANOMALY_Z_THRESHOLD", DEFAULT_Z_THRESHOLD)),
            critical_z_threshold=float(
                config.get("ANOMALY_CRITICAL_Z_THRESHOLD", DEFAULT_CRITICAL_Z_THRESHOLD)
            ),
            min_baseline_samples=int(
                config.get("ANOMALY_MIN_BASELINE_SAMPLES", DEFAULT_MIN_BASELINE_SAMPLES)
            ),
            baseline_window=int(
                config.get("ANOMALY_BASELINE_WINDOW", DEFAULT_BASELINE_WINDOW)
            ),
        )


@dataclass(frozen=True)
class Baseline:
    """Mean and sample standard deviation of a task's historical p95."""

    mean: float
    std_dev: float
    sample_count: int


def compute_baseline(values: Sequence[float]) -> Baseline | None:
    """
    Compute mean and sample standard deviation (n - 1) of ``values``.

    Returns:
        ``None`` when fewer than two finite values are available, or when
        the spread is too large to represent as a float.
    """
    finite = [value for value in values if is_finite_number(value)]
    if len(finite) < MIN_SAMPLES_FLOOR:
        return None
    try:
        mean = statistics.mean(finite)
        std_dev = statistics.stdev(finite)
    except OverflowError:
        logger.debug("Baseline spread overflows a float; skipping")
        return None
    if not math.isfinite(std_dev):
        return None
    return Baseline(mean=float(mean), std_dev=float(std_dev), sample_count=len(finite))


def score_observation(
    value: float,
    baseline: Baseline | None,
    thresholds: AnomalyThresholds,
) -> float | None:
    """
    Return the z-score of ``value`` against ``baseline``.

    Returns:
        ``None`` when the baseline is missing, under-sampled, or has no
        spread, or when the result would not be finite.
    """
    if baseline is None or not is_finite_number(value):
        return None
    if baseline.sample_count < thresholds.min_baseline_samples:
        return None
    if baseline.std_dev < sys.float_info.epsilon:
        return None
    z_score = (value - baseline.mean) / baseline.std_dev
    return z_score if math.isfinite(z_score) else None


def classify_severity(
    z_score: float | None,
    thresholds: AnomalyThresholds,
) -> AnomalySeverity | None:
    """Map a z-score onto a severity bucket, or ``None`` when within range."""
    if z_score is None or not math.isfinite(z_score):
        return None
    magnitude = abs(z_score)
    if magnitude >= thresholds.critical_z_threshold:
        return AnomalySeverity.CRITICAL
    if magnitude > thresholds.z_threshold:
        return AnomalySeverity.ANOMALOUS
    return None


def _run_success_rate(report: TaskReportActivity) -> float | None:
    metrics = report.metrics
    if metrics is not None and is_finite_number(metrics.success_rate):
        return metrics.success_rate
    results = report.results
    return results.derived_success_rate() if results is not None else None


def _chronological_key(report: TaskReportActivity) -> datetime:
    return report.started_at_datetime or _DATETIME_MIN


def _round(value: float | None) -> float | None:
    return round(value, 2) if value is not None else None


def detect_latency_anomalies(
    reports: Iterable[TaskReportActivity | Mapping[str, Any]],
    thresholds: AnomalyThresholds | None = None,
) -> list[LatencyAnomaly]:
    """
    Flag each task's latest completed run when its p95 deviates from baseline.

    Args:
        reports: Parsed reports or raw report dicts, in any order.
        thresholds: Classifier settings; defaults apply when ``None``.

    Returns:
        Anomalies sorted by severity (see :func:`sort_anomalies`).
    """
    thresholds = thresholds or AnomalyThresholds()

    runs_by_task: dict[str, list[TaskReportActivity]] = defaultdict(list)
    for raw_report in reports:
        report = coerce_report(raw_report)
        metrics = report.metrics
        if not report.is_completed or metrics is None:
            continue
        if not is_finite_number(metrics.p95_ms) or report.task.id is None:
            continue
        runs_by_task[report.task.id].append(report)

    anomalies: list[LatencyAnomaly] = []
    for task_id, runs in runs_by_task.items():
        # sorted() is stable, so runs without a timestamp keep input order
        runs = sorted(runs, key=_chronological_key)
        latest = runs[-1]
        history = runs[:-1][-thresholds.baseline_window:]

        baseline = compute_baseline([run.metrics.p95_ms for run in history])
        z_score = score_observation(latest.metrics.p95_ms, baseline, thresholds)
        severity = classify_severity(z_score, thresholds)
        if severity is None:
            continue

        logger.info(
            f"Latency anomaly on task {task_id}: p95={latest.metrics.p95_ms} "
            f"baseline={baseline.mean:.2f} z={z_score:.2f}"
        )
        anomalies.append(
            LatencyAnomaly(
                report_id=latest.id or "",
                task_id=task_id,
                task_label=latest.task.label,
                project_name=latest.task.project_name,
                organization_name=latest.task.organization_name,
                started_at=latest.started_at,
                value=_round(latest.metrics.p95_ms),
                baseline_mean=_round(baseline.mean),
                baseline_std_dev=_round(baseline.std_dev),
                z_score=_round(z_score),
                success_rate=_round(_run_success_rate(latest)),
                severity=severity,
            )
        )

    return sort_anomalies(anomalies)


def parse_anomalies(
    records: Iterable[Any],
    thresholds: AnomalyThresholds | None = None,
) -> list[LatencyAnomaly]:
    """
    Parse anomaly records computed upstream.

    Records without a report id or a finite z-score are dropped. Severity is
    recomputed from the z-score; records the upstream flagged but which fall
    inside the local threshold are kept as ``anomalous``.
    """
    thresholds = thresholds or AnomalyThresholds()
    anomalies: list[LatencyAnomaly] = []

    for record in records:
        if not isinstance(record, Mapping):
            continue
        report_id = record.get("reportId")
        z_score = get_number(record, "zScore")
        if report_id is None or not is_finite_number(z_score):
            logger.debug(f"Skipping malformed anomaly record: {record!r}")
            continue

        value = get_number(record, "value")
        mean = get_number(record, "baselineMean")
        std_dev = get_number(record, "baselineStdDev")
        success_rate = get_number(record, "successRate")
        anomalies.append(
            LatencyAnomaly(
                report_id=str(report_id),
                task_id=get_string(record, "taskId"),
                task_label=get_string(record, "taskLabel"),
                project_name=get_string(record, "projectName"),
                organization_name=get_string(record, "organizationName"),
                started_at=get_string(record, "startedAt"),
                value=value if is_finite_number(value) else 0.0,
                baseline_mean=mean if is_finite_number(mean) else 0.0,
                baseline_std_dev=std_dev if is_finite_number(std_dev) else 0.0,
                z_score=z_score,
                success_rate=success_rate if is_finite_number(success_rate) else None,
                severity=classify_severity(z_score, thresholds) or AnomalySeverity.ANOMALOUS,
                metric=get_string(record, "metric") or "p95Ms",
            )
        )

    return sort_anomalies(anomalies)


_SEVERITY_RANK = {severity: rank for rank, severity in enumerate(AnomalySeverity)}


def sort_anomalies(anomalies: Iterable[LatencyAnomaly]) -> list[LatencyAnomaly]:
    """Order anomalies critical first, then by ``|z|`` descending, then newest first."""
    by_recency = sorted(
        anomalies,
        key=lambda anomaly: anomaly.started_at_datetime or _DATETIME_MIN,
        reverse=True,
    )
    return sorted(
        by_recency,
        key=lambda anomaly: (_SEVERITY_RANK[anomaly.severity], -abs(anomaly.z_score)),
    )


def group_anomalies_by_severity(
    anomalies: Iterable[LatencyAnomaly],
) -> dict[str, list[LatencyAnomaly]]:
    """Group anomalies into ``{"critical": [...], "anomalous": [...]}``, each sorted."""
    groups: dict[str, list[LatencyAnomaly]] = {
        severity.value: [] for severity in AnomalySeverity
    }
    for anomaly in sort_anomalies(anomalies):
        groups[anomaly.severity.value].append(anomaly)
    return groups

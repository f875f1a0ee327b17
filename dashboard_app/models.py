"""
Data models for the load-test dashboard.

This module defines the report and analytics records exchanged with the
load-testing platform API. Report payloads are loosely typed JSON in which
every nested field is optional, so each model is built through a
``from_dict`` constructor that performs guarded lookups: a missing key, a
value of the wrong type, or a non-numeric metric simply becomes ``None``.
Parsing never raises for malformed input.

Wire payloads use camelCase keys; the Python attributes use snake_case.
The analytics output records convert back through ``to_dict``.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ReportStatus(str, Enum):
    """Known execution statuses reported for a task run."""

    COMPLETED = "completed"
    FAILED = "failed"


class DeltaIntent(str, Enum):
    """
    Direction of a snapshot metric change.

    ``UP`` always means "improving", whether the underlying number rose
    (success rate) or fell (latency).
    """

    UP = "up"
    DOWN = "down"
    STEADY = "steady"


class AnomalySeverity(str, Enum):
    """Severity buckets for latency anomalies, most severe first."""

    CRITICAL = "critical"
    ANOMALOUS = "anomalous"


# -----------------------------------------------------------------------------
# Guarded field access
# -----------------------------------------------------------------------------

def get_mapping(data: Any, key: str) -> Mapping[str, Any] | None:
    """Return ``data[key]`` when ``data`` is a mapping and the value is one too."""
    if not isinstance(data, Mapping):
        return None
    value = data.get(key)
    return value if isinstance(value, Mapping) else None


def get_number(data: Any, key: str) -> float | None:
    """
    Return ``data[key]`` as a number, or ``None`` when absent or non-numeric.

    Booleans are rejected even though ``bool`` subclasses ``int``. Non-finite
    floats are returned as-is; callers that aggregate decide what to do with
    them.
    """
    if not isinstance(data, Mapping):
        return None
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def get_string(data: Any, key: str) -> str | None:
    """Return ``data[key]`` when it is a string, else ``None``."""
    if not isinstance(data, Mapping):
        return None
    value = data.get(key)
    return value if isinstance(value, str) else None


def is_finite_number(value: Any) -> bool:
    """Return True for real, finite ints and floats (booleans excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def parse_iso_datetime(iso_string: str | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp returned by the API into an aware UTC datetime.

    Handles the ``Z`` suffix used by JSON APIs. Naive values are assumed to
    already be UTC.

    Args:
        iso_string: An ISO-8601 formatted string, or ``None``.

    Returns:
        A timezone-aware :class:`datetime`, or ``None`` if the input was
        empty or could not be parsed.
    """
    if not iso_string:
        return None
    try:
        parsed = datetime.fromisoformat(iso_string.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# -----------------------------------------------------------------------------
# Report records
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class ReportMetrics:
    """Latency and success figures reported under ``summaryJson.metrics``."""

    average_ms: float | None = None
    min_ms: float | None = None
    max_ms: float | None = None
    p95_ms: float | None = None
    success_rate: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReportMetrics":
        return cls(
            average_ms=get_number(data, "averageMs"),
            min_ms=get_number(data, "minMs"),
            max_ms=get_number(data, "maxMs"),
            p95_ms=get_number(data, "p95Ms"),
            success_rate=get_number(data, "successRate"),
        )


@dataclass(frozen=True)
class ReportResults:
    """Raw request counters reported under ``summaryJson.results``."""

    total_requests: float | None = None
    success_count: float | None = None
    failure_count: float | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReportResults":
        return cls(
            total_requests=get_number(data, "totalRequests"),
            success_count=get_number(data, "successCount"),
            failure_count=get_number(data, "failureCount"),
        )

    def effective_total(self) -> float | None:
        """
        Return the request total used to derive a success rate.

        The explicit ``totalRequests`` wins; otherwise the total is the sum
        of the success and failure counters when both are present.
        """
        if self.total_requests is not None:
            return self.total_requests
        if self.success_count is not None and self.failure_count is not None:
            return self.success_count + self.failure_count
        return None

    def derived_success_rate(self) -> float | None:
        """Return ``successCount / total * 100``, or ``None`` when not derivable."""
        total = self.effective_total()
        if total is None or total <= 0 or self.success_count is None:
            return None
        rate = self.success_count / total * 100
        return rate if is_finite_number(rate) else None


@dataclass(frozen=True)
class ReportSummary:
    """
    Parsed ``summaryJson`` blob.

    ``metrics`` and ``results`` are independent shapes; either, both, or
    neither may be present. ``scenario``, ``request`` and ``raw`` are kept
    verbatim for display and never aggregated.
    """

    metrics: ReportMetrics | None = None
    results: ReportResults | None = None
    scenario: Mapping[str, Any] | None = None
    request: Mapping[str, Any] | None = None
    raw: Mapping[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ReportSummary":
        metrics = get_mapping(data, "metrics")
        results = get_mapping(data, "results")
        return cls(
            metrics=ReportMetrics.from_dict(metrics) if metrics is not None else None,
            results=ReportResults.from_dict(results) if results is not None else None,
            scenario=get_mapping(data, "scenario"),
            request=get_mapping(data, "request"),
            raw=get_mapping(data, "raw"),
        )


@dataclass(frozen=True)
class TaskRef:
    """The task a report belongs to, flattened for display and grouping."""

    id: str | None = None
    label: str | None = None
    method: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    organization_id: str | None = None
    organization_name: str | None = None
    organization_slug: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskRef":
        project = get_mapping(data, "project")
        organization = get_mapping(project, "organization")
        return cls(
            id=get_string(data, "id"),
            label=get_string(data, "label"),
            method=get_string(data, "method"),
            project_id=get_string(project, "id"),
            project_name=get_string(project, "name"),
            organization_id=get_string(organization, "id"),
            organization_name=get_string(organization, "name"),
            organization_slug=get_string(organization, "slug"),
        )


@dataclass(frozen=True)
class TaskReportActivity:
    """
    A single task execution report as returned by the recent-reports API.

    Attributes:
        id: Opaque report identifier.
        status: ``completed``, ``failed``, or any other status string.
        started_at: ISO-8601 start timestamp.
        completed_at: ISO-8601 completion timestamp, ``None`` while running
            or when the run was aborted.
        summary: Parsed ``summaryJson`` or ``None`` when absent.
        task: Reference to the originating task.
    """

    id: str | None
    status: str | None
    started_at: str | None
    completed_at: str | None = None
    summary: ReportSummary | None = None
    task: TaskRef = field(default_factory=TaskRef)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TaskReportActivity":
        """Build a report from its wire representation, never raising."""
        if not isinstance(data, Mapping):
            data = {}
        summary = get_mapping(data, "summaryJson")
        task = get_mapping(data, "task")
        report_id = data.get("id")
        return cls(
            id=str(report_id) if report_id is not None else None,
            status=get_string(data, "status"),
            started_at=get_string(data, "startedAt"),
            completed_at=get_string(data, "completedAt"),
            summary=ReportSummary.from_dict(summary) if summary is not None else None,
            task=TaskRef.from_dict(task) if task is not None else TaskRef(),
        )

    @property
    def metrics(self) -> ReportMetrics | None:
        return self.summary.metrics if self.summary is not None else None

    @property
    def results(self) -> ReportResults | None:
        return self.summary.results if self.summary is not None else None

    @property
    def started_at_datetime(self) -> datetime | None:
        return parse_iso_datetime(self.started_at)

    @property
    def completed_at_datetime(self) -> datetime | None:
        return parse_iso_datetime(self.completed_at)

    @property
    def is_completed(self) -> bool:
        return self.status == ReportStatus.COMPLETED.value

    def __repr__(self) -> str:
        """Return string representation of the report."""
        return f"<TaskReportActivity {self.id}: {self.task.label} ({self.status})>"


def coerce_report(report: TaskReportActivity | Mapping[str, Any]) -> TaskReportActivity:
    """Accept either a parsed report or its raw dict form."""
    if isinstance(report, TaskReportActivity):
        return report
    return TaskReportActivity.from_dict(report)


# -----------------------------------------------------------------------------
# Analytics output records
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class SnapshotDelta:
    """Signed, formatted change of a snapshot metric and its intent."""

    value: str
    intent: DeltaIntent

    def to_dict(self) -> dict[str, str]:
        return {"value": self.value, "intent": self.intent.value}


@dataclass(frozen=True)
class SnapshotMetric:
    """
    A formatted headline value with an optional delta.

    ``to_dict`` omits the ``delta`` key entirely when there is no delta.
    """

    value: str
    delta: SnapshotDelta | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"value": self.value}
        if self.delta is not None:
            data["delta"] = self.delta.to_dict()
        return data


@dataclass(frozen=True)
class LatencyAnomaly:
    """
    Verdict for a run whose p95 latency deviates from its task baseline.

    Attributes:
        report_id: Identifier of the anomalous report.
        task_id: Identifier of the task the run belongs to.
        task_label: Display label of the task.
        project_name: Name of the task's project.
        organization_name: Name of the project's organization.
        started_at: ISO-8601 start timestamp of the run.
        value: Observed p95 latency in milliseconds.
        baseline_mean: Mean p95 latency of the task's baseline runs.
        baseline_std_dev: Sample standard deviation of the baseline.
        z_score: ``(value - baseline_mean) / baseline_std_dev``.
        success_rate: Success percentage of the run, when known.
        severity: Severity bucket derived from ``|z_score|``.
        metric: The latency metric inspected; always ``"p95Ms"``.
    """

    report_id: str
    task_id: str | None
    task_label: str | None
    project_name: str | None
    organization_name: str | None
    started_at: str | None
    value: float
    baseline_mean: float
    baseline_std_dev: float
    z_score: float
    success_rate: float | None
    severity: AnomalySeverity
    metric: str = "p95Ms"

    @property
    def started_at_datetime(self) -> datetime | None:
        return parse_iso_datetime(self.started_at)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the anomaly to its camelCase wire representation.

        Returns:
            Dictionary containing all anomaly fields.
        """
        return {
            "reportId": self.report_id,
            "taskId": self.task_id,
            "taskLabel": self.task_label,
            "projectName": self.project_name,
            "organizationName": self.organization_name,
            "startedAt": self.started_at,
            "metric": self.metric,
            "value": self.value,
            "baselineMean": self.baseline_mean,
            "baselineStdDev": self.baseline_std_dev,
            "zScore": self.z_score,
            "successRate": self.success_rate,
            "severity": self.severity.value,
        }

    def __repr__(self) -> str:
        return f"<LatencyAnomaly {self.report_id}: {self.task_label} z={self.z_score}>"

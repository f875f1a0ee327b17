"""
Analyze a dump of task reports from the command line.

Reads a JSON array of task reports (the body returned by the platform's
recent-reports endpoint, newest first), prints the performance snapshot
and a table of latency anomalies, and exits with a status CI can act on.

Exit codes follow a three-state convention so that CI can distinguish
"anomalies found" from "script crashed":

- ``0``: no latency anomalies
- ``1``: at least one run is anomalous
- ``2``: the script itself failed (missing file, bad JSON or YAML, etc.)

Example::

    loadtest-analytics --reports reports.json --thresholds analytics.yml
"""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from .analytics import (
    SAMPLE_SIZE,
    AnomalyThresholds,
    build_performance_snapshot,
    detect_latency_anomalies,
    load_anomaly_thresholds,
)
from .analytics.snapshot import PerformanceSnapshot
from .formatters import NO_DATA, format_datetime, format_duration
from .models import LatencyAnomaly, coerce_report

EXIT_OK = 0
EXIT_ANOMALIES_FOUND = 1
EXIT_SCRIPT_ERROR = 2


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the report analyzer."""
    parser = argparse.ArgumentParser(
        description="Summarize task reports and flag latency anomalies."
    )
    parser.add_argument(
        "--reports",
        required=True,
        type=Path,
        help="Path to a JSON file holding an array of task reports, newest first",
    )
    parser.add_argument(
        "--thresholds",
        type=Path,
        default=None,
        help="Optional YAML file overriding the anomaly thresholds",
    )
    parser.add_argument(
        "--sample-size",
        type=int,
        default=SAMPLE_SIZE,
        help=f"Samples per snapshot metric (default: {SAMPLE_SIZE})",
    )
    return parser.parse_args(argv)


def _load_reports(path: Path) -> list[Any]:
    """
    Read the report array from ``path``.

    Raises:
        ValueError: If the file is not valid JSON or not a JSON array.
    """
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Reports file is not valid JSON: {exc}") from exc

    if not isinstance(data, list):
        raise ValueError("Reports file must contain a JSON array of reports")
    return data


def describe_latest_run(reports: list[Any]) -> str | None:
    """
    Summarize the newest report as ``"<task> started <when>, took <duration>"``.

    Returns:
        ``None`` when there are no reports or the newest has no start time.
        The duration is left out when the run has no completion time.
    """
    if not reports:
        return None
    latest = coerce_report(reports[0])
    started = latest.started_at_datetime
    if started is None:
        return None

    label = latest.task.label or latest.task.id or "?"
    line = f"Latest run: {label} started {format_datetime(started)}"
    completed = latest.completed_at_datetime
    if completed is not None:
        line += f", took {format_duration(started, completed)}"
    return line


def _print_snapshot(snapshot: PerformanceSnapshot, report_count: int) -> None:
    """Print the snapshot metrics to stdout."""
    print(f"Performance Snapshot ({report_count} reports)")
    print("-" * 60)
    rows = (
        ("Avg. response", snapshot.latency),
        ("Success rate", snapshot.success_rate),
    )
    for title, metric in rows:
        delta = ""
        if metric.delta is not None:
            delta = f"{metric.delta.value} ({metric.delta.intent.value})"
        print(f"{title:<22}{metric.value:>14}{delta:>24}")
    print("-" * 60)


def _print_anomalies(anomalies: list[LatencyAnomaly], thresholds: AnomalyThresholds) -> None:
    """Print a human-readable anomaly table to stdout."""
    print(f"Latency Anomalies (|z| > {thresholds.z_threshold})")
    print("-" * 60)
    if not anomalies:
        print(f"No latency anomalies detected within ±{thresholds.z_threshold}σ")
        return

    print(
        f"{'Task':<20}{'Started':<21}{'p95 (ms)':>10}{'Baseline':>12}"
        f"{'z':>8}{'Severity':>10}"
    )
    print("-" * 81)
    for anomaly in anomalies:
        label = (anomaly.task_label or anomaly.task_id or "?")[:19]
        started = anomaly.started_at_datetime
        started_label = format_datetime(started) if started is not None else NO_DATA
        print(
            f"{label:<20}{started_label:<21}{anomaly.value:>10.2f}"
            f"{anomaly.baseline_mean:>12.2f}{anomaly.z_score:>8.2f}"
            f"{anomaly.severity.value:>10}"
        )
    print("-" * 81)


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point: load reports and thresholds, analyze, and print results.

    Returns:
        ``EXIT_OK`` (0) when no anomalies are found,
        ``EXIT_ANOMALIES_FOUND`` (1) when any are, or
        ``EXIT_SCRIPT_ERROR`` (2) on unexpected failures.
    """
    args = parse_args(argv)

    try:
        thresholds = AnomalyThresholds()
        if args.thresholds is not None:
            thresholds = load_anomaly_thresholds(args.thresholds, thresholds)
        reports = _load_reports(args.reports)

        snapshot = build_performance_snapshot(reports, sample_size=args.sample_size)
        anomalies = detect_latency_anomalies(reports, thresholds)
    except Exception as exc:
        print(f"Report analysis failed: {exc}", file=sys.stderr)
        return EXIT_SCRIPT_ERROR

    _print_snapshot(snapshot, len(reports))
    latest_run = describe_latest_run(reports)
    if latest_run is not None:
        print(latest_run)
    print()
    _print_anomalies(anomalies, thresholds)
    return EXIT_ANOMALIES_FOUND if anomalies else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

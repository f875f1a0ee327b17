"""
Unit tests for latency anomaly detection.

Key Concepts Demonstrated:
- Statistical boundary testing (threshold, critical threshold)
- Degenerate-input testing (single run, zero variance, NaN)
- Ordering and grouping assertions on classifier output
"""

import math

import pytest

from dashboard_app.analytics.anomalies import (
    AnomalyThresholds,
    Baseline,
    classify_severity,
    compute_baseline,
    detect_latency_anomalies,
    group_anomalies_by_severity,
    parse_anomalies,
    score_observation,
    sort_anomalies,
)
from dashboard_app.models import AnomalySeverity, ReportStatus


pytestmark = pytest.mark.unit


# Mean 100, sample standard deviation ~8.94.
STEADY_HISTORY = [90, 100, 110, 90, 100, 110]


def test_compute_baseline_uses_sample_standard_deviation():
    baseline = compute_baseline([90, 100, 110])

    assert baseline.mean == pytest.approx(100.0)
    assert baseline.std_dev == pytest.approx(10.0)
    assert baseline.sample_count == 3


def test_compute_baseline_needs_two_values():
    assert compute_baseline([]) is None
    assert compute_baseline([100]) is None
    assert compute_baseline([100, math.nan]) is None


def test_score_observation():
    baseline = Baseline(mean=100.0, std_dev=10.0, sample_count=5)

    assert score_observation(125.0, baseline, AnomalyThresholds()) == pytest.approx(2.5)
    assert score_observation(75.0, baseline, AnomalyThresholds()) == pytest.approx(-2.5)


def test_score_observation_guards_zero_variance():
    baseline = Baseline(mean=100.0, std_dev=0.0, sample_count=5)

    assert score_observation(10_000.0, baseline, AnomalyThresholds()) is None


def test_score_observation_guards_small_baselines():
    baseline = Baseline(mean=100.0, std_dev=10.0, sample_count=2)

    assert score_observation(500.0, baseline, AnomalyThresholds(min_baseline_samples=3)) is None
    assert score_observation(500.0, None, AnomalyThresholds()) is None


def test_min_baseline_samples_never_below_two():
    assert AnomalyThresholds(min_baseline_samples=0).min_baseline_samples == 2


@pytest.mark.parametrize(
    "z_score,expected",
    [
        (0.0, None),
        (2.25, None),
        (2.26, AnomalySeverity.ANOMALOUS),
        (-2.5, AnomalySeverity.ANOMALOUS),
        (3.0, AnomalySeverity.CRITICAL),
        (-4.0, AnomalySeverity.CRITICAL),
        (None, None),
        (math.nan, None),
    ],
)
def test_classify_severity(z_score, expected):
    assert classify_severity(z_score, AnomalyThresholds()) is expected


def test_latest_run_far_above_baseline_is_critical(task_history):
    # Arrange
    reports = task_history(STEADY_HISTORY + [200], task_id="t-1")

    # Act
    anomalies = detect_latency_anomalies(reports)

    # Assert
    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.task_id == "t-1"
    assert anomaly.report_id == reports[0]["id"]
    assert anomaly.value == 200
    assert anomaly.baseline_mean == pytest.approx(100.0)
    assert anomaly.z_score == pytest.approx(11.18, abs=0.01)
    assert anomaly.severity is AnomalySeverity.CRITICAL


def test_moderate_deviation_is_anomalous_not_critical(task_history):
    # Arrange -- baseline std dev is ~8.94, so 125 scores ~2.80
    reports = task_history(STEADY_HISTORY + [125])

    # Act
    anomalies = detect_latency_anomalies(reports)

    # Assert
    assert [anomaly.severity for anomaly in anomalies] == [AnomalySeverity.ANOMALOUS]


def test_run_within_threshold_is_not_flagged(task_history):
    reports = task_history(STEADY_HISTORY + [105])

    assert detect_latency_anomalies(reports) == []


def test_single_historical_run_is_never_anomalous(task_history):
    # Arrange -- one prior run; even with min samples lowered to 2 there is no spread
    reports = task_history([100, 100_000])

    # Act
    anomalies = detect_latency_anomalies(
        reports, AnomalyThresholds(min_baseline_samples=1)
    )

    # Assert
    assert anomalies == []


def test_zero_variance_baseline_is_never_anomalous(task_history):
    reports = task_history([100, 100, 100, 100, 5_000])

    assert detect_latency_anomalies(reports) == []


def test_under_sampled_baseline_is_never_anomalous(task_history):
    reports = task_history([90, 110, 10_000])

    assert detect_latency_anomalies(reports, AnomalyThresholds(min_baseline_samples=3)) == []


def test_only_latest_run_per_task_is_evaluated(task_history):
    # Arrange -- the spike is in the history, the latest run is normal
    reports = task_history([90, 110, 100, 1_000, 95])

    # Act / Assert
    assert detect_latency_anomalies(reports) == []


def test_reports_are_ordered_by_start_time_not_input_order(task_history):
    # Arrange
    reports = task_history(STEADY_HISTORY + [200])

    # Act -- shuffle to oldest-first
    anomalies = detect_latency_anomalies(list(reversed(reports)))

    # Assert
    assert anomalies[0].value == 200


def test_failed_and_metric_less_runs_are_ignored(report_factory, task_history):
    # Arrange -- a failed spike and a run without p95 are newer than the normal run
    reports = task_history(STEADY_HISTORY + [100])
    reports.insert(0, report_factory(p95_ms=50_000, status=ReportStatus.FAILED.value, hours_ago=0))
    reports.insert(0, report_factory(average_ms=50_000, hours_ago=-1))

    # Act / Assert
    assert detect_latency_anomalies(reports) == []


def test_baseline_window_limits_history(task_history):
    # Arrange -- old noisy runs fall outside a window of 4
    reports = task_history([10, 1_000, 10, 1_000] + [100, 100, 110, 90] + [200])

    # Act
    narrow = detect_latency_anomalies(reports, AnomalyThresholds(baseline_window=4))
    wide = detect_latency_anomalies(reports, AnomalyThresholds(baseline_window=20))

    # Assert
    assert len(narrow) == 1
    assert wide == []


def test_success_rate_carried_through(report_factory, task_history):
    reports = task_history(STEADY_HISTORY)
    reports.insert(
        0,
        report_factory(
            p95_ms=200,
            hours_ago=0,
            results={"totalRequests": 200, "successCount": 190},
        ),
    )

    anomalies = detect_latency_anomalies(reports)

    assert anomalies[0].success_rate == pytest.approx(95.0)


def test_tasks_are_evaluated_independently(task_history):
    # Arrange
    reports = (
        task_history(STEADY_HISTORY + [200], task_id="spiky")
        + task_history(STEADY_HISTORY + [101], task_id="calm")
        + task_history(STEADY_HISTORY + [125], task_id="wobbly")
    )

    # Act
    anomalies = detect_latency_anomalies(reports)

    # Assert -- critical first
    assert [anomaly.task_id for anomaly in anomalies] == ["spiky", "wobbly"]


def test_detection_never_emits_non_finite_values(task_history):
    reports = task_history(STEADY_HISTORY + [math.inf])

    assert detect_latency_anomalies(reports) == []


def _upstream_record(report_id, z_score, started_at="2025-03-01T12:00:00Z", **extra):
    record = {
        "reportId": report_id,
        "taskId": "t-1",
        "taskLabel": "Checkout",
        "projectName": "Storefront",
        "organizationName": "Acme",
        "startedAt": started_at,
        "metric": "p95Ms",
        "value": 900,
        "baselineMean": 400,
        "baselineStdDev": 100,
        "zScore": z_score,
        "successRate": 98.5,
    }
    record.update(extra)
    return record


def test_parse_anomalies_drops_malformed_records():
    # Arrange
    records = [
        _upstream_record("ok", 5.0),
        _upstream_record(None, 5.0),
        _upstream_record("nan", math.nan),
        _upstream_record("string-z", "5"),
        "not-a-record",
    ]

    # Act
    anomalies = parse_anomalies(records)

    # Assert
    assert [anomaly.report_id for anomaly in anomalies] == ["ok"]
    assert anomalies[0].success_rate == 98.5


def test_parse_anomalies_recomputes_severity():
    anomalies = parse_anomalies([_upstream_record("a", 2.5), _upstream_record("b", -3.5)])

    assert [(a.report_id, a.severity) for a in anomalies] == [
        ("b", AnomalySeverity.CRITICAL),
        ("a", AnomalySeverity.ANOMALOUS),
    ]


def test_sort_anomalies_orders_by_severity_magnitude_then_recency():
    # Arrange
    anomalies = parse_anomalies([
        _upstream_record("older", 2.5, started_at="2025-03-01T10:00:00Z"),
        _upstream_record("newer", 2.5, started_at="2025-03-01T11:00:00Z"),
        _upstream_record("bigger", 2.9),
        _upstream_record("critical", -3.1),
    ])

    # Act
    ordered = sort_anomalies(reversed(anomalies))

    # Assert
    assert [anomaly.report_id for anomaly in ordered] == ["critical", "bigger", "newer", "older"]


def test_group_anomalies_by_severity():
    anomalies = parse_anomalies([
        _upstream_record("a", 2.5),
        _upstream_record("b", 4.0),
        _upstream_record("c", 3.5),
    ])

    groups = group_anomalies_by_severity(anomalies)

    assert list(groups) == ["critical", "anomalous"]
    assert [anomaly.report_id for anomaly in groups["critical"]] == ["b", "c"]
    assert [anomaly.report_id for anomaly in groups["anomalous"]] == ["a"]


def test_group_anomalies_on_empty_input():
    assert group_anomalies_by_severity([]) == {"critical": [], "anomalous": []}


def test_compute_baseline_returns_none_when_spread_overflows():
    # Sample standard deviation here is ~2.4e308, past the float maximum
    assert compute_baseline([1.7e308, -1.7e308]) is None


def test_compute_baseline_on_huge_but_representable_spread():
    baseline = compute_baseline([1e200, -1e200, 0.0])

    assert baseline is None or math.isfinite(baseline.std_dev)


def test_detection_skips_tasks_whose_baseline_overflows(task_history):
    # Arrange
    reports = task_history([1.7e308, -1.7e308, 1.7e308, -1.7e308, 100])

    # Act
    anomalies = detect_latency_anomalies(reports)

    # Assert
    assert anomalies == []

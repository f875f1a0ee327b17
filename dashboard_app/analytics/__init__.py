"""
Performance analytics over task execution reports.

All functions here are pure: they take already-fetched report lists and
return new records without touching any shared state.
"""

from .anomalies import (
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
from .samples import SAMPLE_SIZE, PerformanceSamples, extract_samples
from .snapshot import (
    PerformanceSnapshot,
    build_performance_snapshot,
    classify_intent,
    compute_snapshot_metric,
)
from .thresholds import load_anomaly_thresholds

__all__ = [
    "SAMPLE_SIZE",
    "AnomalyThresholds",
    "Baseline",
    "PerformanceSamples",
    "PerformanceSnapshot",
    "build_performance_snapshot",
    "classify_intent",
    "classify_severity",
    "compute_baseline",
    "compute_snapshot_metric",
    "detect_latency_anomalies",
    "extract_samples",
    "group_anomalies_by_severity",
    "load_anomaly_thresholds",
    "parse_anomalies",
    "score_observation",
    "sort_anomalies",
]

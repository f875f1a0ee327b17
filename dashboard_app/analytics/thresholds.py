"""
Load anomaly thresholds from a YAML file.

The file is a flat mapping; every key is optional and missing keys keep the
value from ``base``::

    z_threshold: 2.25
    critical_z_threshold: 3.0
    min_baseline_samples: 3
    baseline_window: 20
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import yaml

from .anomalies import AnomalyThresholds

_FLOAT_KEYS = ("z_threshold", "critical_z_threshold")
_INT_KEYS = ("min_baseline_samples", "baseline_window")


def load_anomaly_thresholds(
    path: str | Path,
    base: AnomalyThresholds | None = None,
) -> AnomalyThresholds:
    """
    Read threshold overrides from a YAML file.

    Args:
        path: Path to the YAML file.
        base: Thresholds to override; defaults when ``None``.

    Returns:
        ``base`` with the values found in the file applied.

    Raises:
        RuntimeError: If the file cannot be read.
        ValueError: If the file is not a mapping or a value is not numeric.
    """
    base = base or AnomalyThresholds()
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except OSError as exc:
        raise RuntimeError(f"Unable to read thresholds file at '{path}'.") from exc
    except yaml.YAMLError as exc:
        raise ValueError(f"Thresholds file '{path}' is not valid YAML") from exc

    if not isinstance(data, dict):
        raise ValueError("Thresholds file must contain a mapping of threshold names to numbers")

    overrides: dict[str, float | int] = {}
    try:
        for key in _FLOAT_KEYS:
            if key in data:
                overrides[key] = float(data[key])
        for key in _INT_KEYS:
            if key in data:
                overrides[key] = int(data[key])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Thresholds file values must be numeric: {exc}") from exc

    return replace(base, **overrides)

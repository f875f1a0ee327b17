"""Display formatting helpers shared by the analytics and the API layer."""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_UP, Context, Decimal

# Placeholder rendered when a metric has no samples.
NO_DATA = "—"

# Negative deltas use the typographic minus sign, not a hyphen.
MINUS_SIGN = "−"


def format_fixed(value: float, fraction_digits: int) -> str:
    """
    Format a non-negative number with a fixed number of decimals.

    Rounds the exact binary value half-up, so ``466.666...`` with zero
    digits gives ``"467"`` and ``0.5`` gives ``"1"``. Infinity and NaN
    are printed as ``"inf"`` and ``"nan"``.
    """
    if not math.isfinite(value):
        return f"{value:.{fraction_digits}f}"

    exact = Decimal(value)
    quantum = Decimal(1).scaleb(-fraction_digits)
    # Room for every integer digit, the decimals and a rounding carry.
    context = Context(prec=max(exact.adjusted(), 0) + fraction_digits + 2)
    rounded = exact.quantize(quantum, rounding=ROUND_HALF_UP, context=context)
    return format(rounded, "f")


def format_metric_value(
    value: float,
    unit: str,
    fraction_digits: int,
    include_sign: bool = False,
) -> str:
    """
    Format a metric value with its unit, e.g. ``"467 ms"`` or ``"+4.0 %"``.

    Args:
        value: The number to format. Its magnitude is printed.
        unit: Unit suffix, separated from the number by a space.
        fraction_digits: Number of decimals to keep.
        include_sign: Prefix ``+`` for positive and U+2212 for negative
            values. Zero gets no sign.

    Returns:
        The formatted string.
    """
    sign = ""
    if include_sign:
        if value > 0:
            sign = "+"
        elif value < 0:
            sign = MINUS_SIGN
    return f"{sign}{format_fixed(abs(value), fraction_digits)} {unit}"


def format_duration(start: datetime, end: datetime) -> str:
    """Format the span between two datetimes as ``"2m 5s"`` or ``"42s"``."""
    diff_ms = max(0.0, (end - start).total_seconds() * 1000)
    seconds = int(diff_ms // 1000)
    minutes, remaining_seconds = divmod(seconds, 60)
    if minutes == 0:
        return f"{remaining_seconds}s"
    return f"{minutes}m {remaining_seconds}s"


def format_datetime(value: datetime) -> str:
    """Format a datetime as ``"Jan 05, 2025, 14:03"``."""
    return value.strftime("%b %d, %Y, %H:%M")

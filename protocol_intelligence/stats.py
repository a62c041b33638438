#!/usr/bin/env python3
"""
Order statistics used by benchmarking and corpus aggregation.

Quantiles use linear interpolation between order statistics: for a sorted
sample of size n the p-th percentile sits at index p/100 * (n - 1).
"""

from bisect import bisect_left, bisect_right
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

SUMMARY_QUANTILES = (("p25", 25), ("median", 50), ("p75", 75), ("p90", 90), ("p95", 95))
_KNOTS = (("min", 0), ("p25", 25), ("median", 50), ("p75", 75), ("p90", 90), ("p95", 95), ("max", 100))


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linearly interpolated p-th percentile of an ascending sample."""
    if not sorted_values:
        raise ValueError("percentile of an empty sample")
    index = p / 100 * (len(sorted_values) - 1)
    lower = int(index)
    upper = min(lower + 1, len(sorted_values) - 1)
    weight = index - lower
    return sorted_values[lower] + (sorted_values[upper] - sorted_values[lower]) * weight


def percentile_rank(sorted_values: Sequence[float], value: float) -> float:
    """
    Inverse of :func:`percentile`: the p at which the interpolated quantile
    equals ``value``.

    Values outside the sample clamp to 0 or 100. When the sample holds
    ``value`` several times the middle of that run is used.
    """
    n = len(sorted_values)
    if n == 0:
        raise ValueError("percentile rank in an empty sample")
    if n == 1:
        return 50.0 if value == sorted_values[0] else (0.0 if value < sorted_values[0] else 100.0)

    lo = bisect_left(sorted_values, value)
    hi = bisect_right(sorted_values, value)
    if hi > lo:
        position = (lo + hi - 1) / 2
    elif lo == 0:
        return 0.0
    elif lo == n:
        return 100.0
    else:
        below, above = sorted_values[lo - 1], sorted_values[lo]
        position = (lo - 1) + (value - below) / (above - below)
    return position / (n - 1) * 100


def summarize(values: Iterable[float]) -> Dict[str, float]:
    """count/min/p25/median/p75/p90/p95/max/mean of a sample."""
    ordered = sorted(v for v in values if v is not None)
    if not ordered:
        return {"count": 0}
    summary = {"count": len(ordered), "min": ordered[0], "max": ordered[-1]}
    for name, p in SUMMARY_QUANTILES:
        summary[name] = percentile(ordered, p)
    summary["mean"] = sum(ordered) / len(ordered)
    return summary


def knot_percentile_rank(stats: Dict[str, float], value: float) -> Optional[float]:
    """
    Percentile of ``value`` from aggregate statistics alone.

    Interpolates piecewise-linearly between whichever of min, p25, median,
    p75, p90, p95 and max the summary carries. Returns None when fewer than
    two knots are known.
    """
    knots: List[Tuple[float, float]] = [
        (float(stats[key]), float(p)) for key, p in _KNOTS if stats.get(key) is not None
    ]
    if len(knots) < 2:
        return None
    if value <= knots[0][0]:
        return knots[0][1]
    if value >= knots[-1][0]:
        return knots[-1][1]
    for (v_lo, p_lo), (v_hi, p_hi) in zip(knots, knots[1:]):
        if v_lo <= value <= v_hi:
            if v_hi == v_lo:
                return (p_lo + p_hi) / 2
            return p_lo + (value - v_lo) / (v_hi - v_lo) * (p_hi - p_lo)
    return None


def distribution(values: Iterable[float], bins: Sequence[Tuple[str, float, float]]) -> Dict[str, int]:
    """Count values into labelled inclusive ``(label, low, high)`` bins."""
    counts = {label: 0 for label, _, _ in bins}
    for value in values:
        if value is None:
            continue
        for label, low, high in bins:
            if low <= value <= high:
                counts[label] += 1
                break
    return counts

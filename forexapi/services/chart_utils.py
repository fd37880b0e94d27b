"""Summaries for the dashboard's historical chart."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

# Percentage moves smaller than this count as flat.
TREND_THRESHOLD_PCT = 0.005


def summarize_series(points: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return first/last values and the change across ``points``.

    ``points`` are API series entries (``{"date", "rate"}``) in date order.
    Returns None when there is nothing meaningful to compare.
    """
    if not points:
        return None
    first, last = points[0], points[-1]
    first_rate, last_rate = first.get("rate"), last.get("rate")
    if first_rate is None or last_rate is None or first_rate == 0:
        return None
    absolute = last_rate - first_rate
    percent = absolute / first_rate * 100
    if percent > TREND_THRESHOLD_PCT:
        trend = "up"
    elif percent < -TREND_THRESHOLD_PCT:
        trend = "down"
    else:
        trend = "flat"
    return {
        "start_date": first["date"],
        "end_date": last["date"],
        "first": first_rate,
        "last": last_rate,
        "absolute_change": round(absolute, 6),
        "percent_change": round(percent, 2),
        "trend": trend,
    }

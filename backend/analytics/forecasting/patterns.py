"""
analytics/forecasting/patterns.py
─────────────────────────────────
Pure NumPy / pandas statistics over metric series.

Every helper returns ``0.0`` (or an empty result) on degenerate input
rather than NaN, so callers can surface "insufficient data" as a value.

Functions
---------
to_series, population_std, autocorrelation, linear_regression,
seasonal_phase, local_maxima
"""

from typing import Iterable, Tuple

import numpy as np
import pandas as pd

from schemas.forecast import TimeSeriesPoint


def to_series(points: Iterable[TimeSeriesPoint]) -> pd.Series:
    """
    Build a value series indexed by observation time, in insertion order.

    Timezone-aware timestamps are normalised to UTC so a mix of offsets
    still yields a proper ``DatetimeIndex``.
    """
    points = list(points)
    timestamps = [p.timestamp for p in points]
    aware = any(ts.tzinfo is not None for ts in timestamps)
    index = pd.DatetimeIndex(pd.to_datetime(timestamps, utc=aware))
    return pd.Series([p.value for p in points], index=index, dtype=float)


def population_std(values) -> float:
    """Population (``ddof=0``) standard deviation; ``0.0`` when empty."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.std(arr))


def autocorrelation(values, lag: int) -> float:
    """
    Lagged correlation: Pearson ``r`` of ``x[:-lag]`` against ``x[lag:]``.

    Always within [-1, 1].  A clean periodic signal spanning two cycles
    scores 1 at its period.

    Returns:
        ``0.0`` when fewer than two lagged pairs exist or either side has
        zero variance.
    """
    x = np.asarray(values, dtype=float)
    if lag <= 0 or x.size - lag < 2:
        return 0.0
    head = x[:-lag] - x[:-lag].mean()
    tail = x[lag:] - x[lag:].mean()
    denom_head = float(np.sum(head * head))
    denom_tail = float(np.sum(tail * tail))
    if denom_head == 0.0 or denom_tail == 0.0:
        return 0.0
    r = float(np.sum(head * tail)) / np.sqrt(denom_head * denom_tail)
    return float(max(-1.0, min(1.0, r)))


def linear_regression(x, y) -> Tuple[float, float]:
    """
    Ordinary least squares of ``y`` on ``x``.

    Returns:
        ``(slope, r_squared)``; ``(0.0, 0.0)`` when ``x`` has no spread,
        and ``r_squared = 0.0`` when ``y`` is constant.
    """
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    n = x.size
    if n < 2:
        return 0.0, 0.0

    sum_x, sum_y = x.sum(), y.sum()
    denominator = n * float(np.sum(x * x)) - sum_x * sum_x
    if denominator == 0.0:
        return 0.0, 0.0

    slope = (n * float(np.sum(x * y)) - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n

    ss_total = float(np.sum((y - y.mean()) ** 2))
    if ss_total == 0.0:
        return float(slope), 0.0
    ss_residual = float(np.sum((y - (slope * x + intercept)) ** 2))
    return float(slope), 1.0 - ss_residual / ss_total


def seasonal_phase(values, lag: int) -> float:
    """
    Position of the cycle peak as a fraction of the period, in [0, 1).

    Values are folded by ``index mod lag`` and averaged; the argmax of the
    folded profile is the phase.
    """
    x = pd.Series(np.asarray(values, dtype=float))
    if lag <= 0 or x.empty:
        return 0.0
    profile = x.groupby(np.arange(len(x)) % lag).mean()
    return float(profile.idxmax()) / lag


def local_maxima(series: pd.Series) -> pd.Series:
    """
    Observations strictly greater than both neighbours.

    Returns:
        Sub-series of ``series`` (same index) holding only the peaks.
    """
    if len(series) < 3:
        return series.iloc[0:0]
    values = series.to_numpy(dtype=float)
    middle = values[1:-1]
    mask = (middle > values[:-2]) & (middle > values[2:])
    return series.iloc[1:-1][mask]

"""
Pydantic schemas for time-series ingestion and forecast reports.

Every forecast-family output (point forecasts, seasonal patterns, trend
reports, inventory advice) is a read-derived value: it is recomputed on
each call and never cached by the engine.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class TimeSeriesPoint(BaseModel):
    """
    One observation of a metric.

    Attributes:
        timestamp: When the value was observed.
        value:     Observed value (orders, covers, revenue …).
        metadata:  Free-form caller payload, stored untouched.
    """

    timestamp: datetime
    value: float
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ForecastPoint(BaseModel):
    """
    A single forecast step.

    Invariant: ``confidence_low <= predicted_value <= confidence_high``.
    """

    timestamp: datetime
    predicted_value: float
    confidence_low: float
    confidence_high: float
    method: str = "holt-winters"


class SeasonalPattern(BaseModel):
    """
    Seasonality summary for one metric.

    Attributes:
        period:         Detected cycle length (``None`` when not detected).
        amplitude:      Lagged correlation at the winning lag, in [-1, 1].
        phase:          Peak position within the cycle, as a fraction in [0, 1).
        trend_slope:    Crude ``(last - first) / count`` slope.
        baseline_value: Series mean.
        detected:       Whether a daily or weekly cycle was found.
    """

    period: Optional[timedelta] = None
    amplitude: float = 0.0
    phase: float = 0.0
    trend_slope: float = 0.0
    baseline_value: float = 0.0
    detected: bool = False

    @property
    def period_hours(self) -> float:
        """Cycle length in hours (``0.0`` when nothing was detected)."""
        if self.period is None:
            return 0.0
        return self.period.total_seconds() / 3600.0


class TrendReport(BaseModel):
    """Least-squares trend of value against elapsed hours."""

    direction: Literal["up", "down", "stable", "unknown"]
    slope: float = 0.0
    r_squared: float = 0.0
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class InventoryRecommendation(BaseModel):
    """Stock advice derived from a demand forecast over the lead time."""

    item_id: str
    periods: int = 0
    expected_demand: float = 0.0
    safety_stock: float = 0.0
    recommended_stock: float = 0.0
    service_level: float = 0.95


class MetricSummary(BaseModel):
    """Per-metric overview returned by ``PredictiveAnalytics.get_metrics``."""

    data_points: int
    latest_value: float
    trend: str
    trend_slope: float

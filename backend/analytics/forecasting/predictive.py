"""
analytics/forecasting/predictive.py
───────────────────────────────────
Per-metric time-series store plus the demand analytics built on it.

Each metric keeps a sliding window of at most ``max_points`` observations
(oldest evicted first).  Forecasts, trend reports and inventory advice are
recomputed on every call from a snapshot of the window; only the last
detected seasonal pattern is remembered, because peak-time projection
depends on it.

Insufficient data is never an error here: short series produce empty
forecasts, ``detected=False`` patterns, ``"unknown"`` trends and zeroed
inventory advice.
"""

import logging
import math
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Deque, Dict, List, Optional

from readerwriterlock import rwlock

from analytics.forecasting.base import HoltForecaster
from analytics.forecasting.patterns import (
    autocorrelation,
    linear_regression,
    local_maxima,
    population_std,
    seasonal_phase,
    to_series,
)
from schemas.forecast import (
    ForecastPoint,
    InventoryRecommendation,
    MetricSummary,
    SeasonalPattern,
    TimeSeriesPoint,
    TrendReport,
)

logger = logging.getLogger(__name__)


class PredictiveAnalytics:
    """
    Forecasting, seasonality, trend and inventory analytics over metric series.

    Args:
        max_points:             Sliding-window size per metric.
        alpha:                  Holt level smoothing constant.
        beta:                   Holt trend smoothing constant.
        z_score:                Forecast band half-width in std-devs.
        min_forecast_points:    Observations required to forecast.
        min_seasonality_points: Observations required to test for seasonality.
        seasonality_threshold:  |autocorrelation| needed to declare a cycle.
        daily_lag:              Lag (in observations) of the daily cycle.
        weekly_lag:             Lag (in observations) of the weekly cycle.
        trend_threshold:        |slope| per hour separating up/down from stable.
        safety_stock_z:         One-sided z for the service level.
        service_level:          Reported target service level.
        item_demand_metric:     Template naming an item's demand series.
    """

    def __init__(
        self,
        max_points: int = 1000,
        alpha: float = 0.3,
        beta: float = 0.1,
        z_score: float = 1.96,
        min_forecast_points: int = 3,
        min_seasonality_points: int = 14,
        seasonality_threshold: float = 0.5,
        daily_lag: int = 24,
        weekly_lag: int = 168,
        trend_threshold: float = 0.01,
        safety_stock_z: float = 1.65,
        service_level: float = 0.95,
        item_demand_metric: str = "item_demand_{item_id}",
    ) -> None:
        self.max_points = max_points
        self.alpha = alpha
        self.beta = beta
        self.z_score = z_score
        self.min_forecast_points = min_forecast_points
        self.min_seasonality_points = min_seasonality_points
        self.seasonality_threshold = seasonality_threshold
        self.daily_lag = daily_lag
        self.weekly_lag = weekly_lag
        self.trend_threshold = trend_threshold
        self.safety_stock_z = safety_stock_z
        self.service_level = service_level
        self.item_demand_metric = item_demand_metric

        self._lock = rwlock.RWLockFair()
        self._series: Dict[str, Deque[TimeSeriesPoint]] = {}
        self._patterns: Dict[str, SeasonalPattern] = {}

    @classmethod
    def from_settings(cls, settings) -> "PredictiveAnalytics":
        """Build the engine from :class:`core.config.Settings`."""
        return cls(
            max_points=settings.TIMESERIES_MAX_POINTS,
            alpha=settings.HOLT_ALPHA,
            beta=settings.HOLT_BETA,
            z_score=settings.FORECAST_Z_SCORE,
            min_forecast_points=settings.MIN_FORECAST_POINTS,
            min_seasonality_points=settings.MIN_SEASONALITY_POINTS,
            seasonality_threshold=settings.SEASONALITY_THRESHOLD,
            daily_lag=settings.DAILY_LAG,
            weekly_lag=settings.WEEKLY_LAG,
            trend_threshold=settings.TREND_THRESHOLD,
            safety_stock_z=settings.SAFETY_STOCK_Z,
            service_level=settings.SERVICE_LEVEL,
            item_demand_metric=settings.ITEM_DEMAND_METRIC,
        )

    # ── ingestion ────────────────────────────────────────────────────────

    def add_data_point(self, metric: str, point: TimeSeriesPoint) -> None:
        """Append ``point`` to the window of ``metric``; no ordering is enforced."""
        with self._lock.gen_wlock():
            window = self._series.get(metric)
            if window is None:
                window = self._series[metric] = deque(maxlen=self.max_points)
            window.append(point)

    def demand_metric_for(self, item_id: str) -> str:
        """Name of the demand series ``optimize_inventory`` reads for ``item_id``."""
        return self.item_demand_metric.format(item_id=item_id)

    def record_item_demand(self, item_id: str, point: TimeSeriesPoint) -> None:
        """Feed one demand observation for ``item_id``."""
        self.add_data_point(self.demand_metric_for(item_id), point)

    def get_series(self, metric: str) -> List[TimeSeriesPoint]:
        """Copy of the current window for ``metric`` (empty if unknown)."""
        with self._lock.gen_rlock():
            return list(self._series.get(metric, ()))

    # ── forecasting ──────────────────────────────────────────────────────

    def forecast_demand(self, metric: str, periods: int) -> List[ForecastPoint]:
        """
        Holt forecast of ``metric`` for ``periods`` future steps.

        Returns:
            Exactly ``periods`` points, or ``[]`` with fewer than
            ``min_forecast_points`` observations.
        """
        return self._forecast(metric, self.get_series(metric), periods)

    def _forecast(
        self, metric: str, points: List[TimeSeriesPoint], periods: int
    ) -> List[ForecastPoint]:
        """Holt forecast over an already-taken snapshot of ``metric``."""
        if periods <= 0 or len(points) < self.min_forecast_points:
            logger.debug(
                "No forecast for %s: %d points, %d periods requested",
                metric,
                len(points),
                periods,
            )
            return []

        model = HoltForecaster(
            alpha=self.alpha,
            beta=self.beta,
            z_score=self.z_score,
            min_samples=self.min_forecast_points,
        )
        model.fit(to_series(points))
        return model.forecast(periods)

    # ── pattern analysis ─────────────────────────────────────────────────

    def detect_seasonality(self, metric: str) -> SeasonalPattern:
        """
        Test ``metric`` for a daily, then weekly, cycle.

        The daily lag wins when its |autocorrelation| exceeds the threshold;
        otherwise the weekly lag is tried.  The result is remembered for
        :meth:`predict_peak_times`.
        """
        points = self.get_series(metric)
        if len(points) < self.min_seasonality_points:
            pattern = SeasonalPattern()
        else:
            values = [p.value for p in points]
            pattern = SeasonalPattern(
                trend_slope=(values[-1] - values[0]) / len(values),
                baseline_value=sum(values) / len(values),
            )
            for lag in (self.daily_lag, self.weekly_lag):
                corr = autocorrelation(values, lag)
                if abs(corr) > self.seasonality_threshold:
                    pattern.detected = True
                    pattern.period = timedelta(hours=lag)
                    pattern.amplitude = corr
                    pattern.phase = seasonal_phase(values, lag)
                    break

        with self._lock.gen_wlock():
            self._patterns[metric] = pattern

        if pattern.detected:
            logger.info(
                "Seasonality detected for %s: period=%s amplitude=%.3f",
                metric,
                pattern.period,
                pattern.amplitude,
            )
        return pattern

    def get_seasonal_pattern(self, metric: str) -> Optional[SeasonalPattern]:
        """Last pattern computed by :meth:`detect_seasonality`, if any."""
        with self._lock.gen_rlock():
            pattern = self._patterns.get(metric)
        return pattern.model_copy() if pattern is not None else None

    def analyze_trend(self, metric: str) -> TrendReport:
        """Least-squares trend of value against hours since the first point."""
        points = self.get_series(metric)
        if len(points) < 2:
            return TrendReport(direction="unknown")

        series = to_series(points)
        hours = (series.index - series.index[0]).total_seconds() / 3600.0
        slope, r_squared = linear_regression(hours, series.to_numpy())

        if slope > self.trend_threshold:
            direction = "up"
        elif slope < -self.trend_threshold:
            direction = "down"
        else:
            direction = "stable"

        return TrendReport(
            direction=direction,
            slope=slope,
            r_squared=r_squared,
            start=points[0].timestamp,
            end=points[-1].timestamp,
        )

    def predict_peak_times(
        self,
        metric: str,
        lookahead: timedelta,
        now: Optional[datetime] = None,
    ) -> List[datetime]:
        """
        Project the most recent historical peak forward by whole periods.

        Requires a pattern previously found by :meth:`detect_seasonality`.
        Projections start one period after the latest local maximum and stop
        before ``now + lookahead``.

        Returns:
            ``[]`` when no pattern was detected or the series has no local maxima.
        """
        with self._lock.gen_rlock():
            pattern = self._patterns.get(metric)
            points = list(self._series.get(metric, ()))

        if pattern is None or not pattern.detected or pattern.period is None:
            return []

        peaks = local_maxima(to_series(points))
        if peaks.empty:
            return []

        current = peaks.index.max().to_pydatetime()
        if now is None:
            now = datetime.now(timezone.utc)
        if current.tzinfo is None and now.tzinfo is not None:
            now = now.astimezone(timezone.utc).replace(tzinfo=None)
        elif current.tzinfo is not None and now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        horizon = now + lookahead
        peak_times: List[datetime] = []
        current += pattern.period
        while current < horizon:
            peak_times.append(current)
            current += pattern.period
        return peak_times

    # ── inventory ────────────────────────────────────────────────────────

    def optimize_inventory(
        self,
        item_id: str,
        lead_time: timedelta,
        demand_metric: Optional[str] = None,
    ) -> InventoryRecommendation:
        """
        Stock advice covering ``lead_time`` (one period per whole day).

        ``expected_demand`` sums the forecast, ``safety_stock`` is
        ``z · σ · √periods`` and ``recommended_stock`` their sum.

        Args:
            item_id:       Item the advice is for.
            lead_time:     Replenishment lead time.
            demand_metric: Series to read; defaults to the item's demand
                           series fed through :meth:`record_item_demand`.
        """
        metric = demand_metric or self.demand_metric_for(item_id)
        periods = int(lead_time.total_seconds() // 86400)
        points = self.get_series(metric)
        forecasts = self._forecast(metric, points, periods)
        if not forecasts:
            return InventoryRecommendation(item_id=item_id, service_level=self.service_level)

        expected = sum(f.predicted_value for f in forecasts)
        std = population_std([p.value for p in points])
        safety = self.safety_stock_z * std * math.sqrt(len(forecasts))

        return InventoryRecommendation(
            item_id=item_id,
            periods=len(forecasts),
            expected_demand=expected,
            safety_stock=safety,
            recommended_stock=expected + safety,
            service_level=self.service_level,
        )

    # ── overview ─────────────────────────────────────────────────────────

    def get_metrics(self) -> Dict[str, MetricSummary]:
        """Point count, latest value and trend for every non-empty metric."""
        with self._lock.gen_rlock():
            metrics = [name for name, window in self._series.items() if window]

        summary: Dict[str, MetricSummary] = {}
        for name in sorted(metrics):
            points = self.get_series(name)
            if not points:
                continue
            trend = self.analyze_trend(name)
            summary[name] = MetricSummary(
                data_points=len(points),
                latest_value=points[-1].value,
                trend=trend.direction,
                trend_slope=trend.slope,
            )
        return summary

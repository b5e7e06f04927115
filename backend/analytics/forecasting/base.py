"""
analytics/forecasting/base.py
─────────────────────────────
Abstract base class and the Holt (double exponential smoothing) forecaster.

Classes
-------
BaseForecastor
    Abstract fit → forecast interface every model must implement.
HoltForecaster
    Level + trend smoothing with a constant-width confidence band.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Any, Dict, List

import pandas as pd

from analytics.forecasting.patterns import population_std
from schemas.forecast import ForecastPoint

# Spacing used when a series has a single observation.
DEFAULT_STEP = timedelta(hours=24)


# ─── Abstract Base ────────────────────────────────────────────────────────────


class BaseForecastor(ABC):
    """
    Abstract base class for all demand forecasting models.

    Enforces a fit → forecast lifecycle and provides shared helpers
    so every subclass inherits input validation and step inference.
    """

    @abstractmethod
    def fit(self, series: pd.Series) -> None:
        """
        Train the model on historical observations.

        Args:
            series: pd.Series with a DatetimeIndex, in insertion order.

        Raises:
            TypeError:  If series is not a pd.Series with DatetimeIndex.
            ValueError: If fewer than the required minimum samples are given,
                        or if NaNs are present.
        """

    @abstractmethod
    def forecast(self, periods: int) -> List[ForecastPoint]:
        """
        Generate forward-looking forecasts.

        Args:
            periods: Number of future time steps to predict.

        Returns:
            One ``ForecastPoint`` per step.

        Raises:
            ValueError: If called before fit().
        """

    def get_model_info(self) -> Dict[str, Any]:
        """
        Return model metadata for logging.

        Returns:
            Dict with at least ``model_name`` and ``version`` keys.
        """
        return {"model_name": self.__class__.__name__, "version": "1.0"}

    # ── Shared validation helpers ─────────────────────────────────────────

    @staticmethod
    def _validate_series(series: pd.Series, min_samples: int = 3) -> None:
        """
        Validate that ``series`` is a non-null pd.Series with DatetimeIndex.

        Args:
            series:      The series to validate.
            min_samples: Minimum required data points.

        Raises:
            TypeError:  Wrong type or wrong index type.
            ValueError: Too few rows, or NaN values present.
        """
        if not isinstance(series, pd.Series):
            raise TypeError("series must be a pandas Series")
        if not isinstance(series.index, pd.DatetimeIndex):
            raise TypeError("series must have a DatetimeIndex")
        if len(series) < min_samples:
            raise ValueError(
                f"Need at least {min_samples} data points, got {len(series)}"
            )
        if series.isnull().any():
            raise ValueError("series contains NaN values; drop or fill them before fitting")

    @staticmethod
    def _infer_step(index: pd.DatetimeIndex) -> pd.Timedelta:
        """
        Spacing between the last two observations.

        Insertion order is trusted as-is, so an out-of-order tail yields a
        negative step.  A single observation falls back to 24 hours.
        """
        if len(index) < 2:
            return pd.Timedelta(DEFAULT_STEP)
        return index[-1] - index[-2]


# ─── Concrete Model ───────────────────────────────────────────────────────────


class HoltForecaster(BaseForecastor):
    """
    Double exponential (Holt-Winters level + trend) smoothing.

    ``level_t = α·y_t + (1-α)(level_{t-1} + trend_{t-1})``
    ``trend_t = β(level_t - level_{t-1}) + (1-β)·trend_{t-1}``

    Step ``k`` is forecast as ``level + trend·k``.  The confidence band is
    ``± z·σ`` with σ the population std-dev of the whole series; it does
    not widen with the horizon.

    Args:
        alpha:       Level smoothing constant.
        beta:        Trend smoothing constant.
        z_score:     Band half-width in standard deviations.
        min_samples: Minimum observations accepted by ``fit``.
    """

    method = "holt-winters"

    def __init__(
        self,
        alpha: float = 0.3,
        beta: float = 0.1,
        z_score: float = 1.96,
        min_samples: int = 3,
    ) -> None:
        self.alpha = alpha
        self.beta = beta
        self.z_score = z_score
        self.min_samples = min_samples

        self._level: float = 0.0
        self._trend: float = 0.0
        self._std: float = 0.0
        self._last_timestamp: pd.Timestamp | None = None
        self._step: pd.Timedelta = pd.Timedelta(DEFAULT_STEP)
        self._is_fitted: bool = False

    # ── fit ──────────────────────────────────────────────────────────────

    def fit(self, series: pd.Series) -> None:
        """
        Run the smoothing recursion over ``series``.

        The initial level is the first value and the initial trend the
        crude ``(last - first) / n`` slope.
        """
        self._validate_series(series, min_samples=self.min_samples)

        values = series.to_numpy(dtype=float)
        level = float(values[0])
        trend = float(values[-1] - values[0]) / len(values)

        for y in values[1:]:
            prev_level = level
            level = self.alpha * float(y) + (1 - self.alpha) * (level + trend)
            trend = self.beta * (level - prev_level) + (1 - self.beta) * trend

        self._level = level
        self._trend = trend
        self._std = population_std(values)
        self._last_timestamp = series.index[-1]
        self._step = self._infer_step(series.index)
        self._is_fitted = True

    # ── forecast ─────────────────────────────────────────────────────────

    def forecast(self, periods: int) -> List[ForecastPoint]:
        """
        Extrapolate the fitted level and trend ``periods`` steps ahead.

        Raises:
            ValueError: If called before fit().
        """
        if not self._is_fitted or self._last_timestamp is None:
            raise ValueError("Call fit() before forecast()")

        margin = self.z_score * self._std
        points: List[ForecastPoint] = []
        for k in range(1, periods + 1):
            predicted = self._level + self._trend * k
            points.append(
                ForecastPoint(
                    timestamp=(self._last_timestamp + self._step * k).to_pydatetime(),
                    predicted_value=predicted,
                    confidence_low=predicted - margin,
                    confidence_high=predicted + margin,
                    method=self.method,
                )
            )
        return points

    def get_model_info(self) -> Dict[str, Any]:
        """Return Holt model metadata."""
        info = super().get_model_info()
        info.update(
            {
                "alpha": self.alpha,
                "beta": self.beta,
                "z_score": self.z_score,
                "is_fitted": self._is_fitted,
                "level": round(self._level, 6) if self._is_fitted else None,
                "trend": round(self._trend, 6) if self._is_fitted else None,
                "std": round(self._std, 6) if self._is_fitted else None,
            }
        )
        return info

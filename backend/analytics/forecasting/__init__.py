"""
analytics/forecasting — Time-series forecasting and pattern analysis.

Public API
----------
    from analytics.forecasting import BaseForecastor, HoltForecaster
    from analytics.forecasting import PredictiveAnalytics
"""

from analytics.forecasting.base import BaseForecastor, HoltForecaster
from analytics.forecasting.predictive import PredictiveAnalytics

__all__ = [
    "BaseForecastor",
    "HoltForecaster",
    "PredictiveAnalytics",
]

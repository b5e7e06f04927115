"""
core/container.py
─────────────────
Composition root for the decision engines.

The surrounding application calls :func:`build_container` once at startup
and passes the resulting engines by reference to whatever needs them.
There are no module-level engine singletons; two containers never share
state.

Usage
-----
    from core.container import build_container

    container = build_container()
    container.recommendations.record_interaction("u1", "pizza", "order")
    container.experiments.create_experiment(definition)

Scheduling
----------
``RecommendationEngine.train`` is quadratic in the number of items and must
be invoked by the application's own scheduler (cron job, background
worker), never per request.  Nothing here starts threads.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from analytics.experimentation import ExperimentManager
from analytics.forecasting import PredictiveAnalytics
from analytics.recommendation import RecommendationEngine
from core.config import Settings, get_settings
from core.logging_setup import setup_logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyticsContainer:
    """The three independent engines plus the settings they were built from."""

    settings: Settings
    recommendations: RecommendationEngine
    forecasting: PredictiveAnalytics
    experiments: ExperimentManager


def build_container(
    settings: Optional[Settings] = None,
    configure_logging: bool = False,
) -> AnalyticsContainer:
    """
    Construct one instance of every engine.

    Args:
        settings:          Configuration to use; defaults to :func:`get_settings`.
        configure_logging: Apply ``settings.LOG_LEVEL`` via ``logging.basicConfig``.

    Returns:
        AnalyticsContainer: Freshly built, empty engines.
    """
    if settings is None:
        settings = get_settings()
    if configure_logging:
        setup_logging(settings.LOG_LEVEL)

    container = AnalyticsContainer(
        settings=settings,
        recommendations=RecommendationEngine.from_settings(settings),
        forecasting=PredictiveAnalytics.from_settings(settings),
        experiments=ExperimentManager.from_settings(settings),
    )
    logger.info(
        "Built %s v%s (similarity=%s, window=%d points)",
        settings.APP_TITLE,
        settings.APP_VERSION,
        settings.SIMILARITY_METRIC,
        settings.TIMESERIES_MAX_POINTS,
    )
    return container

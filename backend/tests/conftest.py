"""
tests/conftest.py
──────────────────
Shared pytest fixtures for the engine test suite.

Fixtures
--------
settings
    ``Settings`` built from defaults only (no ``.env`` file is read).

engine / analytics / manager
    Fresh, empty instances of the three engines.

feed
    Factory that appends a list of values to a metric as an evenly
    spaced series starting at ``BASE_TIME``.

seeded_engine
    Trained recommendation engine where ten users order pizza and pasta
    together, plus a handful of unrelated interactions.

Usage
-----
    def test_flat(analytics, feed):
        feed("orders", [5.0] * 10)
        assert analytics.analyze_trend("orders").direction == "stable"
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Sequence

import pytest

from analytics.experimentation import ExperimentManager
from analytics.forecasting import PredictiveAnalytics
from analytics.recommendation import RecommendationEngine
from core.config import Settings
from schemas.experiment import ExperimentDefinition, Variant
from schemas.forecast import TimeSeriesPoint

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)
HOUR = timedelta(hours=1)


# ── Configuration ─────────────────────────────────────────────────────────────


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local ``.env`` file."""
    return Settings(_env_file=None)


# ── Engines ───────────────────────────────────────────────────────────────────


@pytest.fixture
def engine() -> RecommendationEngine:
    return RecommendationEngine(min_users=10)


@pytest.fixture
def analytics() -> PredictiveAnalytics:
    return PredictiveAnalytics()


@pytest.fixture
def manager() -> ExperimentManager:
    return ExperimentManager()


# ── Time-series helpers ───────────────────────────────────────────────────────


@pytest.fixture
def feed(analytics: PredictiveAnalytics) -> Callable[..., List[TimeSeriesPoint]]:
    """
    Return ``_feed(metric, values, start=BASE_TIME, step=HOUR)``.

    The created points are returned so tests can inspect timestamps.
    """

    def _feed(
        metric: str,
        values: Sequence[float],
        start: datetime = BASE_TIME,
        step: timedelta = HOUR,
    ) -> List[TimeSeriesPoint]:
        points = [
            TimeSeriesPoint(timestamp=start + step * i, value=float(v))
            for i, v in enumerate(values)
        ]
        for p in points:
            analytics.add_data_point(metric, p)
        return points

    return _feed


# ── Recommendation data ───────────────────────────────────────────────────────


@pytest.fixture
def seeded_engine(engine: RecommendationEngine) -> RecommendationEngine:
    """
    Twelve users; user00..user09 order pizza and pasta together.

    Popularity (views): pizza 5, soda 2, soup 1.
    """
    for i in range(10):
        user = f"user{i:02d}"
        engine.record_interaction(user, "pizza", "order")
        engine.record_interaction(user, "pasta", "order")
    for i in range(5):
        engine.record_interaction(f"user{i:02d}", "pizza", "view")
    engine.record_interaction("user00", "soda", "view")
    engine.record_interaction("user01", "soda", "view")
    engine.record_interaction("user10", "salad", "order")
    engine.record_interaction("user11", "salad", "order")
    engine.record_interaction("user11", "soup", "view")
    assert engine.train() is True
    return engine


# ── Experiment helpers ────────────────────────────────────────────────────────


@pytest.fixture
def make_definition() -> Callable[..., ExperimentDefinition]:
    """Return ``_make(*shares, name="menu-layout")``; the first variant is control."""

    def _make(*shares: float, name: str = "menu-layout") -> ExperimentDefinition:
        shares = shares or (0.5, 0.5)
        variants = [
            Variant(
                id="control" if i == 0 else f"variant_{i}",
                name="Control" if i == 0 else f"Variant {i}",
                traffic=share,
                is_control=(i == 0),
                config={"layout": "grid" if i == 0 else f"layout-{i}"},
            )
            for i, share in enumerate(shares)
        ]
        return ExperimentDefinition(
            name=name,
            description="Menu layout test",
            metric="order_rate",
            variants=variants,
        )

    return _make

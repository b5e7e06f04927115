"""
tests/test_config.py
──────────────────────
Settings defaults, environment overrides and validation, plus the
composition root that wires the engines from them.

Run with::

    cd backend
    uv run pytest tests/test_config.py -v
"""

import logging

import pytest
from pydantic import ValidationError

from analytics.experimentation import ExperimentManager
from analytics.forecasting import PredictiveAnalytics
from analytics.recommendation import RecommendationEngine
from core.config import Settings, get_settings
from core.container import build_container
from core.logging_setup import setup_logging


# ── Settings ──────────────────────────────────────────────────────────────────


class TestSettings:
    """pydantic-settings behaviour of ``core.config.Settings``."""

    def test_defaults(self, settings: Settings) -> None:
        assert settings.RECOMMENDATION_MIN_USERS == 10
        assert settings.SIMILARITY_METRIC == "cosine"
        assert settings.TIMESERIES_MAX_POINTS == 1000
        assert settings.HOLT_ALPHA == 0.3
        assert settings.HOLT_BETA == 0.1
        assert settings.SAFETY_STOCK_Z == 1.65
        assert settings.SIGNIFICANCE_LEVEL == 0.05
        assert settings.MIN_SAMPLE_SIZE == 30

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOLT_ALPHA", "0.5")
        monkeypatch.setenv("SIMILARITY_METRIC", "Pearson")
        settings = Settings(_env_file=None)
        assert settings.HOLT_ALPHA == 0.5
        assert settings.SIMILARITY_METRIC == "pearson"

    def test_unknown_similarity_metric_rejected(self) -> None:
        with pytest.raises(ValidationError, match="SIMILARITY_METRIC"):
            Settings(_env_file=None, SIMILARITY_METRIC="euclidean")

    def test_demand_template_needs_placeholder(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, ITEM_DEMAND_METRIC="demand")

    def test_out_of_range_smoothing_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, HOLT_ALPHA=1.5)

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()


# ── Composition root ──────────────────────────────────────────────────────────


class TestBuildContainer:
    """Engine wiring from settings."""

    def test_builds_all_engines(self, settings: Settings) -> None:
        container = build_container(settings)
        assert container.settings is settings
        assert isinstance(container.recommendations, RecommendationEngine)
        assert isinstance(container.forecasting, PredictiveAnalytics)
        assert isinstance(container.experiments, ExperimentManager)

    def test_settings_reach_engines(self) -> None:
        settings = Settings(
            _env_file=None,
            SIMILARITY_METRIC="jaccard",
            RECOMMENDATION_MIN_USERS=3,
            TIMESERIES_MAX_POINTS=50,
            MIN_SAMPLE_SIZE=100,
        )
        container = build_container(settings)
        assert container.recommendations.similarity_metric == "jaccard"
        assert container.recommendations.min_users == 3
        assert container.forecasting.max_points == 50
        assert container.experiments.min_sample_size == 100

    def test_containers_do_not_share_state(self, settings: Settings) -> None:
        first = build_container(settings)
        second = build_container(settings)
        first.recommendations.record_interaction("u1", "pizza", "order")
        assert second.recommendations.get_stats().total_users == 0

    def test_logs_banner(self, settings: Settings, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="core.container"):
            build_container(settings)
        assert "Menu Decision Engine" in caplog.text


# ── Logging ───────────────────────────────────────────────────────────────────


class TestSetupLogging:
    """Root logger configuration via ``logging.basicConfig``."""

    @pytest.fixture
    def basic_config_calls(self, monkeypatch: pytest.MonkeyPatch) -> list:
        calls: list = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kwargs: calls.append(kwargs))
        return calls

    def test_level_is_applied(self, basic_config_calls: list) -> None:
        setup_logging("warning")
        assert basic_config_calls[0]["level"] == logging.WARNING
        assert "%(name)s" in basic_config_calls[0]["format"]

    def test_unknown_level_falls_back_to_info(self, basic_config_calls: list) -> None:
        setup_logging("chatty", force=True)
        assert basic_config_calls[0]["level"] == logging.INFO
        assert basic_config_calls[0]["force"] is True

    def test_container_configures_logging_on_request(
        self, settings: Settings, basic_config_calls: list
    ) -> None:
        build_container(settings)
        assert basic_config_calls == []
        build_container(settings, configure_logging=True)
        assert basic_config_calls[0]["level"] == logging.INFO

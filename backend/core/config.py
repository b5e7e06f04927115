"""
core/config.py
──────────────
Centralised engine settings via ``pydantic-settings``.

Every statistical constant used by the decision engines (smoothing factors,
z-scores, minimum sample sizes, significance threshold …) lives here so it
can be overridden from environment variables (or a ``.env`` file in the
``backend/`` directory) without touching code.  The defaults reproduce the
behaviour of the menu application's analytics module.

Usage
-----
    from core.config import get_settings

    settings = get_settings()
    print(settings.HOLT_ALPHA)
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the backend/ directory so relative .env paths work from any cwd.
_BACKEND_DIR = Path(__file__).resolve().parent.parent

SIMILARITY_METRICS = ("cosine", "pearson", "jaccard")


class Settings(BaseSettings):
    """
    Engine settings loaded from environment variables / ``.env`` file.

    Attributes:
        APP_TITLE:   Human-readable name used in log banners.
        APP_VERSION: Semantic version string.
        LOG_LEVEL:   Root log level applied by the composition root.
    """

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_DIR / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # ── Metadata ──────────────────────────────────────────────────────────
    APP_TITLE: str = "Menu Decision Engine"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # ── Collaborative filtering ───────────────────────────────────────────
    RECOMMENDATION_MIN_USERS: int = Field(default=10, ge=1)
    SIMILARITY_METRIC: str = "cosine"
    RECOMMENDATION_LIMIT: int = Field(default=10, ge=1)
    SIMILAR_ITEMS_LIMIT: int = Field(default=5, ge=1)
    TRENDING_LIMIT: int = Field(default=10, ge=1)

    # ── Time-series forecasting ───────────────────────────────────────────
    TIMESERIES_MAX_POINTS: int = Field(default=1000, ge=1)
    HOLT_ALPHA: float = Field(default=0.3, gt=0.0, le=1.0)
    HOLT_BETA: float = Field(default=0.1, gt=0.0, le=1.0)
    FORECAST_Z_SCORE: float = Field(default=1.96, ge=0.0)
    MIN_FORECAST_POINTS: int = Field(default=3, ge=2)
    MIN_SEASONALITY_POINTS: int = Field(default=14, ge=2)
    SEASONALITY_THRESHOLD: float = Field(default=0.5, ge=0.0, le=1.0)
    DAILY_LAG: int = Field(default=24, ge=1)
    WEEKLY_LAG: int = Field(default=168, ge=1)
    TREND_THRESHOLD: float = Field(default=0.01, ge=0.0)
    SAFETY_STOCK_Z: float = Field(default=1.65, ge=0.0)
    SERVICE_LEVEL: float = Field(default=0.95, gt=0.0, lt=1.0)
    ITEM_DEMAND_METRIC: str = "item_demand_{item_id}"

    # ── Experimentation ───────────────────────────────────────────────────
    TRAFFIC_TOLERANCE: float = Field(default=0.01, ge=0.0)
    SIGNIFICANCE_LEVEL: float = Field(default=0.05, gt=0.0, lt=1.0)
    MIN_SAMPLE_SIZE: int = Field(default=30, ge=1)

    @field_validator("SIMILARITY_METRIC")
    @classmethod
    def _known_metric(cls, v: str) -> str:
        """Normalise and reject unsupported similarity metrics."""
        v = v.strip().lower()
        if v not in SIMILARITY_METRICS:
            raise ValueError(
                f"SIMILARITY_METRIC must be one of {', '.join(SIMILARITY_METRICS)}"
            )
        return v

    @field_validator("ITEM_DEMAND_METRIC")
    @classmethod
    def _has_item_placeholder(cls, v: str) -> str:
        """The demand-series template must reference ``{item_id}``."""
        if "{item_id}" not in v:
            raise ValueError("ITEM_DEMAND_METRIC must contain '{item_id}'")
        return v


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return a cached ``Settings`` instance.

    Settings are immutable configuration, so caching them is safe; the
    engines themselves are built explicitly by :mod:`core.container`.

    Returns:
        Settings: Validated engine configuration.
    """
    return Settings()

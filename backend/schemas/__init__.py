"""
Pydantic schemas for the engines' inbound and outbound contracts.

Separate from the engines (analytics) so the surrounding application can
serialise them without importing any computation code.
"""

from schemas.experiment import (
    ConversionEvent,
    Experiment,
    ExperimentDefinition,
    ExperimentResults,
    ExperimentStatus,
    Variant,
    VariantStats,
)
from schemas.forecast import (
    ForecastPoint,
    InventoryRecommendation,
    SeasonalPattern,
    TimeSeriesPoint,
    TrendReport,
)
from schemas.recommendation import InteractionEvent, InteractionType, ItemScore

__all__ = [
    "ConversionEvent",
    "Experiment",
    "ExperimentDefinition",
    "ExperimentResults",
    "ExperimentStatus",
    "Variant",
    "VariantStats",
    "ForecastPoint",
    "InventoryRecommendation",
    "SeasonalPattern",
    "TimeSeriesPoint",
    "TrendReport",
    "InteractionEvent",
    "InteractionType",
    "ItemScore",
]

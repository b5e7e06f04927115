"""
analytics/recommendation — Collaborative filtering.

Public API
----------
    from analytics.recommendation import RecommendationEngine
"""

from analytics.recommendation.engine import RecommendationEngine
from analytics.recommendation.similarity import (
    cosine_similarity,
    jaccard_similarity,
    pearson_correlation,
)

__all__ = [
    "RecommendationEngine",
    "cosine_similarity",
    "jaccard_similarity",
    "pearson_correlation",
]

"""
analytics/recommendation/similarity.py
──────────────────────────────────────
Item–item similarity metrics over sparse rater vectors.

Each item is represented by a ``{user_id: accumulated_score}`` mapping.
Every metric returns exactly ``0.0`` on a degenerate denominator (empty
vector, no common raters, zero variance, empty union), never NaN or ±inf.

Functions
---------
cosine_similarity     — dot product over common raters / product of magnitudes.
pearson_correlation   — centred correlation over the common raters only.
jaccard_similarity    — |raters(a) ∩ raters(b)| / |raters(a) ∪ raters(b)|.
"""

import math
from typing import Callable, Dict, Mapping

import numpy as np

RaterVector = Mapping[str, float]


def _clamp(value: float, low: float, high: float) -> float:
    """Pull float drift back into range; NaN becomes 0."""
    if math.isnan(value):
        return 0.0
    return max(low, min(high, value))


def cosine_similarity(a: RaterVector, b: RaterVector) -> float:
    """
    Cosine of the angle between two items' rater vectors.

    The magnitudes use each item's full vector; the dot product only
    accumulates over users who rated both.
    """
    if not a or not b:
        return 0.0
    mag_a = math.sqrt(sum(s * s for s in a.values()))
    mag_b = math.sqrt(sum(s * s for s in b.values()))
    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0
    dot = sum(score * b[user] for user, score in a.items() if user in b)
    return _clamp(dot / (mag_a * mag_b), -1.0, 1.0)


def pearson_correlation(a: RaterVector, b: RaterVector) -> float:
    """
    Pearson correlation over the users who rated both items.

    Fewer than two common raters, or zero variance on either side, yields 0.
    """
    common = sorted(a.keys() & b.keys())
    if len(common) < 2:
        return 0.0
    x = np.array([a[u] for u in common], dtype=float)
    y = np.array([b[u] for u in common], dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denom_x = float(np.sum(dx * dx))
    denom_y = float(np.sum(dy * dy))
    if denom_x == 0.0 or denom_y == 0.0:
        return 0.0
    r = float(np.sum(dx * dy)) / (math.sqrt(denom_x) * math.sqrt(denom_y))
    return _clamp(r, -1.0, 1.0)


def jaccard_similarity(a: RaterVector, b: RaterVector) -> float:
    """Overlap of the two rater sets, ignoring scores."""
    intersection = len(a.keys() & b.keys())
    union = len(a) + len(b) - intersection
    if union == 0:
        return 0.0
    return intersection / union


SIMILARITY_FUNCTIONS: Dict[str, Callable[[RaterVector, RaterVector], float]] = {
    "cosine": cosine_similarity,
    "pearson": pearson_correlation,
    "jaccard": jaccard_similarity,
}


def get_similarity_function(metric: str) -> Callable[[RaterVector, RaterVector], float]:
    """
    Resolve a metric name to its implementation.

    Raises:
        ValueError: If ``metric`` is not one of cosine, pearson, jaccard.
    """
    try:
        return SIMILARITY_FUNCTIONS[metric]
    except KeyError:
        raise ValueError(
            f"Unknown similarity metric '{metric}'. "
            f"Available: {', '.join(SIMILARITY_FUNCTIONS)}"
        ) from None

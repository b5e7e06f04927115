"""
tests/test_similarity.py
──────────────────────────
Unit tests for the item–item similarity metrics in
``analytics.recommendation.similarity``.

Run with::

    cd backend
    uv run pytest tests/test_similarity.py -v
"""

import pytest

from analytics.recommendation.similarity import (
    SIMILARITY_FUNCTIONS,
    cosine_similarity,
    get_similarity_function,
    jaccard_similarity,
    pearson_correlation,
)


# ── Cosine ────────────────────────────────────────────────────────────────────


class TestCosineSimilarity:
    """Cosine over common raters, magnitudes over full vectors."""

    def test_identical_vectors_score_one(self) -> None:
        vec = {"u1": 3.0, "u2": 4.0}
        assert cosine_similarity(vec, dict(vec)) == pytest.approx(1.0)

    def test_no_common_raters_score_zero(self) -> None:
        assert cosine_similarity({"u1": 1.0}, {"u2": 1.0}) == 0.0

    def test_magnitude_uses_full_vector(self) -> None:
        """u2 only rated ``a``; it still shrinks the similarity."""
        a = {"u1": 1.0, "u2": 1.0}
        b = {"u1": 1.0}
        assert cosine_similarity(a, b) == pytest.approx(1.0 / 2**0.5)

    def test_empty_vector_scores_zero(self) -> None:
        assert cosine_similarity({}, {"u1": 1.0}) == 0.0

    def test_zero_magnitude_scores_zero(self) -> None:
        assert cosine_similarity({"u1": 0.0}, {"u1": 5.0}) == 0.0

    def test_nan_score_yields_zero_not_one(self) -> None:
        assert cosine_similarity({"u1": float("nan")}, {"u1": 1.0}) == 0.0

    def test_pearson_with_nan_yields_zero(self) -> None:
        a = {"u1": 1.0, "u2": float("nan"), "u3": 3.0}
        b = {"u1": 2.0, "u2": 4.0, "u3": 6.0}
        assert pearson_correlation(a, b) == 0.0


# ── Pearson ───────────────────────────────────────────────────────────────────


class TestPearsonCorrelation:
    """Pearson correlation restricted to users who rated both items."""

    def test_perfect_positive(self) -> None:
        a = {"u1": 1.0, "u2": 2.0, "u3": 3.0}
        b = {"u1": 2.0, "u2": 4.0, "u3": 6.0}
        assert pearson_correlation(a, b) == pytest.approx(1.0)

    def test_perfect_negative(self) -> None:
        a = {"u1": 1.0, "u2": 2.0, "u3": 3.0}
        b = {"u1": 3.0, "u2": 2.0, "u3": 1.0}
        assert pearson_correlation(a, b) == pytest.approx(-1.0)

    def test_ignores_non_common_raters(self) -> None:
        a = {"u1": 1.0, "u2": 2.0, "u3": 3.0, "u9": 100.0}
        b = {"u1": 2.0, "u2": 4.0, "u3": 6.0, "u8": -50.0}
        assert pearson_correlation(a, b) == pytest.approx(1.0)

    def test_single_common_rater_scores_zero(self) -> None:
        assert pearson_correlation({"u1": 1.0, "u2": 2.0}, {"u1": 5.0}) == 0.0

    def test_zero_variance_scores_zero(self) -> None:
        a = {"u1": 5.0, "u2": 5.0}
        b = {"u1": 1.0, "u2": 2.0}
        assert pearson_correlation(a, b) == 0.0


# ── Jaccard ───────────────────────────────────────────────────────────────────


class TestJaccardSimilarity:
    """Set overlap of raters, scores ignored."""

    def test_partial_overlap(self) -> None:
        a = {"u1": 10.0, "u2": 1.0}
        b = {"u2": 8.0, "u3": 2.0}
        assert jaccard_similarity(a, b) == pytest.approx(1 / 3)

    def test_both_empty_scores_zero(self) -> None:
        assert jaccard_similarity({}, {}) == 0.0

    def test_same_raters_score_one_regardless_of_scores(self) -> None:
        assert jaccard_similarity({"u1": 1.0}, {"u1": 99.0}) == 1.0


# ── Registry ──────────────────────────────────────────────────────────────────


class TestGetSimilarityFunction:
    """Metric lookup by configured name."""

    @pytest.mark.parametrize("metric", ["cosine", "pearson", "jaccard"])
    def test_known_metrics_resolve(self, metric: str) -> None:
        assert get_similarity_function(metric) is SIMILARITY_FUNCTIONS[metric]

    def test_unknown_metric_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown similarity metric"):
            get_similarity_function("euclidean")

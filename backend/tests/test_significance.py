"""
tests/test_significance.py
────────────────────────────
Unit tests for the pooled two-proportion z-test and the deterministic
hash bucketing used by ``ExperimentManager``.

Run with::

    cd backend
    uv run pytest tests/test_significance.py -v
"""

import pytest

from analytics.experimentation.bucketing import assign, bucket, pick_variant
from analytics.experimentation.significance import two_proportion_z_test
from schemas.experiment import Variant


# ── Two-proportion z-test ─────────────────────────────────────────────────────


class TestTwoProportionZTest:
    """Two-tailed pooled z-test."""

    def test_large_difference_is_significant(self) -> None:
        result = two_proportion_z_test(10, 200, 100, 200)
        assert result.z > 0
        assert result.p_value < 1e-6

    def test_known_value(self) -> None:
        """50/100 vs 65/100: z ≈ 2.1456, p ≈ 0.0319."""
        result = two_proportion_z_test(50, 100, 65, 100)
        assert result.z == pytest.approx(2.1456, abs=1e-3)
        assert result.p_value == pytest.approx(0.0319, abs=1e-3)

    def test_direction_is_b_minus_a(self) -> None:
        assert two_proportion_z_test(65, 100, 50, 100).z < 0

    def test_equal_rates(self) -> None:
        result = two_proportion_z_test(15, 60, 15, 60)
        assert result.z == 0.0
        assert result.p_value == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "args",
        [
            (0, 0, 5, 10),   # empty group
            (0, 50, 0, 50),  # pooled proportion 0
            (50, 50, 50, 50),  # pooled proportion 1
        ],
    )
    def test_degenerate_inputs_give_p_one(self, args) -> None:
        assert two_proportion_z_test(*args).p_value == 1.0

    def test_p_value_in_unit_interval(self) -> None:
        for conv_b in range(0, 101, 10):
            p = two_proportion_z_test(30, 100, conv_b, 100).p_value
            assert 0.0 <= p <= 1.0


# ── Bucketing ─────────────────────────────────────────────────────────────────


def _variants(*shares: float):
    return [Variant(id=f"v{i}", name=f"V{i}", traffic=s) for i, s in enumerate(shares)]


class TestBucketing:
    """Stable hash positions and cumulative-range lookup."""

    def test_bucket_is_deterministic(self) -> None:
        assert bucket("exp-1", "alice") == bucket("exp-1", "alice")

    def test_bucket_in_unit_interval(self) -> None:
        for i in range(500):
            assert 0.0 <= bucket("exp-1", f"user-{i}") < 1.0

    def test_bucket_depends_on_experiment(self) -> None:
        positions = {bucket(f"exp-{i}", "alice") for i in range(20)}
        assert len(positions) == 20

    @pytest.mark.parametrize(
        "position, expected",
        [(0.0, "v0"), (0.49, "v0"), (0.5, "v1"), (0.99, "v1")],
    )
    def test_pick_variant_ranges(self, position: float, expected: str) -> None:
        assert pick_variant(_variants(0.5, 0.5), position).id == expected

    def test_zero_share_never_picked(self) -> None:
        variants = _variants(0.5, 0.0, 0.5)
        assert {pick_variant(variants, p / 100).id for p in range(100)} == {"v0", "v2"}

    def test_gap_at_top_falls_to_last_with_traffic(self) -> None:
        variants = _variants(0.5, 0.495, 0.0)
        assert pick_variant(variants, 0.999).id == "v1"

    def test_assign_is_sticky_and_roughly_even(self) -> None:
        variants = _variants(0.5, 0.5)
        picks = [assign("exp-1", f"user-{i}", variants).id for i in range(2000)]
        assert picks == [assign("exp-1", f"user-{i}", variants).id for i in range(2000)]
        assert 900 <= picks.count("v0") <= 1100

"""
analytics/experimentation/significance.py
─────────────────────────────────────────
Pooled two-proportion z-test used to compare a variant against control.
"""

from dataclasses import dataclass
from math import sqrt

from scipy.stats import norm


@dataclass(frozen=True)
class ZTestResult:
    z: float
    p_value: float


def two_proportion_z_test(
    conversions_a: int, n_a: int, conversions_b: int, n_b: int
) -> ZTestResult:
    """
    Two-tailed pooled z-test for a difference in conversion rates.

    ``z = (p_b - p_a) / sqrt(p̄(1-p̄)(1/n_a + 1/n_b))``.  Empty groups, a
    pooled proportion of 0 or 1, or a zero standard error give ``p = 1``.
    """
    if n_a <= 0 or n_b <= 0:
        return ZTestResult(z=0.0, p_value=1.0)

    p_a = conversions_a / n_a
    p_b = conversions_b / n_b
    pooled = (conversions_a + conversions_b) / (n_a + n_b)
    if pooled <= 0.0 or pooled >= 1.0:
        return ZTestResult(z=0.0, p_value=1.0)

    se = sqrt(pooled * (1 - pooled) * (1 / n_a + 1 / n_b))
    if se == 0.0:
        return ZTestResult(z=0.0, p_value=1.0)

    z = (p_b - p_a) / se
    return ZTestResult(z=z, p_value=float(2 * norm.sf(abs(z))))

"""
analytics/experimentation — A/B/n experiments.

Modules
-------
bucketing     — deterministic hash bucketing into traffic-share ranges.
significance  — two-proportion z-test (SciPy normal tail).
manager       — ExperimentManager lifecycle, assignment and results.
"""

from analytics.experimentation.manager import ExperimentManager

__all__ = ["ExperimentManager"]

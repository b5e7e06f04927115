"""
analytics/experimentation/bucketing.py
──────────────────────────────────────
Deterministic (sticky) variant bucketing.

A user's bucket is a pure function of ``(experiment_id, user_id)``: the
first 8 bytes of ``sha256("{experiment_id}:{user_id}")`` read as an
unsigned integer and scaled into [0, 1).  The bucket is then located in
the cumulative traffic-share ranges of the variants, so the same pair
always lands on the same variant for as long as the variant list is
unchanged (it is frozen at experiment creation).
"""

import hashlib
from typing import Sequence

from schemas.experiment import Variant

_SCALE = float(2**64)


def bucket(experiment_id: str, user_id: str) -> float:
    """Stable position of ``user_id`` in [0, 1) for ``experiment_id``."""
    digest = hashlib.sha256(f"{experiment_id}:{user_id}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big") / _SCALE


def pick_variant(variants: Sequence[Variant], position: float) -> Variant:
    """
    Variant whose cumulative traffic range contains ``position``.

    Shares that sum to slightly under 1 leave a sliver at the top of the
    range; it falls through to the last variant that receives traffic.
    """
    cumulative = 0.0
    for variant in variants:
        cumulative += variant.traffic
        if position < cumulative:
            return variant
    return next((v for v in reversed(variants) if v.traffic > 0), variants[-1])


def assign(experiment_id: str, user_id: str, variants: Sequence[Variant]) -> Variant:
    """Deterministic variant for ``user_id`` in ``experiment_id``."""
    return pick_variant(variants, bucket(experiment_id, user_id))

"""
analytics/recommendation/engine.py
──────────────────────────────────
Item–item collaborative filtering with a popularity fallback.

Workflow
--------
1. ``record_interaction`` accumulates weighted scores into a user → item
   matrix and bumps the view / order popularity counters.
2. ``train`` rebuilds the item–item similarity table from a snapshot of the
   matrix.  Cost is quadratic in the number of co-occurring items times the
   users shared by each pair, so the surrounding application must run it
   on a schedule (batch / background job), never per request.
3. ``get_recommendations`` scores unseen items by
   ``Σ similarity(seen, candidate) × score(seen)`` and pads with popular
   items; unknown users get the popularity ranking straight away.

State is in-process only and guarded by a fair reader-writer lock:
ingestion and training swaps take the write side, queries the read side.
"""

import logging
import math
from collections import defaultdict, deque
from datetime import datetime, timedelta, timezone
from itertools import combinations
from typing import Deque, Dict, Iterable, List, Optional, Set, Tuple, Union

from readerwriterlock import rwlock

from analytics.recommendation.similarity import get_similarity_function
from schemas.recommendation import (
    INTERACTION_WEIGHTS,
    InteractionEvent,
    InteractionType,
    ItemScore,
    RecommendationStats,
)

logger = logging.getLogger(__name__)

# Per-item event timestamps kept for windowed trending.
_MAX_EVENT_HISTORY = 10_000

REASON_SIMILAR_TO_HISTORY = "Similar to items you liked"
REASON_POPULAR = "Popular item"
REASON_SIMILAR = "Similar items"
REASON_TRENDING = "Trending now"


def _as_utc(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC so window comparisons never mix kinds."""
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _rank(scores: Iterable[Tuple[str, float]]) -> List[Tuple[str, float]]:
    """Sort by score descending, item id ascending on ties."""
    return sorted(scores, key=lambda pair: (-pair[1], pair[0]))


class RecommendationEngine:
    """
    Collaborative-filtering recommender for menu items.

    Args:
        min_users:           Distinct users required before ``train`` builds a table.
        similarity_metric:   ``"cosine"``, ``"pearson"`` or ``"jaccard"``.
        default_limit:       Recommendation count when the caller passes ``limit<=0``.
        similar_items_limit: Default size of ``get_similar_items`` results.
        trending_limit:      Default size of ``get_trending_items`` results.

    Example:
        >>> engine = RecommendationEngine(min_users=1)
        >>> engine.record_interaction("u1", "pizza", "view")
        >>> engine.get_recommendations("u2", limit=3)[0].item_id
        'pizza'
    """

    def __init__(
        self,
        min_users: int = 10,
        similarity_metric: str = "cosine",
        default_limit: int = 10,
        similar_items_limit: int = 5,
        trending_limit: int = 10,
    ) -> None:
        self.min_users = min_users
        self.similarity_metric = similarity_metric
        self.default_limit = default_limit
        self.similar_items_limit = similar_items_limit
        self.trending_limit = trending_limit
        self._similarity = get_similarity_function(similarity_metric)

        self._lock = rwlock.RWLockFair()
        self._user_items: Dict[str, Dict[str, float]] = {}
        self._item_similarity: Dict[str, Dict[str, float]] = {}
        self._item_views: Dict[str, int] = defaultdict(int)
        self._item_conversions: Dict[str, int] = defaultdict(int)
        self._view_times: Dict[str, Deque[datetime]] = {}
        self._order_times: Dict[str, Deque[datetime]] = {}
        self._last_trained_at: Optional[datetime] = None

    @classmethod
    def from_settings(cls, settings) -> "RecommendationEngine":
        """Build an engine from :class:`core.config.Settings`."""
        return cls(
            min_users=settings.RECOMMENDATION_MIN_USERS,
            similarity_metric=settings.SIMILARITY_METRIC,
            default_limit=settings.RECOMMENDATION_LIMIT,
            similar_items_limit=settings.SIMILAR_ITEMS_LIMIT,
            trending_limit=settings.TRENDING_LIMIT,
        )

    # ── ingestion ────────────────────────────────────────────────────────

    def record_interaction(
        self,
        user_id: str,
        item_id: str,
        interaction_type: Union[InteractionType, str],
        weight: float = 1.0,
        timestamp: Optional[datetime] = None,
    ) -> None:
        """
        Accumulate one weighted interaction.

        The caller's ``weight`` is multiplied by the fixed per-type
        coefficient (view=1, click=2, add_to_cart=5, favorite=8, order=10).
        Negative and non-finite weights count as zero, so scores never
        decrease and stay finite.
        Unknown interaction types are logged and ignored.
        """
        try:
            kind = InteractionType(interaction_type)
        except ValueError:
            logger.warning(
                "Ignoring unknown interaction type %r for item %s",
                interaction_type,
                item_id,
            )
            return

        if not math.isfinite(weight) or weight < 0:
            weight = 0.0
        increment = INTERACTION_WEIGHTS[kind] * weight
        ts = _as_utc(timestamp) if timestamp else datetime.now(timezone.utc)

        with self._lock.gen_wlock():
            items = self._user_items.setdefault(user_id, {})
            items[item_id] = items.get(item_id, 0.0) + increment

            if kind is InteractionType.VIEW:
                self._item_views[item_id] += 1
                self._view_times.setdefault(
                    item_id, deque(maxlen=_MAX_EVENT_HISTORY)
                ).append(ts)
            elif kind is InteractionType.ORDER:
                self._item_conversions[item_id] += 1
                self._order_times.setdefault(
                    item_id, deque(maxlen=_MAX_EVENT_HISTORY)
                ).append(ts)

    def record_event(self, event: InteractionEvent) -> None:
        """Convenience wrapper accepting a validated ``InteractionEvent``."""
        self.record_interaction(event.user, event.item, event.type, event.weight)

    # ── training ─────────────────────────────────────────────────────────

    def train(self) -> bool:
        """
        Rebuild the item–item similarity table.

        Returns:
            ``True`` if a new table was built, ``False`` when fewer than
            ``min_users`` distinct users have interacted (table untouched).
        """
        with self._lock.gen_rlock():
            if len(self._user_items) < self.min_users:
                logger.debug(
                    "Skipping training: %d users < minimum %d",
                    len(self._user_items),
                    self.min_users,
                )
                return False
            snapshot = {user: dict(items) for user, items in self._user_items.items()}

        table = self._build_similarity_table(snapshot)

        with self._lock.gen_wlock():
            self._item_similarity = table
            self._last_trained_at = datetime.now(timezone.utc)

        logger.info(
            "Trained %s similarity table: %d users, %d items",
            self.similarity_metric,
            len(snapshot),
            len(table),
        )
        return True

    def _build_similarity_table(
        self, user_items: Dict[str, Dict[str, float]]
    ) -> Dict[str, Dict[str, float]]:
        """Compute similarities for every pair of items sharing a rater."""
        item_vectors: Dict[str, Dict[str, float]] = defaultdict(dict)
        pairs: Set[Tuple[str, str]] = set()

        for user, items in user_items.items():
            for item, score in items.items():
                item_vectors[item][user] = score
            pairs.update(combinations(sorted(items), 2))

        table: Dict[str, Dict[str, float]] = {item: {} for item in item_vectors}
        for a, b in sorted(pairs):
            sim = self._similarity(item_vectors[a], item_vectors[b])
            table[a][b] = sim
            table[b][a] = sim
        return table

    # ── queries ──────────────────────────────────────────────────────────

    def get_recommendations(
        self,
        user_id: str,
        exclude: Optional[Iterable[str]] = None,
        limit: int = 0,
    ) -> List[ItemScore]:
        """
        Personalised ranking for ``user_id``.

        Items the user already interacted with and items in ``exclude`` are
        never returned.  Unknown users receive the popularity ranking.
        """
        if limit <= 0:
            limit = self.default_limit
        excluded = set(exclude or ())

        with self._lock.gen_rlock():
            history = self._user_items.get(user_id)
            if not history:
                return self._popular_items(excluded, limit)

            scores: Dict[str, float] = defaultdict(float)
            for seen_item, user_score in history.items():
                for candidate, sim in self._item_similarity.get(seen_item, {}).items():
                    if candidate in history or candidate in excluded:
                        continue
                    scores[candidate] += sim * user_score

            results = [
                ItemScore(item_id=item, score=score, reason=REASON_SIMILAR_TO_HISTORY)
                for item, score in _rank(scores.items())[:limit]
            ]

            if len(results) < limit:
                taken = excluded | set(history) | {r.item_id for r in results}
                results.extend(self._popular_items(taken, limit - len(results)))

        return results

    def get_similar_items(self, item_id: str, limit: int = 0) -> List[ItemScore]:
        """Nearest neighbours of ``item_id`` from the last trained table."""
        if limit <= 0:
            limit = self.similar_items_limit
        with self._lock.gen_rlock():
            neighbours = dict(self._item_similarity.get(item_id, {}))
        return [
            ItemScore(item_id=item, score=score, reason=REASON_SIMILAR)
            for item, score in _rank(neighbours.items())[:limit]
        ]

    def get_trending_items(
        self,
        window: Optional[timedelta] = None,
        limit: int = 0,
        now: Optional[datetime] = None,
    ) -> List[ItemScore]:
        """
        Rank items by ``(conversions / views) × views``.

        With a ``window`` only views and orders recorded inside
        ``[now - window, now]`` are counted; without one the lifetime
        counters are used.  Items without orders or views in the counted
        span are skipped.
        """
        if limit <= 0:
            limit = self.trending_limit

        with self._lock.gen_rlock():
            if window is None:
                views = dict(self._item_views)
                conversions = dict(self._item_conversions)
            else:
                end = _as_utc(now) if now else datetime.now(timezone.utc)
                start = end - window
                views = {
                    item: sum(1 for t in times if start <= t <= end)
                    for item, times in self._view_times.items()
                }
                conversions = {
                    item: sum(1 for t in times if start <= t <= end)
                    for item, times in self._order_times.items()
                }

        scores = []
        for item, conv in conversions.items():
            item_views = views.get(item, 0)
            if conv <= 0 or item_views <= 0:
                continue
            scores.append((item, (conv / item_views) * item_views))

        return [
            ItemScore(item_id=item, score=score, reason=REASON_TRENDING)
            for item, score in _rank(scores)[:limit]
        ]

    def get_user_history(self, user_id: str) -> Dict[str, float]:
        """Accumulated item scores of ``user_id`` (empty if unknown)."""
        with self._lock.gen_rlock():
            return dict(self._user_items.get(user_id, {}))

    def get_stats(self) -> RecommendationStats:
        """Counts describing the accumulated interaction matrix."""
        with self._lock.gen_rlock():
            items = {item for user_items in self._user_items.values() for item in user_items}
            return RecommendationStats(
                total_users=len(self._user_items),
                total_items=len(items),
                total_interactions=sum(len(v) for v in self._user_items.values()),
                last_trained_at=self._last_trained_at,
                similarity_metric=self.similarity_metric,
            )

    # ── private helpers ───────────────────────────────────────────────────

    def _popular_items(self, excluded: Set[str], limit: int) -> List[ItemScore]:
        """Most-viewed items not in ``excluded``.  Caller holds the read lock."""
        ranked = _rank(
            (item, float(count))
            for item, count in self._item_views.items()
            if item not in excluded
        )
        return [
            ItemScore(item_id=item, score=score, reason=REASON_POPULAR)
            for item, score in ranked[:limit]
        ]

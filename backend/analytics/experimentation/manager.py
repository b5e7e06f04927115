"""
analytics/experimentation/manager.py
────────────────────────────────────
A/B/n experiment lifecycle, sticky assignment and result analysis.

Lifecycle
---------
    draft ──start──▶ running ──pause──▶ paused ──start──▶ running
                        │
                        └──stop──▶ completed

Any other move raises :class:`~analytics.errors.InvalidStateTransition`.

Assignment is hash-based (see :mod:`analytics.experimentation.bucketing`),
so a user's variant never changes for the lifetime of the experiment.
The manager remembers which users were assigned only to count impressions
and to attribute later conversions; a conversion from a user who was never
assigned is ignored rather than queued or raised.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional, Tuple

from readerwriterlock import rwlock

from analytics.errors import (
    DuplicateEntity,
    InvalidStateTransition,
    InvalidTrafficAllocation,
    UnknownEntity,
)
from analytics.experimentation import bucketing
from analytics.experimentation.significance import two_proportion_z_test
from schemas.experiment import (
    ConversionEvent,
    Experiment,
    ExperimentDefinition,
    ExperimentManagerStats,
    ExperimentResults,
    ExperimentStatus,
    Variant,
    VariantStats,
)

logger = logging.getLogger(__name__)

# action -> (states it may be taken from, resulting state)
_TRANSITIONS: Dict[str, Tuple[FrozenSet[ExperimentStatus], ExperimentStatus]] = {
    "start": (
        frozenset({ExperimentStatus.DRAFT, ExperimentStatus.PAUSED}),
        ExperimentStatus.RUNNING,
    ),
    "pause": (frozenset({ExperimentStatus.RUNNING}), ExperimentStatus.PAUSED),
    "stop": (frozenset({ExperimentStatus.RUNNING}), ExperimentStatus.COMPLETED),
}

NOT_ENOUGH_DATA = (
    "Not enough data for statistical significance. Continue running experiment."
)
NO_DIFFERENCE = "No statistically significant difference between variants yet."


@dataclass
class _Tally:
    impressions: int = 0
    conversions: int = 0
    revenue: float = 0.0

    def to_stats(self, variant_id: str) -> VariantStats:
        return VariantStats(
            variant_id=variant_id,
            impressions=self.impressions,
            conversions=self.conversions,
            conversion_rate=self.conversions / self.impressions if self.impressions else 0.0,
            revenue=self.revenue,
            average_revenue=self.revenue / self.conversions if self.conversions else 0.0,
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ExperimentManager:
    """
    In-memory A/B/n experiment manager.

    Args:
        traffic_tolerance:  Allowed deviation of the traffic-share sum from 1.
        significance_level: p-value threshold for declaring a winner.
        min_sample_size:    Impressions each compared arm needs first.
    """

    def __init__(
        self,
        traffic_tolerance: float = 0.01,
        significance_level: float = 0.05,
        min_sample_size: int = 30,
    ) -> None:
        self.traffic_tolerance = traffic_tolerance
        self.significance_level = significance_level
        self.min_sample_size = min_sample_size

        self._lock = rwlock.RWLockFair()
        self._experiments: Dict[str, Experiment] = {}
        self._assignments: Dict[str, Dict[str, str]] = {}
        self._tallies: Dict[str, Dict[str, _Tally]] = {}

    @classmethod
    def from_settings(cls, settings) -> "ExperimentManager":
        """Build the manager from :class:`core.config.Settings`."""
        return cls(
            traffic_tolerance=settings.TRAFFIC_TOLERANCE,
            significance_level=settings.SIGNIFICANCE_LEVEL,
            min_sample_size=settings.MIN_SAMPLE_SIZE,
        )

    # ── lifecycle ────────────────────────────────────────────────────────

    def create_experiment(self, definition: ExperimentDefinition) -> Experiment:
        """
        Register a new experiment in the draft state.

        Raises:
            InvalidTrafficAllocation: No variants, duplicate variant ids, or
                traffic shares not summing to 1 within the tolerance.
            DuplicateEntity: ``definition.id`` is already registered.
        """
        variants = [v.model_copy(deep=True) for v in definition.variants]
        if not variants:
            raise InvalidTrafficAllocation("An experiment needs at least one variant")

        ids = [v.id for v in variants]
        if len(ids) != len(set(ids)):
            raise InvalidTrafficAllocation("Variant ids must be unique")

        total = sum(v.traffic for v in variants)
        if abs(total - 1.0) > self.traffic_tolerance:
            raise InvalidTrafficAllocation(
                f"Variant traffic shares must sum to 1.0, got {total:.4f}"
            )

        now = _now()
        experiment = Experiment(
            id=definition.id or uuid.uuid4().hex,
            name=definition.name,
            description=definition.description,
            metric=definition.metric,
            variants=variants,
            status=ExperimentStatus.DRAFT,
            sample_size=definition.sample_size,
            created_at=now,
            updated_at=now,
        )

        with self._lock.gen_wlock():
            if experiment.id in self._experiments:
                raise DuplicateEntity(f"Experiment '{experiment.id}' already exists")
            self._experiments[experiment.id] = experiment
            self._assignments[experiment.id] = {}
            self._tallies[experiment.id] = {v.id: _Tally() for v in variants}

        logger.info(
            "Created experiment %s (%s) with %d variants",
            experiment.id,
            experiment.name,
            len(variants),
        )
        return experiment.model_copy(deep=True)

    def start_experiment(self, experiment_id: str) -> Experiment:
        """Move a draft or paused experiment to running."""
        return self._transition(experiment_id, "start")

    def pause_experiment(self, experiment_id: str) -> Experiment:
        """Move a running experiment to paused."""
        return self._transition(experiment_id, "pause")

    def stop_experiment(self, experiment_id: str) -> Experiment:
        """Move a running experiment to completed."""
        return self._transition(experiment_id, "stop")

    def _transition(self, experiment_id: str, action: str) -> Experiment:
        allowed, target = _TRANSITIONS[action]
        with self._lock.gen_wlock():
            experiment = self._get(experiment_id)
            if experiment.status not in allowed:
                raise InvalidStateTransition(
                    experiment_id, experiment.status.value, action
                )
            now = _now()
            experiment.status = target
            experiment.updated_at = now
            if target is ExperimentStatus.RUNNING and experiment.started_at is None:
                experiment.started_at = now
            if target is ExperimentStatus.COMPLETED:
                experiment.ended_at = now
            snapshot = experiment.model_copy(deep=True)

        logger.info("Experiment %s: %s -> %s", experiment_id, action, target.value)
        return snapshot

    # ── assignment & conversions ─────────────────────────────────────────

    def assign_variant(self, experiment_id: str, user_id: str) -> Optional[Variant]:
        """
        Sticky variant for ``user_id``.

        A user already in the experiment gets the same variant in any state.
        New users are only enrolled (and counted as an impression) while the
        experiment is running; otherwise ``None`` is returned.

        Raises:
            UnknownEntity: The experiment does not exist.
        """
        with self._lock.gen_wlock():
            experiment = self._get(experiment_id)
            assigned = self._assignments[experiment_id].get(user_id)
            if assigned is not None:
                return experiment.variant(assigned).model_copy(deep=True)

            if experiment.status is not ExperimentStatus.RUNNING:
                logger.debug(
                    "Not enrolling %s: experiment %s is %s",
                    user_id,
                    experiment_id,
                    experiment.status.value,
                )
                return None

            variant = bucketing.assign(experiment_id, user_id, experiment.variants)
            self._assignments[experiment_id][user_id] = variant.id
            self._tallies[experiment_id][variant.id].impressions += 1
            return variant.model_copy(deep=True)

    def get_variant(self, experiment_id: str, user_id: str) -> Optional[Variant]:
        """Existing assignment of ``user_id`` without enrolling them."""
        with self._lock.gen_rlock():
            experiment = self._get(experiment_id)
            assigned = self._assignments[experiment_id].get(user_id)
            if assigned is None:
                return None
            return experiment.variant(assigned).model_copy(deep=True)

    def track_conversion(self, event: ConversionEvent) -> bool:
        """
        Attribute a conversion to the user's assigned variant.

        Returns:
            ``True`` if recorded, ``False`` when the user was never assigned.

        Raises:
            UnknownEntity: The experiment does not exist.
        """
        with self._lock.gen_wlock():
            self._get(event.experiment_id)
            variant_id = self._assignments[event.experiment_id].get(event.user_id)
            if variant_id is None:
                logger.debug(
                    "Ignoring %s from unassigned user %s in experiment %s",
                    event.event_type,
                    event.user_id,
                    event.experiment_id,
                )
                return False
            tally = self._tallies[event.experiment_id][variant_id]
            tally.conversions += 1
            tally.revenue += event.value
            return True

    # ── results ──────────────────────────────────────────────────────────

    def get_experiment_results(self, experiment_id: str) -> ExperimentResults:
        """
        Per-variant statistics and the control-vs-candidate z-test.

        The candidate is the non-control variant with the highest conversion
        rate.  It is only declared significant when ``p < significance_level``
        and both arms have at least ``min_sample_size`` impressions.
        """
        with self._lock.gen_rlock():
            experiment = self._get(experiment_id).model_copy(deep=True)
            stats = {
                vid: tally.to_stats(vid)
                for vid, tally in self._tallies[experiment_id].items()
            }

        ordered = [stats[v.id] for v in experiment.variants]
        control_id = experiment.control.id
        control = stats[control_id]
        challengers = [s for s in ordered if s.variant_id != control_id]

        results = ExperimentResults(
            experiment_id=experiment.id,
            status=experiment.status,
            variants=ordered,
            control=control_id,
        )
        if not challengers:
            results.recommendation = "Single-variant experiment: nothing to compare."
            return results

        candidate = max(challengers, key=lambda s: s.conversion_rate)
        test = two_proportion_z_test(
            control.conversions,
            control.impressions,
            candidate.conversions,
            candidate.impressions,
        )
        enough_data = min(control.impressions, candidate.impressions) >= self.min_sample_size
        significant = enough_data and test.p_value < self.significance_level

        improvement = 0.0
        if control.conversion_rate > 0:
            improvement = (
                (candidate.conversion_rate - control.conversion_rate)
                / control.conversion_rate
                * 100.0
            )

        results.winner = candidate.variant_id
        results.p_value = test.p_value
        results.significant = significant
        results.confidence_level = 1.0 - test.p_value
        results.improvement = improvement

        candidate_name = experiment.variant(candidate.variant_id).name
        if not enough_data:
            results.recommendation = NOT_ENOUGH_DATA
        elif not significant:
            results.recommendation = NO_DIFFERENCE
        elif candidate.conversion_rate > control.conversion_rate:
            results.recommendation = (
                f"Variant '{candidate_name}' outperforms control "
                f"(p={test.p_value:.4f}). Consider rolling it out."
            )
        else:
            results.winner = control_id
            results.recommendation = (
                f"Control outperforms '{candidate_name}' "
                f"(p={test.p_value:.4f}). Keep the control experience."
            )
        return results

    # ── lookups ──────────────────────────────────────────────────────────

    def get_experiment(self, experiment_id: str) -> Experiment:
        """Copy of one experiment."""
        with self._lock.gen_rlock():
            return self._get(experiment_id).model_copy(deep=True)

    def list_experiments(self) -> List[Experiment]:
        """Copies of all experiments, oldest first."""
        with self._lock.gen_rlock():
            experiments = [e.model_copy(deep=True) for e in self._experiments.values()]
        return sorted(experiments, key=lambda e: (e.created_at, e.id))

    def get_variant_stats(self, experiment_id: str, variant_id: str) -> VariantStats:
        """
        Current statistics for one variant.

        Raises:
            UnknownEntity: Unknown experiment or variant.
        """
        with self._lock.gen_rlock():
            self._get(experiment_id)
            tally = self._tallies[experiment_id].get(variant_id)
            if tally is None:
                raise UnknownEntity("variant", variant_id)
            return tally.to_stats(variant_id)

    def get_stats(self) -> ExperimentManagerStats:
        """Experiment counts by state and total enrolled users."""
        with self._lock.gen_rlock():
            statuses = [e.status for e in self._experiments.values()]
            return ExperimentManagerStats(
                total_experiments=len(statuses),
                running_experiments=statuses.count(ExperimentStatus.RUNNING),
                completed_experiments=statuses.count(ExperimentStatus.COMPLETED),
                total_assignments=sum(len(a) for a in self._assignments.values()),
            )

    def _get(self, experiment_id: str) -> Experiment:
        """Live experiment record.  Caller holds the lock."""
        experiment = self._experiments.get(experiment_id)
        if experiment is None:
            raise UnknownEntity("experiment", experiment_id)
        return experiment

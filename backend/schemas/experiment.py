"""
Pydantic schemas for A/B/n experiments.

``ExperimentDefinition`` is what the caller submits; ``Experiment`` is the
managed entity the engine hands back (always as a copy, so callers cannot
mutate engine state behind the lock).
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


def _new_id() -> str:
    return uuid.uuid4().hex


class ExperimentStatus(str, Enum):
    """Lifecycle: draft → running ⇄ paused → completed."""

    DRAFT = "draft"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"


class Variant(BaseModel):
    """
    One arm of an experiment.

    Attributes:
        id:          Stable variant identifier (generated when omitted).
        name:        Display name.
        description: Optional free text.
        traffic:     Share of traffic routed to this arm, in [0, 1].
        is_control:  Marks the baseline arm used by the significance test.
        config:      Opaque payload the caller applies when the arm is served.
    """

    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    traffic: float = Field(..., ge=0.0, le=1.0)
    is_control: bool = False
    config: Dict[str, Any] = Field(default_factory=dict)


class ExperimentDefinition(BaseModel):
    """Inbound request to create an experiment."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    description: str = ""
    metric: str = Field(..., min_length=1)
    variants: List[Variant]
    sample_size: int = Field(default=0, ge=0)


class Experiment(BaseModel):
    """A managed experiment and its lifecycle timestamps."""

    id: str
    name: str
    description: str = ""
    metric: str
    variants: List[Variant]
    status: ExperimentStatus = ExperimentStatus.DRAFT
    sample_size: int = 0
    created_at: datetime
    updated_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    def variant(self, variant_id: str) -> Optional[Variant]:
        """Return the variant with ``variant_id`` or ``None``."""
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None

    @property
    def control(self) -> Variant:
        """First variant flagged as control, else the first variant."""
        for v in self.variants:
            if v.is_control:
                return v
        return self.variants[0]


class ConversionEvent(BaseModel):
    """A conversion reported by the caller for an experiment participant."""

    user_id: str
    experiment_id: str
    event_type: str = "conversion"
    value: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)


class VariantStats(BaseModel):
    """Aggregated outcome of one variant."""

    variant_id: str
    impressions: int = 0
    conversions: int = 0
    conversion_rate: float = 0.0
    revenue: float = 0.0
    average_revenue: float = 0.0


class ExperimentResults(BaseModel):
    """
    Per-variant statistics plus the control-vs-candidate significance test.

    Attributes:
        winner:            Candidate winner (best non-control variant).
        control:           Variant the candidate was tested against.
        p_value:           Two-tailed p-value of the two-proportion z-test.
        significant:       ``p_value < alpha`` and both arms met the sample gate.
        confidence_level:  ``1 - p_value``.
        improvement:       Relative lift of the winner over control, percent.
        recommendation:    Human-readable verdict.
    """

    experiment_id: str
    status: ExperimentStatus
    variants: List[VariantStats]
    winner: Optional[str] = None
    control: Optional[str] = None
    p_value: float = 1.0
    significant: bool = False
    confidence_level: float = 0.0
    improvement: float = 0.0
    recommendation: str = ""


class ExperimentManagerStats(BaseModel):
    """Counts across all managed experiments."""

    total_experiments: int
    running_experiments: int
    completed_experiments: int
    total_assignments: int

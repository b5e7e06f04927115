"""
Pydantic schemas for the collaborative-filtering boundary.

The surrounding application posts ``InteractionEvent`` payloads and
receives ranked ``ItemScore`` lists back; serialising them over its own
transport is the caller's job.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field


class InteractionType(str, Enum):
    """Kinds of user → item interaction the engine understands."""

    VIEW = "view"
    CLICK = "click"
    ADD_TO_CART = "add_to_cart"
    FAVORITE = "favorite"
    ORDER = "order"


# Fixed multiplier applied to the caller's weight on ingestion.
INTERACTION_WEIGHTS: Dict[InteractionType, float] = {
    InteractionType.VIEW: 1.0,
    InteractionType.CLICK: 2.0,
    InteractionType.ADD_TO_CART: 5.0,
    InteractionType.FAVORITE: 8.0,
    InteractionType.ORDER: 10.0,
}


class InteractionEvent(BaseModel):
    """
    One inbound interaction.

    Attributes:
        user:   Opaque user identifier.
        item:   Opaque menu-item identifier.
        type:   Interaction kind; drives the score multiplier.
        weight: Caller-supplied weight (``1.0`` when omitted).
    """

    user: str = Field(..., min_length=1)
    item: str = Field(..., min_length=1)
    type: InteractionType
    weight: float = Field(default=1.0, ge=0.0)


class ItemScore(BaseModel):
    """A ranked item with the reason it was surfaced."""

    item_id: str
    score: float
    reason: str


class RecommendationStats(BaseModel):
    """Snapshot of the engine's accumulated state."""

    total_users: int
    total_items: int
    total_interactions: int
    last_trained_at: Optional[datetime]
    similarity_metric: str

"""Input events consumed by the map screen.

User interactions and viewport updates are normalized into these frozen
events.  Only the selection state machine and the screen act on them.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from playmap.models.facility import CategoryFilter
from playmap.models.geo import Viewport


class _Event(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ViewportChanged(_Event):
    viewport: Viewport


class CategoryFilterChanged(_Event):
    category: CategoryFilter


class EntityTapped(_Event):
    """A tap on one marker.  Ids that match no current entity, blank ones
    included, resolve the selection to ``Idle``."""

    entity_id: str


class ClusterTapped(_Event):
    entity_ids: tuple[str, ...]


class DetailDismissed(_Event):
    """The detail surface was closed by any means."""


InteractionEvent = EntityTapped | ClusterTapped | DetailDismissed

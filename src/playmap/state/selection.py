"""Selection state machine.

States::

    Idle ──tap(entity)──▶ SingleSelected ◀──tap(member)── ClusterSelected
      ▲                        │                               ▲
      │                     dismiss                      tap(cluster)
      └──── Dismissed ◀────────┴───────────────────────────────┘

``Dismissed`` is transient: it is published and immediately resolved to
``Idle``.  Every event has a defined next state from every state.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Iterable, Sequence
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, ConfigDict, model_validator

from playmap.models.entity import MapEntity
from playmap.models.geo import Coordinate
from playmap.spatial import sort_by_distance
from playmap.state.events import ClusterTapped, DetailDismissed, EntityTapped, InteractionEvent

_logger = logging.getLogger(__name__)


class SelectionKind(StrEnum):
    IDLE = "idle"
    SINGLE = "single"
    CLUSTER = "cluster"
    DISMISSED = "dismissed"


class Idle(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal[SelectionKind.IDLE] = SelectionKind.IDLE


class SingleSelected(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal[SelectionKind.SINGLE] = SelectionKind.SINGLE
    entity: MapEntity


class ClusterSelected(BaseModel):
    """A cluster snapshot, members ordered by ascending distance from the user."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal[SelectionKind.CLUSTER] = SelectionKind.CLUSTER
    members: tuple[MapEntity, ...]
    distances: tuple[float | None, ...]

    @model_validator(mode="after")
    def _check_members(self) -> ClusterSelected:
        if not self.members:
            raise ValueError("a selected cluster needs at least one member")
        if len(self.distances) != len(self.members):
            raise ValueError("distances must align with members")
        return self

    @property
    def member_ids(self) -> tuple[str, ...]:
        return tuple(member.id for member in self.members)


class Dismissed(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal[SelectionKind.DISMISSED] = SelectionKind.DISMISSED


SelectionState = Idle | SingleSelected | ClusterSelected | Dismissed
StateCallback = Callable[[SelectionState], None]
LocationProvider = Callable[[], Coordinate | None]

IDLE = Idle()


def _no_location() -> Coordinate | None:
    return None


class SelectionStateMachine:
    """Own the current :data:`SelectionState`.

    Taps carry entity ids; they are resolved against the entity snapshot of
    the most recent aggregation cycle (see :meth:`reconcile`).  An id that
    is not in that snapshot can only be stale, so it leads to ``Idle``.
    """

    def __init__(self, *, location_provider: LocationProvider | None = None) -> None:
        self._location_provider = location_provider or _no_location
        self._state: SelectionState = IDLE
        self._entities: dict[str, MapEntity] = {}
        self._subscribers: list[StateCallback] = []

    @property
    def state(self) -> SelectionState:
        return self._state

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._subscribers.remove(callback)

        return _unsubscribe

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def handle(self, event: InteractionEvent) -> SelectionState:
        if isinstance(event, EntityTapped):
            return self.tap_entity(event.entity_id)
        if isinstance(event, ClusterTapped):
            return self.tap_cluster(event.entity_ids)
        if isinstance(event, DetailDismissed):
            return self.dismiss()
        raise TypeError(f"unsupported selection event: {type(event).__name__}")

    def tap_entity(self, entity_id: str) -> SelectionState:
        entity = self._entities.get(entity_id)
        if entity is None:
            _logger.debug("Tap on unknown entity %s; selection reset", entity_id)
            return self._transition(IDLE)
        return self._transition(SingleSelected(entity=entity))

    def tap_cluster(self, entity_ids: Iterable[str]) -> SelectionState:
        members: list[MapEntity] = []
        seen: set[str] = set()
        for entity_id in entity_ids:
            entity = self._entities.get(entity_id)
            if entity is None or entity_id in seen:
                continue
            seen.add(entity_id)
            members.append(entity)
        if not members:
            _logger.debug("Tap on cluster with no known members; selection reset")
            return self._transition(IDLE)
        if len(members) == 1:
            return self._transition(SingleSelected(entity=members[0]))
        return self._transition(self._cluster_state(members))

    def dismiss(self) -> SelectionState:
        if isinstance(self._state, Idle):
            return self._state
        self._transition(Dismissed())
        return self._transition(IDLE)

    def reconcile(self, entities: Sequence[MapEntity]) -> SelectionState:
        """Adopt the entity snapshot of a completed aggregation cycle.

        A selection that references an id missing from *entities* is
        forced back to ``Idle``.
        """
        self._entities = {entity.id: entity for entity in entities}
        state = self._state
        if isinstance(state, SingleSelected) and state.entity.id not in self._entities:
            _logger.debug("Selected entity %s vanished; selection reset", state.entity.id)
            return self._transition(IDLE)
        if isinstance(state, ClusterSelected) and any(mid not in self._entities for mid in state.member_ids):
            _logger.debug("Selected cluster lost members; selection reset")
            return self._transition(IDLE)
        return state

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _cluster_state(self, members: Sequence[MapEntity]) -> ClusterSelected:
        ordered = sort_by_distance(members, self._location_provider())
        return ClusterSelected(
            members=tuple(entity for entity, _ in ordered),
            distances=tuple(distance for _, distance in ordered),
        )

    def _transition(self, new_state: SelectionState) -> SelectionState:
        self._state = new_state
        for callback in list(self._subscribers):
            try:
                callback(new_state)
            except Exception:
                _logger.debug("Selection subscriber failed", exc_info=True)
        return new_state

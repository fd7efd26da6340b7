"""High-level async client for the playground document store."""

from __future__ import annotations

from typing import Any

import aiohttp

from playmap._api import facilities as _facilities_api
from playmap._api import rides as _rides_api
from playmap._transport import HttpTransport
from playmap.config import PlaymapConfig
from playmap.coordinator import LocationProvider
from playmap.exceptions import PlaymapError
from playmap.models.facility import FacilityRecord
from playmap.models.ride import SubRecord
from playmap.screen import MapScreen


class PlaymapClient:
    """Async client for the facility and ride collections.

    Implements the :class:`~playmap.coordinator.FacilitySource` protocol,
    so it can be handed straight to a coordinator or map screen.

    Usage::

        async with PlaymapClient(config) as client:
            screen = client.map_screen(location_provider=gps.last_fix)
            await screen.viewport_changed(viewport)
    """

    def __init__(
        self,
        config: PlaymapConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._config = config or PlaymapConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: HttpTransport | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> PlaymapClient:
        if self._http_session is None:
            self._http_session = aiohttp.ClientSession()
        self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None

    @property
    def config(self) -> PlaymapConfig:
        return self._config

    def _require_transport(self) -> HttpTransport:
        if self._transport is None:
            raise PlaymapError("Client not initialized. Use 'async with PlaymapClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list_facilities(self) -> list[FacilityRecord]:
        """Fetch every facility; there is no server-side geographic filter."""
        return await _facilities_api.fetch_facilities(self._require_transport())

    async def list_sub_records(self, facility_id: str) -> list[SubRecord]:
        """Fetch the rides of one facility."""
        return await _rides_api.fetch_rides(self._require_transport(), facility_id)

    async def get_facility(self, facility_id: str) -> FacilityRecord:
        return await _facilities_api.fetch_facility(self._require_transport(), facility_id)

    async def get_sub_record(self, ride_id: str) -> SubRecord:
        return await _rides_api.fetch_ride(self._require_transport(), ride_id)

    # ------------------------------------------------------------------
    # Screens
    # ------------------------------------------------------------------

    def map_screen(self, *, location_provider: LocationProvider | None = None) -> MapScreen:
        """Build a :class:`MapScreen` backed by this client."""
        return MapScreen.from_config(self, self._config, location_provider=location_provider)

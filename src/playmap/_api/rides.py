"""Ride (facility sub-record) endpoints.

Endpoints:
  - GET /rides?pfctSn={facility_id}
  - GET /rides/{id}
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from playmap._api._common import collection_endpoint, document_endpoint, parse_collection, parse_document
from playmap._constants import FACILITY_ID_FIELD, SUB_RECORDS_COLLECTION
from playmap._transport import Transport
from playmap.exceptions import PlaymapTransportError
from playmap.models.ride import SubRecord

_logger = logging.getLogger(__name__)


async def fetch_rides(transport: Transport, facility_id: str) -> list[SubRecord]:
    """Fetch all rides belonging to *facility_id*.

    Rides reporting a different facility id than requested are dropped;
    the backend filter is an equality match and anything else is noise.
    """
    endpoint = collection_endpoint(SUB_RECORDS_COLLECTION)
    payload = await transport.get_json(endpoint, {FACILITY_ID_FIELD: facility_id})
    parsed = parse_collection(SubRecord, payload, endpoint=endpoint)
    rides = [ride for ride in parsed if ride.facility_id == facility_id]
    _logger.debug("Fetched %d rides for facility %s", len(rides), facility_id)
    return rides


async def fetch_ride(transport: Transport, ride_id: str) -> SubRecord:
    """Fetch one ride by id.

    Raises
    ------
    RecordNotFoundError
        If the backend has no such ride.
    PlaymapTransportError
        If the document is malformed.
    """
    endpoint = document_endpoint(SUB_RECORDS_COLLECTION, ride_id)
    payload = await transport.get_json(endpoint)
    try:
        return parse_document(SubRecord, payload, document_id=ride_id)
    except ValidationError as exc:
        raise PlaymapTransportError(f"Malformed ride document from {endpoint}", endpoint=endpoint) from exc

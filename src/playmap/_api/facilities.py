"""Facility (playground) endpoints.

Endpoints:
  - GET /playgrounds
  - GET /playgrounds/{id}
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from playmap._api._common import collection_endpoint, document_endpoint, parse_collection, parse_document
from playmap._constants import FACILITIES_COLLECTION
from playmap._transport import Transport
from playmap.exceptions import PlaymapTransportError
from playmap.models.facility import FacilityRecord

_logger = logging.getLogger(__name__)


async def fetch_facilities(transport: Transport) -> list[FacilityRecord]:
    """Fetch the full, unfiltered facility collection.

    The backend has no bounding-box query; callers filter client-side.
    Records whose coordinates do not parse are still returned with
    ``coordinate is None``.
    """
    endpoint = collection_endpoint(FACILITIES_COLLECTION)
    payload = await transport.get_json(endpoint)
    facilities = parse_collection(FacilityRecord, payload, endpoint=endpoint)
    _logger.debug("Fetched %d facilities", len(facilities))
    return facilities


async def fetch_facility(transport: Transport, facility_id: str) -> FacilityRecord:
    """Fetch one facility by id.

    Raises
    ------
    RecordNotFoundError
        If the backend has no such facility.
    PlaymapTransportError
        If the document is malformed.
    """
    endpoint = document_endpoint(FACILITIES_COLLECTION, facility_id)
    payload = await transport.get_json(endpoint)
    try:
        return parse_document(FacilityRecord, payload, document_id=facility_id)
    except ValidationError as exc:
        raise PlaymapTransportError(f"Malformed facility document from {endpoint}", endpoint=endpoint) from exc

"""Shared helpers for backend endpoint modules.

Internal to playmap and may change at any time.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from playmap.ingestion.normalize import unwrap_documents
from playmap.models._base import RecordModel

_logger = logging.getLogger(__name__)

TRecord = TypeVar("TRecord", bound=RecordModel)


def collection_endpoint(collection: str) -> str:
    return f"/{collection}"


def document_endpoint(collection: str, document_id: str) -> str:
    return f"/{collection}/{document_id}"


def parse_collection(model: type[TRecord], payload: Any, *, endpoint: str) -> list[TRecord]:
    """Validate every document of a collection response.

    Documents that fail validation (for example a missing id) are skipped
    with a debug log rather than failing the whole listing.
    """
    records: list[TRecord] = []
    skipped = 0
    for doc in unwrap_documents(payload):
        try:
            records.append(model.model_validate(doc))
        except ValidationError:
            skipped += 1
            _logger.debug("Skipping malformed %s document from %s", model.__name__, endpoint, exc_info=True)
    if skipped:
        _logger.debug("%s: parsed=%d skipped=%d", endpoint, len(records), skipped)
    return records


def parse_document(model: type[TRecord], payload: Any, *, document_id: str) -> TRecord:
    """Validate a single-document response (bare or ``{"document": {...}}``).

    The document id from the request path is used when the body omits it.
    """
    if isinstance(payload, Mapping) and isinstance(payload.get("document"), Mapping):
        payload = payload["document"]
    if isinstance(payload, Mapping):
        payload = {"id": document_id, **payload}
    return model.model_validate(payload)

"""Normalization helpers.

Centralizes defensive parsing of backend document fields.  The backing
store keeps coordinates as text, so every numeric read goes through here.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, returning ``None`` on failure."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value or value == "--":
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def parse_latitude(value: Any) -> float | None:
    result = safe_float(value)
    if result is None or not -90.0 <= result <= 90.0:
        return None
    return result


def parse_longitude(value: Any) -> float | None:
    result = safe_float(value)
    if result is None or not -180.0 <= result <= 180.0:
        return None
    return result


def unwrap_documents(payload: Any) -> list[dict[str, Any]]:
    """Return the document dicts of a collection response.

    The backend answers either with a bare JSON list or with
    ``{"documents": [...]}``.  Non-dict entries are dropped.
    """
    if isinstance(payload, Mapping):
        payload = payload.get("documents", [])
    if not isinstance(payload, list):
        return []
    return [doc for doc in payload if isinstance(doc, dict)]


def flatten_document(doc: Mapping[str, Any]) -> dict[str, Any]:
    """Merge a document's ``fields`` (if nested) with its top-level keys.

    Document ids may be carried as ``id`` next to the field map; nested
    field values win over top-level ones.
    """
    merged = dict(doc)
    nested = doc.get("fields")
    if isinstance(nested, Mapping):
        merged.pop("fields", None)
        merged.update(nested)
    return merged

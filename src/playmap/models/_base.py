"""Base model for backend documents.

Every record parsed from the document store inherits from
:class:`RecordModel` which provides:

* ``AliasChoices`` friendly configuration (``populate_by_name``) so the
  abbreviated backend keys map to readable snake_case fields.
* A ``model_validator(mode="before")`` that flattens nested ``fields``
  maps, drops empty placeholder values so field defaults apply, and
  stashes the original document in ``raw``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from playmap.ingestion.normalize import flatten_document

# Placeholder strings the backend uses for "not available".
_SENTINELS = frozenset({"", "--", "null"})


class RecordModel(BaseModel):
    """Base for backend document models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, repr=False)
    """Original backend document."""

    @model_validator(mode="before")
    @classmethod
    def _clean_document(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned: dict[str, Any] = {}
        for key, value in flatten_document(original).items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            cleaned[key] = value
        # Keep an explicitly supplied raw payload (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned

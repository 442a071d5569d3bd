"""Pydantic schemas for load_entities tool."""

from __future__ import annotations

from typing import Any, Optional

from schemas.common import StrictIgnoreRequest, StrictResponse, validate_optional_non_empty_str
from pydantic import field_validator


class LoadEntitiesRequest(StrictIgnoreRequest):
    """Request schema for load_entities.

    ``status`` is passed through to the backend as a list filter.
    """

    entity_kind: str
    status: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "status")


class EntityView(StrictResponse):
    """One loaded record plus the actions this role may take on it."""

    record: dict[str, Any]
    available_transitions: list[str]


class LoadEntitiesResponse(StrictResponse):
    """Canonical list of one entity kind as just fetched."""

    entity_kind: str
    count: int
    entities: list[EntityView]

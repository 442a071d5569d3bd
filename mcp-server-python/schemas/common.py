"""Shared schema primitives for MCP tool request/response and wire models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


def validate_non_empty_str(value: str, field_name: str) -> str:
    """Validate required string fields that cannot be empty/whitespace."""
    if not value.strip():
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return value


def validate_optional_non_empty_str(value: Optional[str], field_name: str) -> Optional[str]:
    """Validate optional string fields that cannot be empty/whitespace."""
    if value is None:
        return None
    return validate_non_empty_str(value, field_name)


class StrictIgnoreRequest(BaseModel):
    """Request base with strict typing and ignored unknown fields."""

    model_config = ConfigDict(extra="ignore", strict=True)


class StrictResponse(BaseModel):
    """Response/result base with strict typing and forbidden unknown fields."""

    model_config = ConfigDict(extra="forbid")


class WireRecord(BaseModel):
    """Base for records received from the REST backend.

    The backend sends camelCase fields and ``_id`` identifiers; unknown
    fields are ignored so new backend columns never break parsing.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class EntityIdMixin(BaseModel):
    """Reusable entity_id field validation."""

    entity_id: str

    @field_validator("entity_id")
    @classmethod
    def validate_entity_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "entity_id")

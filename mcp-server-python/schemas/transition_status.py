"""Pydantic schemas for the status mutation tools."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator

from schemas.common import EntityIdMixin, StrictIgnoreRequest, StrictResponse, validate_non_empty_str


class TransitionStatusRequest(EntityIdMixin, StrictIgnoreRequest):
    """Request schema for transition_status."""

    entity_kind: str
    target_status: str

    @field_validator("target_status")
    @classmethod
    def validate_target_status(cls, value: str) -> str:
        return validate_non_empty_str(value, "target_status")


class SetVerificationRequest(EntityIdMixin, StrictIgnoreRequest):
    """Request schema for set_training_center_verification."""

    is_verified: bool


class UpdateInquiryNotesRequest(EntityIdMixin, StrictIgnoreRequest):
    """Request schema for update_inquiry_notes. Empty notes clear the field."""

    notes: str


class DeleteJobRequest(EntityIdMixin, StrictIgnoreRequest):
    """Request schema for delete_job."""


class TransitionStatusResponse(StrictResponse):
    """Outcome of one status mutation."""

    entity_kind: str
    entity_id: str
    previous_status: str
    status: Optional[str] = None
    action: str
    success: bool = True
    notes: Optional[str] = None
    available_transitions: list[str] = []


class DeleteJobResponse(StrictResponse):
    """Outcome of delete_job."""

    entity_id: str
    deleted: bool

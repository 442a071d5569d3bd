"""Pydantic models for the records held in the entity store.

Each model accepts raw backend payloads: ``_id`` populates ``id``, nested
reference objects collapse to their id, and unknown fields are ignored.
Read-only counters are carried as received and never mutated locally.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from models.status import (
    ApplicationStatus,
    EntityKind,
    InquiryStatus,
    JobStatus,
    VerificationStatus,
)
from schemas.common import WireRecord


def _reference_id(value: Any) -> Any:
    """Collapse a populated reference (``{"_id": ..., ...}``) to its id."""
    if isinstance(value, dict):
        return value.get("_id") or value.get("id")
    return value


class JobRecord(WireRecord):
    """Job posting owned by one employer."""

    id: str = Field(alias="_id")
    status: JobStatus
    title: Optional[str] = None
    employer: Optional[str] = None
    view_count: int = Field(default=0, alias="viewCount")
    application_count: int = Field(default=0, alias="applicationCount")

    @field_validator("employer", mode="before")
    @classmethod
    def collapse_employer(cls, value: Any) -> Any:
        return _reference_id(value)


class ApplicationRecord(WireRecord):
    """Application of one job seeker to one job."""

    id: str = Field(alias="_id")
    status: ApplicationStatus
    job: Optional[str] = None
    job_seeker: Optional[str] = Field(default=None, alias="jobSeeker")

    @field_validator("job", "job_seeker", mode="before")
    @classmethod
    def collapse_references(cls, value: Any) -> Any:
        return _reference_id(value)


class CourseInquiryRecord(WireRecord):
    """Inquiry about a course, from a registered job seeker or an anonymous contact.

    ``course`` is None once the course or its training center was deleted;
    such orphaned inquiries stay valid.
    """

    id: str = Field(alias="_id")
    status: InquiryStatus
    course: Optional[str] = None
    inquirer: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("course", "inquirer", mode="before")
    @classmethod
    def collapse_references(cls, value: Any) -> Any:
        return _reference_id(value)


class TrainingCenterRecord(WireRecord):
    """Training center profile; only the verification flag is mutable here."""

    id: str = Field(alias="_id")
    is_verified: bool = Field(default=False, alias="isVerified")
    name: Optional[str] = None

    @property
    def status(self) -> VerificationStatus:
        return VerificationStatus.from_flag(self.is_verified)


class NotificationRecord(WireRecord):
    """Notification owned by the signed-in user. The payload is immutable."""

    id: str = Field(alias="_id")
    is_read: bool = Field(default=False, alias="isRead")
    type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    link: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    related_job: Optional[str] = Field(default=None, alias="relatedJob")

    @field_validator("related_job", mode="before")
    @classmethod
    def collapse_related_job(cls, value: Any) -> Any:
        return _reference_id(value)


class SavedItemRecord(WireRecord):
    """Entry of the saved-items (bookmarks) page."""

    id: str = Field(alias="_id")
    item_type: str = Field(alias="itemType")
    item_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def extract_item_id(cls, data: Any) -> Any:
        """Pull the item id out of the populated ``job`` or ``course`` reference."""
        if isinstance(data, dict) and not data.get("item_id"):
            item_type = data.get("itemType")
            reference = data.get(item_type) if item_type else None
            if reference is None:
                reference = data.get("itemId")
            data = {**data, "item_id": _reference_id(reference)}
        return data


RECORD_MODELS = {
    EntityKind.JOB: JobRecord,
    EntityKind.APPLICATION: ApplicationRecord,
    EntityKind.COURSE_INQUIRY: CourseInquiryRecord,
    EntityKind.TRAINING_CENTER: TrainingCenterRecord,
}

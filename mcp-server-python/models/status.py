"""
Centralized, type-safe status definitions for the marketplace sync layer.

This module is the single source of truth for every status value, actor role
and entity kind used across the application. All Enums inherit from
``(str, Enum)`` so that members compare equal to the plain strings the REST
backend sends and serialize naturally to JSON at API boundaries.
"""

from enum import Enum


class ActorRole(str, Enum):
    """Authenticated user category gating which mutations are permitted."""

    JOBSEEKER = "jobseeker"
    EMPLOYER = "employer"
    TRAINING_CENTER = "training_center"
    ADMIN = "admin"


class EntityKind(str, Enum):
    """Kinds of records the lifecycle engine and mutation guard know about."""

    JOB = "job"
    APPLICATION = "application"
    COURSE_INQUIRY = "course_inquiry"
    TRAINING_CENTER = "training_center"
    BOOKMARK = "bookmark"
    NOTIFICATION = "notification"


class JobStatus(str, Enum):
    """Lifecycle of a job posting.

    Canonical transitions:
        draft   ->  active
        active  <-> paused
        draft | active | paused  ->  closed   (terminal)
    """

    DRAFT = "draft"
    ACTIVE = "active"
    PAUSED = "paused"
    CLOSED = "closed"


class ApplicationStatus(str, Enum):
    """Lifecycle of a job application.

    ``pending`` is the creation state. Every other status is reachable from
    ``pending`` and from each other; nothing leads back to ``pending``.
    """

    PENDING = "pending"
    REVIEWED = "reviewed"
    SHORTLISTED = "shortlisted"
    INTERVIEW = "interview"
    OFFERED = "offered"
    REJECTED = "rejected"
    HIRED = "hired"


class InquiryStatus(str, Enum):
    """Lifecycle of a course inquiry.

    Canonical transitions:
        pending  ->  contacted
        pending | contacted  ->  enrolled   (terminal)
        pending | contacted  ->  closed     (terminal)
    """

    PENDING = "pending"
    CONTACTED = "contacted"
    ENROLLED = "enrolled"
    CLOSED = "closed"


class VerificationStatus(str, Enum):
    """Training center verification flag expressed as a two-state status."""

    UNVERIFIED = "unverified"
    VERIFIED = "verified"

    @classmethod
    def from_flag(cls, is_verified: bool) -> "VerificationStatus":
        return cls.VERIFIED if is_verified else cls.UNVERIFIED

    @property
    def flag(self) -> bool:
        return self is VerificationStatus.VERIFIED


class ItemType(str, Enum):
    """Kinds of items a job seeker can bookmark."""

    JOB = "job"
    COURSE = "course"


# Status enum per entity kind that carries a lifecycle
STATUS_ENUMS = {
    EntityKind.JOB: JobStatus,
    EntityKind.APPLICATION: ApplicationStatus,
    EntityKind.COURSE_INQUIRY: InquiryStatus,
    EntityKind.TRAINING_CENTER: VerificationStatus,
}

# Statuses from which no further transition is legal
TERMINAL_STATUSES = {
    EntityKind.JOB: frozenset({JobStatus.CLOSED}),
    EntityKind.APPLICATION: frozenset(),
    EntityKind.COURSE_INQUIRY: frozenset({InquiryStatus.ENROLLED, InquiryStatus.CLOSED}),
    EntityKind.TRAINING_CENTER: frozenset(),
}

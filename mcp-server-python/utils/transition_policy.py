"""
Transition policy validation for marketplace entity lifecycles.

This module enforces the legal status transitions for every mutable entity:
- Noop when target equals current status (terminal statuses included)
- Terminal statuses (Job closed, CourseInquiry enrolled/closed) reject every exit
- Only listed edges are legal, and only for the listed actor roles
- Unknown actor roles are always unauthorized

It is pure and synchronous; the lifecycle engine calls it before any network
request so an illegal intent never reaches the backend.
"""

from enum import Enum
from typing import Dict, Any, FrozenSet, Optional, Tuple

from models.errors import (
    create_terminal_state_error,
    create_unauthorized_error,
    create_validation_error,
)
from models.status import (
    ActorRole,
    ApplicationStatus,
    EntityKind,
    InquiryStatus,
    JobStatus,
    STATUS_ENUMS,
    TERMINAL_STATUSES,
    VerificationStatus,
)


class RejectionReason(str, Enum):
    """Why a transition was rejected."""

    TERMINAL_STATE = "TERMINAL_STATE"
    UNAUTHORIZED = "UNAUTHORIZED"
    ILLEGAL_TRANSITION = "ILLEGAL_TRANSITION"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"


_JOB_ACTORS = frozenset({ActorRole.EMPLOYER, ActorRole.ADMIN})
_INQUIRY_ACTORS = frozenset({ActorRole.TRAINING_CENTER})
_APPLICATION_ACTORS = frozenset({ActorRole.EMPLOYER, ActorRole.ADMIN})
_VERIFICATION_ACTORS = frozenset({ActorRole.ADMIN})


def _application_edges() -> Dict[Tuple[Enum, Enum], FrozenSet[ActorRole]]:
    """Every non-pending status is reachable from pending and from each other."""
    reachable = [s for s in ApplicationStatus if s is not ApplicationStatus.PENDING]
    edges = {}
    for target in reachable:
        edges[(ApplicationStatus.PENDING, target)] = _APPLICATION_ACTORS
        for source in reachable:
            if source is not target:
                edges[(source, target)] = _APPLICATION_ACTORS
    return edges


# Legal edges: (current_status, target_status) -> roles allowed to take the edge
TRANSITIONS: Dict[EntityKind, Dict[Tuple[Enum, Enum], FrozenSet[ActorRole]]] = {
    EntityKind.JOB: {
        (JobStatus.DRAFT, JobStatus.ACTIVE): _JOB_ACTORS,
        (JobStatus.ACTIVE, JobStatus.PAUSED): _JOB_ACTORS,
        (JobStatus.PAUSED, JobStatus.ACTIVE): _JOB_ACTORS,
        (JobStatus.DRAFT, JobStatus.CLOSED): _JOB_ACTORS,
        (JobStatus.ACTIVE, JobStatus.CLOSED): _JOB_ACTORS,
        (JobStatus.PAUSED, JobStatus.CLOSED): _JOB_ACTORS,
    },
    EntityKind.COURSE_INQUIRY: {
        (InquiryStatus.PENDING, InquiryStatus.CONTACTED): _INQUIRY_ACTORS,
        (InquiryStatus.PENDING, InquiryStatus.ENROLLED): _INQUIRY_ACTORS,
        (InquiryStatus.CONTACTED, InquiryStatus.ENROLLED): _INQUIRY_ACTORS,
        (InquiryStatus.PENDING, InquiryStatus.CLOSED): _INQUIRY_ACTORS,
        (InquiryStatus.CONTACTED, InquiryStatus.CLOSED): _INQUIRY_ACTORS,
    },
    EntityKind.TRAINING_CENTER: {
        (VerificationStatus.UNVERIFIED, VerificationStatus.VERIFIED): _VERIFICATION_ACTORS,
        (VerificationStatus.VERIFIED, VerificationStatus.UNVERIFIED): _VERIFICATION_ACTORS,
    },
    EntityKind.APPLICATION: _application_edges(),
}


class TransitionResult:
    """Result of a transition policy check."""

    def __init__(
        self,
        allowed: bool,
        is_noop: bool = False,
        reason: Optional[RejectionReason] = None,
        error_message: Optional[str] = None,
    ):
        """
        Initialize a transition result.

        Args:
            allowed: Whether the transition is allowed
            is_noop: Whether this is a no-op (target == current)
            reason: Rejection category if the transition is blocked
            error_message: Error message if transition is blocked
        """
        self.allowed = allowed
        self.is_noop = is_noop
        self.reason = reason
        self.error_message = error_message

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format."""
        result = {"allowed": self.allowed, "is_noop": self.is_noop}
        if self.reason:
            result["reason"] = self.reason.value
        if self.error_message:
            result["error_message"] = self.error_message
        return result

    @classmethod
    def rejected(cls, reason: RejectionReason, message: str) -> "TransitionResult":
        return cls(allowed=False, reason=reason, error_message=message)


def parse_role(role) -> Optional[ActorRole]:
    """Return the ActorRole for a role value, or None if it is not a known role."""
    if isinstance(role, ActorRole):
        return role
    try:
        return ActorRole(role)
    except ValueError:
        return None


def parse_status(kind: EntityKind, status) -> Optional[Enum]:
    """Return the status enum member for ``kind``, or None if the value is unknown."""
    status_enum = STATUS_ENUMS.get(kind)
    if status_enum is None:
        return None
    if isinstance(status, status_enum):
        return status
    try:
        return status_enum(status)
    except ValueError:
        return None


def validate_transition(kind: EntityKind, current_status, target_status, role) -> TransitionResult:
    """
    Validate a status transition according to the legal-transition tables.

    Policy rules, evaluated in order:
    1. Unknown actor role -> rejected, UNAUTHORIZED
    2. Unknown current or target status -> rejected, UNKNOWN_STATUS
    3. target_status == current_status -> allowed, is_noop=True
    4. current_status is terminal -> rejected, TERMINAL_STATE
    5. Edge not in the table -> rejected, ILLEGAL_TRANSITION
    6. Edge exists but role may not take it -> rejected, UNAUTHORIZED

    Args:
        kind: Entity kind carrying the lifecycle
        current_status: Status the entity is in now
        target_status: Status requested
        role: Actor role of the signed-in user

    Returns:
        TransitionResult describing the decision

    Examples:
        >>> validate_transition(EntityKind.JOB, "draft", "active", "employer").allowed
        True
        >>> validate_transition(EntityKind.JOB, "active", "active", "employer").is_noop
        True
        >>> validate_transition(EntityKind.JOB, "closed", "active", "admin").reason.value
        'TERMINAL_STATE'
        >>> validate_transition(EntityKind.JOB, "active", "draft", "employer").reason.value
        'ILLEGAL_TRANSITION'
    """
    actor = parse_role(role)
    if actor is None:
        return TransitionResult.rejected(
            RejectionReason.UNAUTHORIZED, f"Unknown actor role: '{role}'"
        )

    current = parse_status(kind, current_status)
    target = parse_status(kind, target_status)
    if current is None or target is None:
        unknown = current_status if current is None else target_status
        allowed = ", ".join(s.value for s in STATUS_ENUMS.get(kind, ()))
        return TransitionResult.rejected(
            RejectionReason.UNKNOWN_STATUS,
            f"Invalid {kind.value} status: '{unknown}'. Allowed values are: {allowed}",
        )

    if target is current:
        return TransitionResult(allowed=True, is_noop=True)

    if current in TERMINAL_STATUSES[kind]:
        return TransitionResult.rejected(
            RejectionReason.TERMINAL_STATE,
            f"{kind.value} status '{current.value}' is terminal; "
            f"cannot transition to '{target.value}'",
        )

    actors = TRANSITIONS[kind].get((current, target))
    if actors is None:
        options = sorted(t.value for t in allowed_targets(kind, current, actor))
        return TransitionResult.rejected(
            RejectionReason.ILLEGAL_TRANSITION,
            f"Transition from '{current.value}' to '{target.value}' is not allowed for "
            f"{kind.value}. Allowed transitions from '{current.value}': "
            + (", ".join(f"'{s}'" for s in options) or "none"),
        )

    if actor not in actors:
        return TransitionResult.rejected(
            RejectionReason.UNAUTHORIZED,
            f"Role '{actor.value}' may not move {kind.value} "
            f"from '{current.value}' to '{target.value}'",
        )

    return TransitionResult(allowed=True, is_noop=False)


def allowed_targets(kind: EntityKind, current_status, role) -> FrozenSet[Enum]:
    """
    List the statuses ``role`` may move an entity to from ``current_status``.

    Views render exactly these actions; illegal actions are absent rather
    than disabled.
    """
    actor = parse_role(role)
    current = parse_status(kind, current_status)
    if actor is None or current is None:
        return frozenset()
    return frozenset(
        target
        for (source, target), actors in TRANSITIONS[kind].items()
        if source is current and actor in actors
    )


def check_transition_or_raise(kind: EntityKind, current_status, target_status, role) -> TransitionResult:
    """
    Validate transition and raise MarketplaceError if blocked.

    Terminal-state rejections raise TERMINAL_STATE, role rejections raise
    UNAUTHORIZED, and everything else raises VALIDATION_REJECTED.

    Returns:
        TransitionResult if transition is allowed (including noop)

    Raises:
        MarketplaceError: If the transition is rejected
    """
    result = validate_transition(kind, current_status, target_status, role)

    if result.allowed:
        return result

    if result.reason is RejectionReason.TERMINAL_STATE:
        raise create_terminal_state_error(result.error_message)
    if result.reason is RejectionReason.UNAUTHORIZED:
        raise create_unauthorized_error(result.error_message)
    raise create_validation_error(result.error_message)

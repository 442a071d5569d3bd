"""
Status lifecycle engine.

Every mutation follows the same discipline:
1. Transition policy check (fast-fail, no network)
2. Mutation guard acquire for the record (BUSY if one is outstanding)
3. Gateway call
4. Write the server-confirmed value into the entity store, never the
   requested one; evict the record if the server echoed nothing usable
5. Guard release, on success and on failure

No step retries. A failed call leaves the store untouched; recovery is a
fresh load.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from gateway.marketplace_client import MarketplaceClient, extract_record, extract_records
from models.errors import (
    create_busy_error,
    create_unauthorized_error,
    create_validation_error,
)
from models.status import ActorRole, EntityKind, VerificationStatus
from store.entity_store import EntityStore
from utils.mutation_guard import MutationGuard
from utils.transition_policy import (
    allowed_targets,
    check_transition_or_raise,
    parse_role,
    parse_status,
    validate_transition,
)

logger = logging.getLogger(__name__)

# Collection endpoint per (entity kind, role) used to re-fetch canonical state
COLLECTION_PATHS = {
    (EntityKind.JOB, ActorRole.EMPLOYER): "/jobs/employer/me",
    (EntityKind.JOB, ActorRole.ADMIN): "/admin/jobs",
    (EntityKind.APPLICATION, ActorRole.EMPLOYER): "/applications/employer",
    (EntityKind.APPLICATION, ActorRole.JOBSEEKER): "/applications",
    (EntityKind.COURSE_INQUIRY, ActorRole.TRAINING_CENTER): "/courses/me/inquiries",
    (EntityKind.COURSE_INQUIRY, ActorRole.JOBSEEKER): "/courses/user/inquiries",
    (EntityKind.TRAINING_CENTER, ActorRole.ADMIN): "/admin/training-centers",
}

_JOB_OWNERS = (ActorRole.EMPLOYER, ActorRole.ADMIN)


@dataclass
class TransitionOutcome:
    """What happened to one record."""

    kind: EntityKind
    entity_id: str
    previous_status: str
    status: Optional[str]
    action: str  # "updated", "noop" or "stale"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_kind": self.kind.value,
            "entity_id": self.entity_id,
            "previous_status": self.previous_status,
            "status": self.status,
            "action": self.action,
        }


@dataclass
class BulkOutcome:
    """Result of a bulk application status update."""

    sent: bool
    results: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def updated_count(self) -> int:
        return sum(1 for r in self.results if r["success"] and r.get("action") == "updated")

    @property
    def failed_count(self) -> int:
        return sum(1 for r in self.results if not r["success"])


def _status_value(status) -> str:
    return getattr(status, "value", status)


class LifecycleEngine:
    """Applies status transitions for one signed-in actor."""

    def __init__(
        self,
        gateway: MarketplaceClient,
        store: EntityStore,
        guard: MutationGuard,
        role,
    ):
        self.gateway = gateway
        self.store = store
        self.guard = guard
        self.role = parse_role(role)

    def _require_role(self, allowed, action: str) -> ActorRole:
        if self.role is None or self.role not in allowed:
            raise create_unauthorized_error(f"Role '{_status_value(self.role)}' may not {action}")
        return self.role

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self, kind: EntityKind, params: Optional[Dict[str, Any]] = None) -> List[Any]:
        """
        Re-fetch the canonical list of ``kind`` visible to this role.

        Replaces whatever the store held for that kind.

        Raises:
            MarketplaceError: UNAUTHORIZED if the role has no view of ``kind``
        """
        kind = EntityKind(kind)
        path = COLLECTION_PATHS.get((kind, self.role))
        if path is None:
            raise create_unauthorized_error(
                f"Role '{_status_value(self.role)}' has no {kind.value} list"
            )
        raw_records = await self.gateway.fetch_collection(path, params=params)
        return self.store.replace_all(kind, raw_records)

    def available_transitions(self, kind: EntityKind, entity_id: str) -> List[str]:
        """Statuses this role may move a loaded record to, for rendering actions."""
        record = self.store.require(kind, entity_id)
        return sorted(s.value for s in allowed_targets(EntityKind(kind), record.status, self.role))

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def transition(self, kind: EntityKind, entity_id: str, target_status) -> TransitionOutcome:
        """
        Move a loaded record to ``target_status``.

        Requesting the current status is a no-op success without a network
        call, unless a mutation for the record is outstanding (BUSY).

        Raises:
            MarketplaceError: NOT_FOUND, VALIDATION_REJECTED, TERMINAL_STATE,
                UNAUTHORIZED, BUSY, or whatever the gateway raised
        """
        kind = EntityKind(kind)
        record = self.store.require(kind, entity_id)
        previous = _status_value(record.status)

        result = check_transition_or_raise(kind, record.status, target_status, self.role)
        target = parse_status(kind, target_status)

        if result.is_noop:
            # local status is unreliable while a mutation is in flight
            if self.guard.is_busy(kind, entity_id):
                raise create_busy_error(kind.value, entity_id)
            return TransitionOutcome(kind, entity_id, previous, previous, "noop")

        with self.guard.hold(kind, entity_id):
            payload = await self._send_status(kind, entity_id, target)

        return self._write_back(kind, entity_id, previous, extract_record(payload))

    async def set_verification(self, center_id: str, is_verified: bool) -> TransitionOutcome:
        """Set a training center's verification flag (admin only, idempotent)."""
        if not isinstance(is_verified, bool):
            raise create_validation_error(
                f"Invalid is_verified type: expected boolean, got {type(is_verified).__name__}"
            )
        return await self.transition(
            EntityKind.TRAINING_CENTER, center_id, VerificationStatus.from_flag(is_verified)
        )

    async def _send_status(self, kind: EntityKind, entity_id: str, target) -> Any:
        if kind is EntityKind.JOB:
            return await self.gateway.update_job_status(
                entity_id, target.value, as_admin=self.role is ActorRole.ADMIN
            )
        if kind is EntityKind.APPLICATION:
            return await self.gateway.update_application_status(entity_id, target.value)
        if kind is EntityKind.COURSE_INQUIRY:
            return await self.gateway.update_inquiry(entity_id, target.value)
        return await self.gateway.set_training_center_verification(entity_id, target.flag)

    def _confirmed_fields(self, kind: EntityKind, echoed: Dict[str, Any]) -> Dict[str, Any]:
        """Pick the echoed status-bearing field; empty if the server confirmed nothing."""
        key = "isVerified" if kind is EntityKind.TRAINING_CENTER else "status"
        if key not in echoed:
            return {}
        if kind is EntityKind.TRAINING_CENTER:
            if not isinstance(echoed[key], bool):
                logger.warning("Server echoed non-boolean isVerified %r", echoed[key])
                return {}
        elif parse_status(kind, echoed[key]) is None:
            logger.warning("Server echoed unknown %s status %r", kind.value, echoed[key])
            return {}
        confirmed = {key: echoed[key]}
        if kind is EntityKind.COURSE_INQUIRY and "notes" in echoed:
            confirmed["notes"] = echoed["notes"]
        return confirmed

    def _write_back(
        self, kind: EntityKind, entity_id: str, previous: str, echoed: Dict[str, Any]
    ) -> TransitionOutcome:
        confirmed = self._confirmed_fields(kind, echoed)
        if not confirmed:
            # nothing canonical to write; force a re-fetch instead of guessing
            self.store.remove(kind, entity_id)
            logger.info("%s %s updated but not echoed; evicted pending reload", kind.value, entity_id)
            return TransitionOutcome(kind, entity_id, previous, None, "stale")

        record = self.store.apply_confirmed(kind, entity_id, confirmed)
        if record is None:
            # deleted locally while the request was in flight
            return TransitionOutcome(kind, entity_id, previous, None, "stale")
        status = _status_value(record.status)
        logger.info("%s %s: %s -> %s (confirmed)", kind.value, entity_id, previous, status)
        return TransitionOutcome(kind, entity_id, previous, status, "updated")

    # ------------------------------------------------------------------
    # Other mutations
    # ------------------------------------------------------------------

    async def update_inquiry_notes(self, inquiry_id: str, notes: str) -> TransitionOutcome:
        """
        Replace an inquiry's notes without changing its status.

        Notes stay editable in every status, terminal ones included. The
        current status is re-sent unchanged, which the backend treats as
        idempotent.
        """
        self._require_role((ActorRole.TRAINING_CENTER,), "edit inquiry notes")
        if not isinstance(notes, str):
            raise create_validation_error(
                f"Invalid notes type: expected string, got {type(notes).__name__}"
            )
        record = self.store.require(EntityKind.COURSE_INQUIRY, inquiry_id)
        previous = _status_value(record.status)

        with self.guard.hold(EntityKind.COURSE_INQUIRY, inquiry_id):
            payload = await self.gateway.update_inquiry(inquiry_id, previous, notes=notes)

        return self._write_back(EntityKind.COURSE_INQUIRY, inquiry_id, previous, extract_record(payload))

    async def delete_job(self, job_id: str) -> None:
        """Delete a job posting (distinct from closing it) and drop it from the store."""
        role = self._require_role(_JOB_OWNERS, "delete jobs")
        self.store.require(EntityKind.JOB, job_id)

        with self.guard.hold(EntityKind.JOB, job_id):
            await self.gateway.delete_job(job_id, as_admin=role is ActorRole.ADMIN)

        self.store.remove(EntityKind.JOB, job_id)
        logger.info("job %s deleted", job_id)

    async def bulk_update_application_status(self, application_ids: List[str], target_status) -> BulkOutcome:
        """
        Move several applications to one status with a single request.

        All items are checked first; if any is unknown, illegal or busy,
        nothing is sent and the per-item failures are returned. Items already
        in the target status are reported as noop and left out of the request.
        """
        kind = EntityKind.APPLICATION
        results: Dict[str, Dict[str, Any]] = {}
        to_send: List[str] = []
        previous: Dict[str, str] = {}

        for application_id in application_ids:
            record = self.store.get(kind, application_id)
            if record is None:
                results[application_id] = {
                    "id": application_id,
                    "success": False,
                    "error": f"application not found: {application_id}",
                }
                continue
            previous[application_id] = _status_value(record.status)
            check = validate_transition(kind, record.status, target_status, self.role)
            if not check.allowed:
                results[application_id] = {
                    "id": application_id,
                    "success": False,
                    "error": check.error_message,
                }
            elif self.guard.is_busy(kind, application_id):
                results[application_id] = {
                    "id": application_id,
                    "success": False,
                    "error": create_busy_error(kind.value, application_id).message,
                }
            elif check.is_noop:
                results[application_id] = {
                    "id": application_id,
                    "success": True,
                    "status": previous[application_id],
                    "action": "noop",
                }
            else:
                to_send.append(application_id)

        if any(not r["success"] for r in results.values()):
            for application_id in to_send:
                results[application_id] = {
                    "id": application_id,
                    "success": False,
                    "error": "Not sent: batch contains invalid items",
                }
            return BulkOutcome(sent=False, results=[results[i] for i in application_ids])

        if not to_send:
            return BulkOutcome(sent=False, results=[results[i] for i in application_ids])

        target = parse_status(kind, target_status)
        with self.guard.hold_many(kind, to_send):
            payload = await self.gateway.bulk_update_application_status(to_send, target.value)

        echoed = {}
        for raw in extract_records(payload):
            raw_id = raw.get("_id") or raw.get("id")
            if raw_id in previous:
                echoed[raw_id] = raw

        for application_id in to_send:
            outcome = self._write_back(
                kind, application_id, previous[application_id], echoed.get(application_id, {})
            )
            results[application_id] = {
                "id": application_id,
                "success": True,
                "status": outcome.status,
                "action": outcome.action,
            }

        return BulkOutcome(sent=True, results=[results[i] for i in application_ids])

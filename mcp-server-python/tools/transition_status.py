"""
MCP tool handlers for single-record status mutations.

Handlers:
- transition_status: job, application or course inquiry status change
- set_training_center_verification: admin verify/unverify
- update_inquiry_notes: training center notes on an inquiry
- delete_job: remove a job posting

Every handler validates the request, delegates to the session's lifecycle
engine and converts failures into the standard error envelope. The
returned status is always the one the server confirmed.
"""

from typing import Any, Dict

from pydantic import ValidationError

from models.errors import MarketplaceError, create_internal_error
from schemas.transition_status import (
    DeleteJobRequest,
    DeleteJobResponse,
    SetVerificationRequest,
    TransitionStatusRequest,
    TransitionStatusResponse,
    UpdateInquiryNotesRequest,
)
from sync.lifecycle import TransitionOutcome
from sync.session import MarketplaceSession
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_entity_kind


def build_transition_response(
    session: MarketplaceSession, outcome: TransitionOutcome
) -> Dict[str, Any]:
    """
    Build the response for one applied (or skipped) transition.

    A record evicted as stale has no available transitions until it is
    loaded again.
    """
    record = session.store.get(outcome.kind, outcome.entity_id)
    notes = getattr(record, "notes", None) if record is not None else None
    transitions = (
        session.lifecycle.available_transitions(outcome.kind, outcome.entity_id)
        if record is not None
        else []
    )
    return TransitionStatusResponse(
        **outcome.to_dict(),
        notes=notes,
        available_transitions=transitions,
    ).model_dump()


async def transition_status(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move one loaded record to a new status.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - entity_kind (str): job, application or course_inquiry
            - entity_id (str): Backend identifier of a loaded record
            - target_status (str): Requested status

    Returns:
        Dictionary with structure:
        {
            "entity_kind": str,
            "entity_id": str,
            "previous_status": str,
            "status": str | None,        # confirmed status, None when stale
            "action": "updated" | "noop" | "stale",
            "success": True,
            "notes": str | None,
            "available_transitions": [str, ...]
        }

        On error, returns:
        {
            "error": {"code": str, "message": str, "retryable": bool}
        }
    """
    try:
        request = TransitionStatusRequest.model_validate(args)
        kind = validate_entity_kind(request.entity_kind)

        outcome = await session.lifecycle.transition(kind, request.entity_id, request.target_status)
        return build_transition_response(session, outcome)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def set_training_center_verification(
    session: MarketplaceSession, args: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Verify or unverify a training center (admin only).

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - entity_id (str): Training center id
            - is_verified (bool): Requested flag

    Returns:
        Same structure as transition_status, with statuses "verified" or
        "unverified".
    """
    try:
        request = SetVerificationRequest.model_validate(args)

        outcome = await session.lifecycle.set_verification(request.entity_id, request.is_verified)
        return build_transition_response(session, outcome)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def update_inquiry_notes(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace the notes of a course inquiry without changing its status.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - entity_id (str): Inquiry id
            - notes (str): New notes; an empty string clears them

    Returns:
        Same structure as transition_status; ``notes`` carries the value
        the server echoed.
    """
    try:
        request = UpdateInquiryNotesRequest.model_validate(args)

        outcome = await session.lifecycle.update_inquiry_notes(request.entity_id, request.notes)
        return build_transition_response(session, outcome)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def delete_job(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """Delete a job posting owned by the employer (or any job, for admins)."""
    try:
        request = DeleteJobRequest.model_validate(args)

        await session.lifecycle.delete_job(request.entity_id)
        return DeleteJobResponse(entity_id=request.entity_id, deleted=True).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


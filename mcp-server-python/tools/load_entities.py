"""
Main MCP tool handler for load_entities.

Re-fetches the canonical list of one entity kind for the signed-in role and
replaces the session's local copies. Views call this on mount instead of
trusting whatever an earlier, possibly abandoned, request left behind.
"""

from typing import Any, Dict

from pydantic import ValidationError

from models.errors import MarketplaceError, create_internal_error, create_validation_error
from models.status import EntityKind, STATUS_ENUMS
from schemas.load_entities import EntityView, LoadEntitiesRequest, LoadEntitiesResponse
from sync.session import MarketplaceSession
from utils.pydantic_error_mapper import map_pydantic_validation_error


def _parse_loadable_kind(value: str) -> EntityKind:
    try:
        kind = EntityKind(value)
    except ValueError:
        kind = None
    if kind not in STATUS_ENUMS:
        allowed = ", ".join(k.value for k in STATUS_ENUMS)
        raise create_validation_error(
            f"Invalid entity kind: '{value}'. Allowed values are: {allowed}"
        )
    return kind


async def load_entities(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Load every record of one kind visible to the session's role.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - entity_kind (str): job, application, course_inquiry or training_center
            - status (str, optional): Backend-side status filter

    Returns:
        Dictionary with structure:
        {
            "entity_kind": str,
            "count": int,
            "entities": [
                {"record": {...}, "available_transitions": [str, ...]},
                ...
            ]
        }

        On error, returns:
        {
            "error": {"code": str, "message": str, "retryable": bool}
        }
    """
    try:
        request = LoadEntitiesRequest.model_validate(args)
        kind = _parse_loadable_kind(request.entity_kind)
        params = {"status": request.status} if request.status else None

        records = await session.lifecycle.load(kind, params=params)

        entities = [
            EntityView(
                record=record.model_dump(mode="json"),
                available_transitions=session.lifecycle.available_transitions(kind, record.id),
            )
            for record in records
        ]
        return LoadEntitiesResponse(
            entity_kind=kind.value, count=len(entities), entities=entities
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()

"""
Main MCP tool handler for bulk_update_application_status.

Moves several loaded applications to one status with a single backend
request. The batch is all or nothing on the client side: one unknown,
illegal or busy item keeps the whole batch from being sent.
"""

from typing import Any, Dict

from pydantic import ValidationError

from models.errors import MarketplaceError, create_internal_error
from schemas.bulk_update_application_status import (
    BulkUpdateApplicationStatusRequest,
    BulkUpdateApplicationStatusResponse,
    BulkUpdateApplicationStatusResultItem,
)
from sync.session import MarketplaceSession
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_bulk_ids


async def bulk_update_application_status(
    session: MarketplaceSession, args: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Update the status of several applications at once.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - application_ids (list[str]): 1-100 unique application ids
            - target_status (str): Requested application status

    Returns:
        Dictionary with structure:
        {
            "sent": bool,            # False when nothing reached the backend
            "updated_count": int,
            "failed_count": int,
            "results": [
                {"id": str, "success": bool, "status": str | None,
                 "action": str | None, "error": str | None},
                ...
            ]
        }

        Request-level problems (bad shape, empty or oversized batch,
        duplicates) return the error envelope instead:
        {
            "error": {"code": str, "message": str, "retryable": bool}
        }
    """
    try:
        request = BulkUpdateApplicationStatusRequest.model_validate(args)
        application_ids = validate_bulk_ids(request.application_ids)

        outcome = await session.lifecycle.bulk_update_application_status(
            application_ids, request.target_status
        )

        results = [
            BulkUpdateApplicationStatusResultItem(**result) for result in outcome.results
        ]
        return BulkUpdateApplicationStatusResponse(
            sent=outcome.sent,
            updated_count=outcome.updated_count,
            failed_count=outcome.failed_count,
            results=results,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()

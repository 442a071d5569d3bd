"""
MCP tool handlers for notifications.

All handlers operate on the session's NotificationEngine and report the
list and unread badge as the engine holds them after the call.
"""

from typing import Any, Dict

from pydantic import ValidationError

from models.errors import MarketplaceError, create_internal_error
from schemas.notifications import (
    FetchNotificationsRequest,
    NotificationActionResponse,
    NotificationIdRequest,
    NotificationsResponse,
)
from sync.notifications import NotificationEngine
from sync.session import MarketplaceSession
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_entity_id


def build_notifications_response(engine: NotificationEngine) -> Dict[str, Any]:
    return NotificationsResponse(
        notifications=[n.model_dump(mode="json") for n in engine.notifications],
        unread_count=engine.unread_count,
        has_more=engine.has_more,
    ).model_dump()


async def fetch_notifications(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fetch notifications and the authoritative unread count.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - load_more (bool, optional): Append the next page instead of
              replacing the list (default False)
            - unread_only (bool, optional): Page through unread items only;
              changing it restarts from the first page

    Returns:
        {"notifications": [...], "unread_count": int, "has_more": bool}
    """
    try:
        request = FetchNotificationsRequest.model_validate(args)
        engine = session.notifications

        if request.load_more:
            await engine.load_more(unread_only=request.unread_only)
        else:
            await engine.fetch()

        return build_notifications_response(engine)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def refresh_unread_count(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """Poll the unread count once, leaving the list untouched."""
    try:
        count = await session.notifications.refresh_unread_count()
        return NotificationActionResponse(changed=False, unread_count=count).model_dump()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def mark_notification_read(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Mark one notification read.

    ``changed`` is False, and no request is sent, when the notification is
    not in the loaded list or is already read.
    """
    try:
        request = NotificationIdRequest.model_validate(args)
        notification_id = validate_entity_id(request.notification_id, "notification_id")

        changed = await session.notifications.mark_as_read(notification_id)
        return NotificationActionResponse(
            notification_id=notification_id,
            changed=changed,
            unread_count=session.notifications.unread_count,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def mark_all_notifications_read(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    try:
        await session.notifications.mark_all_as_read()
        return NotificationActionResponse(changed=True, unread_count=0).model_dump()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def delete_notification(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Delete one notification, read or unread.

    ``changed`` reports whether it was removed from the loaded list.
    """
    try:
        request = NotificationIdRequest.model_validate(args)
        notification_id = validate_entity_id(request.notification_id, "notification_id")

        changed = await session.notifications.delete(notification_id)
        return NotificationActionResponse(
            notification_id=notification_id,
            changed=changed,
            unread_count=session.notifications.unread_count,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def delete_all_notifications(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    try:
        await session.notifications.delete_all()
        return NotificationActionResponse(changed=True, unread_count=0).model_dump()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()

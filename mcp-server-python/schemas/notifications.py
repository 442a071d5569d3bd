"""Pydantic schemas for the notification tools."""

from __future__ import annotations

from typing import Any, Optional

from schemas.common import StrictIgnoreRequest, StrictResponse


class FetchNotificationsRequest(StrictIgnoreRequest):
    """Request schema for fetch_notifications."""

    load_more: bool = False
    unread_only: Optional[bool] = None


class NotificationIdRequest(StrictIgnoreRequest):
    """Request schema for tools acting on one notification."""

    notification_id: str


class NotificationsResponse(StrictResponse):
    """Local notification state after an operation."""

    notifications: list[dict[str, Any]]
    unread_count: int
    has_more: bool = False


class NotificationActionResponse(StrictResponse):
    """Outcome of a notification mutation."""

    notification_id: Optional[str] = None
    changed: bool
    unread_count: int

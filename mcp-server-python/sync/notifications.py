"""
Notification consistency engine.

Maintains ``notifications`` (most recent first, as the server orders them)
and ``unread_count`` for the signed-in user. Two refresh paths exist:

- ``fetch()``: full list plus authoritative unread count, on mount
- ``refresh_unread_count()``: count only, driven by a background poll so a
  badge stays current without touching the list

Local adjustments after a confirmed mutation never push the count below
zero, even when a poll already moved it.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from gateway.marketplace_client import MarketplaceClient
from models.errors import MarketplaceError
from models.status import EntityKind
from schemas.entities import NotificationRecord
from utils.mutation_guard import MutationGuard
from utils.validation import DEFAULT_NOTIFICATION_LIMIT, validate_limit

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 30.0

# Guard key for operations touching every notification at once
_ALL = "*"


class NotificationEngine:
    """Notification list and unread badge for one session."""

    def __init__(
        self,
        gateway: MarketplaceClient,
        limit: int = DEFAULT_NOTIFICATION_LIMIT,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        decrement_unread_on_delete: bool = False,
        guard: Optional[MutationGuard] = None,
    ):
        """
        Args:
            gateway: REST gateway of the session
            limit: Number of notifications fetched on mount
            poll_interval: Seconds between unread-count polls
            decrement_unread_on_delete: Whether deleting an unread
                notification also decrements the count. Off by default,
                matching the web client; pending product confirmation.
            guard: Mutation guard, shared with the session if given

        Raises:
            MarketplaceError: VALIDATION_REJECTED if limit is outside 1-100
        """
        self.gateway = gateway
        self.limit = validate_limit(limit)
        self.poll_interval = poll_interval
        self.decrement_unread_on_delete = decrement_unread_on_delete
        self.guard = guard or MutationGuard()
        self.notifications: List[NotificationRecord] = []
        self.unread_count = 0
        self.page = 1
        self.has_more = False
        self._unread_only = False
        self._poll_task: Optional[asyncio.Task] = None

    def _set_count(self, count: int) -> None:
        self.unread_count = max(0, count)

    def _find(self, notification_id: str) -> Optional[NotificationRecord]:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    def _replace(self, updated: NotificationRecord) -> None:
        self.notifications = [
            updated if n.id == updated.id else n for n in self.notifications
        ]

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def fetch(self) -> List[NotificationRecord]:
        """Replace the list and the unread count with the server's."""
        payload = await self.gateway.fetch_notifications(limit=self.limit)
        self.notifications = [
            NotificationRecord.model_validate(raw)
            for raw in payload.get("data") or []
            if isinstance(raw, dict)
        ]
        self._apply_pagination(payload, page=1)
        count = payload.get("unreadCount")
        if isinstance(count, int) and not isinstance(count, bool):
            self._set_count(count)
        else:
            self._set_count(sum(1 for n in self.notifications if not n.is_read))
        return self.notifications

    async def load_more(self, unread_only: Optional[bool] = None) -> List[NotificationRecord]:
        """
        Append the next page, as the notifications page does on scroll.

        Changing ``unread_only`` restarts from page 1.
        """
        if unread_only is not None and unread_only != self._unread_only:
            self._unread_only = unread_only
            self.page = 0
            self.notifications = []
        next_page = self.page + 1
        payload = await self.gateway.fetch_notifications(
            limit=self.limit, page=next_page, unread_only=self._unread_only
        )
        known = {n.id for n in self.notifications}
        for raw in payload.get("data") or []:
            if isinstance(raw, dict):
                record = NotificationRecord.model_validate(raw)
                if record.id not in known:
                    self.notifications.append(record)
                    known.add(record.id)
        self._apply_pagination(payload, page=next_page)
        return self.notifications

    def _apply_pagination(self, payload: Dict[str, Any], page: int) -> None:
        pagination = payload.get("pagination")
        if isinstance(pagination, dict):
            self.page = pagination.get("page", page)
            self.has_more = self.page < pagination.get("pages", self.page)
        else:
            self.page = page
            self.has_more = False

    async def refresh_unread_count(self) -> int:
        """Poll the unread count only; the list is left alone."""
        count = await self.gateway.fetch_unread_count()
        self._set_count(count)
        return self.unread_count

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def start_polling(self) -> None:
        """Start the background unread-count poll on the running event loop."""
        if self.is_polling:
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())
        logger.debug("Started unread-count polling every %.1fs", self.poll_interval)

    async def stop_polling(self) -> None:
        task, self._poll_task = self._poll_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug("Stopped unread-count polling")

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.refresh_unread_count()
            except MarketplaceError as e:
                # keep polling; the next tick may succeed
                logger.warning("Unread count poll failed: %s", e.message)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def mark_as_read(self, notification_id: str) -> bool:
        """
        Mark one unread notification read.

        Returns False without any network call when the notification is not
        in the local list or is already read.
        """
        notification = self._find(notification_id)
        if notification is None or notification.is_read:
            return False

        with self.guard.hold(EntityKind.NOTIFICATION, notification_id):
            await self.gateway.mark_notification_read(notification_id)

        current = self._find(notification_id)
        if current is not None and not current.is_read:
            self._replace(current.model_copy(update={"is_read": True}))
        self._set_count(self.unread_count - 1)
        return True

    async def mark_all_as_read(self) -> None:
        """Mark everything read with one bulk request."""
        with self.guard.hold(EntityKind.NOTIFICATION, _ALL):
            await self.gateway.mark_all_notifications_read()

        self.notifications = [
            n if n.is_read else n.model_copy(update={"is_read": True})
            for n in self.notifications
        ]
        self._set_count(0)

    async def delete(self, notification_id: str) -> bool:
        """
        Delete one notification, read or unread.

        Returns False if it was not in the local list (the request is still
        sent; the server may know it even if this view does not).
        """
        with self.guard.hold(EntityKind.NOTIFICATION, notification_id):
            await self.gateway.delete_notification(notification_id)

        removed = self._find(notification_id)
        if removed is None:
            return False
        self.notifications = [n for n in self.notifications if n.id != notification_id]
        if self.decrement_unread_on_delete and not removed.is_read:
            self._set_count(self.unread_count - 1)
        return True

    async def delete_all(self) -> None:
        """Delete every notification and clear the badge."""
        with self.guard.hold(EntityKind.NOTIFICATION, _ALL):
            await self.gateway.delete_all_notifications()

        self.notifications = []
        self.has_more = False
        self._set_count(0)

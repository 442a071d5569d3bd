"""
Session wiring.

A ``MarketplaceSession`` is one signed-in user's view of the marketplace:
one gateway, one entity store, one mutation guard, the lifecycle engine, a
bookmark synchronizer per item type feeding the saved-items list, and the
notification engine. Nothing in it is shared with other sessions.
"""

import logging
from typing import Dict, Optional

import httpx

from config import Config, get_config
from gateway.marketplace_client import MarketplaceClient
from models.errors import MarketplaceError
from models.status import ActorRole, ItemType
from store.entity_store import EntityStore
from sync.bookmarks import BookmarkSynchronizer, SavedItemsList
from sync.lifecycle import LifecycleEngine
from sync.notifications import NotificationEngine
from utils.mutation_guard import MutationGuard

logger = logging.getLogger(__name__)


class MarketplaceSession:
    """Everything one signed-in user needs, built from configuration."""

    def __init__(
        self,
        config: Optional[Config] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            config: Configuration to build from (default: the global config)
            transport: Optional httpx transport override, used by tests
        """
        self.config = config or get_config()
        self.role = self.config.actor_role
        self.gateway = MarketplaceClient(
            api_url=self.config.api_url,
            token=self.config.api_token,
            timeout=self.config.request_timeout,
            transport=transport,
        )
        self.store = EntityStore()
        self.guard = MutationGuard()
        self.lifecycle = LifecycleEngine(self.gateway, self.store, self.guard, self.role)
        self.saved_items = SavedItemsList(self.gateway)
        self.bookmarks: Dict[ItemType, BookmarkSynchronizer] = {
            item_type: BookmarkSynchronizer(
                self.gateway,
                item_type,
                self.role,
                guard=self.guard,
                on_toggle=self.saved_items.handle_toggle,
            )
            for item_type in ItemType
        }
        self.notifications = NotificationEngine(
            self.gateway,
            limit=self.config.notification_limit,
            poll_interval=self.config.notification_poll_seconds,
            decrement_unread_on_delete=self.config.decrement_unread_on_delete,
            guard=self.guard,
        )

    @property
    def is_jobseeker(self) -> bool:
        return self.role == ActorRole.JOBSEEKER.value

    async def mount(self) -> None:
        """
        Load what a freshly opened client shows: notifications, bookmark ids,
        and the polling badge. Each part fails independently.
        """
        if self.is_jobseeker:
            for synchronizer in self.bookmarks.values():
                await synchronizer.initialize()
        try:
            await self.notifications.fetch()
        except MarketplaceError as e:
            logger.warning("Could not load notifications: %s", e.message)
        self.notifications.start_polling()

    async def close(self) -> None:
        await self.notifications.stop_polling()
        await self.gateway.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

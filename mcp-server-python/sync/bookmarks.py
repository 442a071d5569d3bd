"""
Bookmark set-membership synchronizer.

Each mounted view owns its own ``BookmarkSynchronizer``: the bookmarked ids
of one item type, seeded by a bulk fetch and then changed only by toggle
responses. Nothing is shared between instances, so two views showing the
same item agree only after each receives its own response or re-fetches.
"""

import logging
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from gateway.marketplace_client import MarketplaceClient
from models.errors import MarketplaceError
from models.status import ActorRole, EntityKind, ItemType
from schemas.entities import SavedItemRecord
from utils.mutation_guard import MutationGuard
from utils.transition_policy import parse_role

logger = logging.getLogger(__name__)

ToggleCallback = Callable[[ItemType, str, bool], None]


class BookmarkSynchronizer:
    """Bookmarked ids of one item type for one view.

    Usage::

        sync = BookmarkSynchronizer(gateway, ItemType.JOB, role="jobseeker")
        await sync.initialize()
        if sync.is_visible:
            confirmed = await sync.toggle("j1")
    """

    def __init__(
        self,
        gateway: MarketplaceClient,
        item_type: ItemType,
        role,
        guard: Optional[MutationGuard] = None,
        on_toggle: Optional[ToggleCallback] = None,
    ):
        self.gateway = gateway
        self.item_type = ItemType(item_type)
        self.role = parse_role(role)
        self.guard = guard or MutationGuard()
        self.on_toggle = on_toggle
        self._ids: Set[str] = set()
        self.initialized = False

    @property
    def is_visible(self) -> bool:
        """Only job seekers see bookmark controls; for anyone else they are absent."""
        return self.role is ActorRole.JOBSEEKER

    @property
    def ids(self) -> FrozenSet[str]:
        return frozenset(self._ids)

    def is_bookmarked(self, item_id: str) -> bool:
        return item_id in self._ids

    def is_busy(self, item_id: str) -> bool:
        return self.guard.is_busy(EntityKind.BOOKMARK, f"{self.item_type.value}:{item_id}")

    async def initialize(self) -> FrozenSet[str]:
        """
        Seed the set from ``GET /bookmarks/ids``.

        Fails open: any error leaves the set empty (everything shows as not
        bookmarked) and is logged rather than raised.
        """
        self._ids = set()
        if not self.is_visible:
            return self.ids
        try:
            self._ids = set(await self.gateway.fetch_bookmark_ids(self.item_type))
        except MarketplaceError as e:
            logger.warning(
                "Could not load %s bookmarks, showing none: %s", self.item_type.value, e.message
            )
        self.initialized = True
        return self.ids

    async def check(self, item_id: str) -> bool:
        """
        Ask the server whether one item is bookmarked, as a detail view does
        on mount, and record the answer in the set.

        Fails open like ``initialize``: an error reports the item as not
        bookmarked and leaves the set as it was. Non-jobseekers get False
        without a request.
        """
        if not self.is_visible:
            return False
        try:
            confirmed = await self.gateway.check_bookmark(self.item_type, item_id)
        except MarketplaceError as e:
            logger.warning(
                "Could not check %s %s bookmark, showing none: %s", self.item_type.value, item_id, e.message
            )
            return False
        if confirmed:
            self._ids.add(item_id)
        else:
            self._ids.discard(item_id)
        return confirmed

    async def toggle(self, item_id: str) -> Optional[bool]:
        """
        Flip membership of ``item_id`` and return the server-confirmed state.

        Returns None without any network call for non-jobseeker sessions.
        The local set changes only after the response arrives.

        Raises:
            MarketplaceError: BUSY while a toggle for the item is outstanding,
                or whatever the gateway raised (the set is then unchanged)
        """
        if not self.is_visible:
            return None

        with self.guard.hold(EntityKind.BOOKMARK, f"{self.item_type.value}:{item_id}"):
            confirmed = await self.gateway.toggle_bookmark(self.item_type, item_id)

        if confirmed:
            self._ids.add(item_id)
        else:
            self._ids.discard(item_id)
        logger.info(
            "%s %s %s", self.item_type.value, item_id, "bookmarked" if confirmed else "unbookmarked"
        )
        if self.on_toggle is not None:
            self.on_toggle(self.item_type, item_id, confirmed)
        return confirmed


class SavedItemsList:
    """The job seeker's saved-items page.

    Keeps its own page of bookmark entries and drops an entry as soon as a
    toggle response for that item reports it is no longer bookmarked. Wire
    it as the ``on_toggle`` callback of the synchronizers rendered on the
    same page.
    """

    def __init__(self, gateway: MarketplaceClient, item_type: Optional[ItemType] = None, limit: int = 10):
        self.gateway = gateway
        self.item_type = ItemType(item_type) if item_type is not None else None
        self.limit = limit
        self.page = 1
        self.total = 0
        self.pages = 0
        self.items: List[SavedItemRecord] = []

    async def load(self, page: int = 1) -> List[SavedItemRecord]:
        """Fetch one page of saved items, replacing the local list."""
        payload = await self.gateway.fetch_saved_items(self.item_type, page=page, limit=self.limit)
        raw_items: List[Dict[str, Any]] = [
            item for item in payload.get("data") or [] if isinstance(item, dict)
        ]
        self.items = [SavedItemRecord.model_validate(item) for item in raw_items]
        pagination = payload.get("pagination") or {}
        self.page = page
        self.total = pagination.get("total", len(self.items))
        self.pages = pagination.get("pages", 1 if self.items else 0)
        return self.items

    def item_ids(self, item_type: Optional[ItemType] = None) -> List[str]:
        return [
            item.item_id
            for item in self.items
            if item_type is None or item.item_type == ItemType(item_type).value
        ]

    def handle_toggle(self, item_type: ItemType, item_id: str, is_bookmarked: bool) -> None:
        """Toggle callback: remove the entry locally once the server confirms removal."""
        if is_bookmarked:
            return
        item_type = ItemType(item_type)
        before = len(self.items)
        self.items = [
            item
            for item in self.items
            if not (item.item_type == item_type.value and item.item_id == item_id)
        ]
        removed = before - len(self.items)
        self.total = max(0, self.total - removed)

"""Pydantic schemas for the bookmark tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import field_validator

from schemas.common import StrictIgnoreRequest, StrictResponse, validate_non_empty_str


class ListBookmarkIdsRequest(StrictIgnoreRequest):
    """Request schema for list_bookmark_ids. refresh re-fetches the set from the backend."""

    item_type: str
    refresh: bool = False


class BookmarkItemRequest(StrictIgnoreRequest):
    """Request schema for toggle_bookmark and check_bookmark."""

    item_type: str
    item_id: str

    @field_validator("item_id")
    @classmethod
    def validate_item_id(cls, value: str) -> str:
        return validate_non_empty_str(value, "item_id")


class BookmarkIdsResponse(StrictResponse):
    """Bookmarked ids of one item type as this session currently knows them."""

    item_type: str
    ids: list[str]
    count: int
    visible: bool


class BookmarkStateResponse(StrictResponse):
    """Server-confirmed membership of one item; None when bookmarks are hidden for the role."""

    item_type: str
    item_id: str
    is_bookmarked: Optional[bool] = None
    visible: bool


class ListSavedItemsRequest(StrictIgnoreRequest):
    """Request schema for list_saved_items. No item_type lists both kinds."""

    item_type: Optional[str] = None
    page: int = 1


class SavedItemsResponse(StrictResponse):
    """One page of the saved-items list."""

    item_type: Optional[str] = None
    items: list[dict[str, Any]]
    page: int
    pages: int
    total: int
    visible: bool

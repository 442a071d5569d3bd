"""
MCP tool handlers for bookmarks.

Bookmark controls exist only for job seekers. For any other role the
handlers answer ``visible: false`` and never touch the network.
"""

from typing import Any, Dict

from pydantic import ValidationError

from models.errors import MarketplaceError, create_internal_error, create_validation_error
from schemas.bookmarks import (
    BookmarkIdsResponse,
    BookmarkItemRequest,
    BookmarkStateResponse,
    ListBookmarkIdsRequest,
    ListSavedItemsRequest,
    SavedItemsResponse,
)
from sync.session import MarketplaceSession
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import validate_item_type


async def list_bookmark_ids(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return the bookmarked ids of one item type.

    The first call for an item type seeds the set from the backend; later
    calls report the set as toggles have left it. ``refresh`` re-fetches
    the canonical set, picking up changes made in other sessions. A failed
    fetch fails open with an empty set.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - item_type (str): "job" or "course"
            - refresh (bool, optional): Re-fetch even if already loaded

    Returns:
        {"item_type": str, "ids": [str, ...], "count": int, "visible": bool}
    """
    try:
        request = ListBookmarkIdsRequest.model_validate(args)
        item_type = validate_item_type(request.item_type)

        synchronizer = session.bookmarks[item_type]
        if synchronizer.is_visible and (request.refresh or not synchronizer.initialized):
            await synchronizer.initialize()

        ids = sorted(synchronizer.ids)
        return BookmarkIdsResponse(
            item_type=item_type.value,
            ids=ids,
            count=len(ids),
            visible=synchronizer.is_visible,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def toggle_bookmark(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flip bookmark membership of one item.

    ``is_bookmarked`` is the state the server confirmed, never a locally
    guessed one. A second toggle of the same item while the first is in
    flight returns BUSY.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - item_type (str): "job" or "course"
            - item_id (str): Id of the job or course

    Returns:
        {"item_type": str, "item_id": str, "is_bookmarked": bool | None, "visible": bool}
    """
    try:
        request = BookmarkItemRequest.model_validate(args)
        item_type = validate_item_type(request.item_type)

        synchronizer = session.bookmarks[item_type]
        confirmed = await synchronizer.toggle(request.item_id)

        return BookmarkStateResponse(
            item_type=item_type.value,
            item_id=request.item_id,
            is_bookmarked=confirmed,
            visible=synchronizer.is_visible,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def list_saved_items(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Load one page of the job seeker's saved items.

    Entries unbookmarked through toggle_bookmark afterwards disappear from
    the session's list without another load.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - item_type (str, optional): "job" or "course"; both when omitted
            - page (int, optional): 1-based page number (default 1)

    Returns:
        {"item_type": str | None, "items": [...], "page": int, "pages": int,
         "total": int, "visible": bool}
    """
    try:
        request = ListSavedItemsRequest.model_validate(args)
        item_type = validate_item_type(request.item_type) if request.item_type is not None else None
        if request.page < 1:
            raise create_validation_error(f"Invalid page: {request.page} is below minimum of 1")

        saved = session.saved_items
        if session.is_jobseeker:
            saved.item_type = item_type
            await saved.load(page=request.page)

        return SavedItemsResponse(
            item_type=item_type.value if item_type is not None else None,
            items=[item.model_dump(mode="json") for item in saved.items],
            page=saved.page,
            pages=saved.pages,
            total=saved.total,
            visible=session.is_jobseeker,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()


async def check_bookmark(session: MarketplaceSession, args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ask the backend whether one item is bookmarked and record the answer.

    This is how a detail view seeds its bookmark state. A failed check fails
    open and reports the item as not bookmarked.

    Args:
        session: The signed-in marketplace session
        args: Dictionary containing parameters:
            - item_type (str): "job" or "course"
            - item_id (str): Id of the job or course

    Returns:
        {"item_type": str, "item_id": str, "is_bookmarked": bool | None, "visible": bool}
    """
    try:
        request = BookmarkItemRequest.model_validate(args)
        item_type = validate_item_type(request.item_type)

        synchronizer = session.bookmarks[item_type]
        confirmed = await synchronizer.check(request.item_id) if synchronizer.is_visible else None

        return BookmarkStateResponse(
            item_type=item_type.value,
            item_id=request.item_id,
            is_bookmarked=confirmed,
            visible=synchronizer.is_visible,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except MarketplaceError as e:
        return e.to_dict()

    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()

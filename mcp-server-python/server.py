#!/usr/bin/env python3
"""
MCP Server entry point for the marketplace sync tools.

This server keeps one signed-in marketplace session (role and bearer token
come from configuration) and exposes its lifecycle, bookmark and
notification operations as MCP tools. Every returned status or flag is the
value the REST backend confirmed.

Usage:
    python server.py

The server runs in stdio mode by default, which is the standard transport
for MCP servers that are invoked by LLM agents.
"""

import logging
from typing import Awaitable, Callable, Optional

from mcp.server.fastmcp import FastMCP

from config import get_config
from models.errors import MarketplaceError, create_internal_error
from sync.session import MarketplaceSession
from tools.bookmarks import check_bookmark, list_bookmark_ids, list_saved_items, toggle_bookmark
from tools.bulk_update_application_status import bulk_update_application_status
from tools.load_entities import load_entities
from tools.notifications import (
    delete_all_notifications,
    delete_notification,
    fetch_notifications,
    mark_all_notifications_read,
    mark_notification_read,
    refresh_unread_count,
)
from tools.transition_status import (
    delete_job,
    set_training_center_verification,
    transition_status,
    update_inquiry_notes,
)

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "This server provides tools for the signed-in user's marketplace session. "
        "\n\n"
        "LOADING:\n"
        "Use load_entities before mutating: transitions only apply to records loaded in this session, "
        "and each loaded record lists the available_transitions for the configured role. "
        "Reload after a result with action='stale'."
        "\n\n"
        "LIFECYCLE TOOLS:\n"
        "Use transition_status to move a job, application or course inquiry to a new status. "
        "Use bulk_update_application_status to move several applications at once; nothing is sent "
        "if any item is invalid. "
        "Use update_inquiry_notes to edit inquiry notes, set_training_center_verification to verify "
        "training centers (admin), and delete_job to remove a job posting. "
        "A BUSY error means a previous request for the same record is still in flight; try again later."
        "\n\n"
        "BOOKMARKS AND NOTIFICATIONS:\n"
        "Use list_bookmark_ids, check_bookmark, toggle_bookmark and list_saved_items for job seeker "
        "bookmarks. "
        "Use fetch_notifications, refresh_unread_count, mark_notification_read, "
        "mark_all_notifications_read, delete_notification and delete_all_notifications for the "
        "notification list and unread badge."
    ),
)

_session: Optional[MarketplaceSession] = None

ToolHandler = Callable[[MarketplaceSession, dict], Awaitable[dict]]


async def get_session() -> MarketplaceSession:
    """
    Return the server's session, creating and mounting it on first use.

    The session is kept only once mount() succeeds, so a failed first call
    is retried with a fresh session by the next one.
    """
    global _session
    if _session is None:
        session = MarketplaceSession(config)
        try:
            await session.mount()
        except Exception:
            await session.close()
            raise
        _session = session
    return _session


async def run_tool(handler: ToolHandler, args: dict) -> dict:
    """Run a tool handler on the server session; session start-up failures use the error envelope."""
    try:
        session = await get_session()
    except MarketplaceError as e:
        return e.to_dict()
    except Exception as e:
        internal_error = create_internal_error(message=str(e), original_error=e)
        return internal_error.to_dict()
    return await handler(session, args)


@mcp.tool(
    name="load_entities",
    description=(
        "Load the canonical list of jobs, applications, course inquiries or training centers "
        "visible to the configured role, with the transitions available on each record."
    ),
)
async def load_entities_tool(entity_kind: str, status: str | None = None) -> dict:
    """
    Load every record of one kind visible to the configured role.

    Args:
        entity_kind: One of job, application, course_inquiry, training_center.
        status: Optional backend-side status filter.

    Returns:
        {"entity_kind": str, "count": int,
         "entities": [{"record": {...}, "available_transitions": [str]}]}
        or {"error": {"code", "message", "retryable"}}.
    """
    args = {"entity_kind": entity_kind}
    if status is not None:
        args["status"] = status
    return await run_tool(load_entities, args)


@mcp.tool(
    name="transition_status",
    description=(
        "Move a loaded job, application or course inquiry to a new status. "
        "Illegal, terminal and unauthorized transitions are rejected without a network call; "
        "requesting the current status is a no-op."
    ),
)
async def transition_status_tool(entity_kind: str, entity_id: str, target_status: str) -> dict:
    """
    Apply one status transition.

    Args:
        entity_kind: One of job, application, course_inquiry.
        entity_id: Id of a record loaded with load_entities.
        target_status: Requested status.

    Returns:
        {"entity_kind", "entity_id", "previous_status", "status", "action",
         "success", "notes", "available_transitions"}
        where action is "updated", "noop" or "stale",
        or {"error": {"code", "message", "retryable"}}.

    Error codes:
        VALIDATION_REJECTED, TERMINAL_STATE, UNAUTHORIZED, BUSY, NOT_FOUND,
        FORBIDDEN, NETWORK_ERROR, SERVER_ERROR, INTERNAL_ERROR
    """
    return await run_tool(
        transition_status,
        {"entity_kind": entity_kind, "entity_id": entity_id, "target_status": target_status},
    )


@mcp.tool(
    name="update_inquiry_notes",
    description="Replace the notes of a course inquiry (training center). The status is unchanged.",
)
async def update_inquiry_notes_tool(entity_id: str, notes: str) -> dict:
    return await run_tool(update_inquiry_notes, {"entity_id": entity_id, "notes": notes})


@mcp.tool(
    name="set_training_center_verification",
    description="Verify or unverify a training center (admin). Setting the current value is a no-op.",
)
async def set_training_center_verification_tool(entity_id: str, is_verified: bool) -> dict:
    return await run_tool(
        set_training_center_verification, {"entity_id": entity_id, "is_verified": is_verified}
    )


@mcp.tool(
    name="delete_job",
    description="Delete a job posting (employer owner or admin). Closing a job is a status transition instead.",
)
async def delete_job_tool(entity_id: str) -> dict:
    return await run_tool(delete_job, {"entity_id": entity_id})


@mcp.tool(
    name="bulk_update_application_status",
    description=(
        "Move up to 100 loaded applications to one status with a single request. "
        "If any item is unknown, illegal or busy, nothing is sent and per-item errors are returned."
    ),
)
async def bulk_update_application_status_tool(application_ids: list[str], target_status: str) -> dict:
    """
    Update several applications at once.

    Args:
        application_ids: 1-100 unique application ids loaded with load_entities.
        target_status: Requested application status.

    Returns:
        {"sent": bool, "updated_count": int, "failed_count": int,
         "results": [{"id", "success", "status", "action", "error"}]}
        or {"error": {"code", "message", "retryable"}}.
    """
    return await run_tool(
        bulk_update_application_status,
        {"application_ids": application_ids, "target_status": target_status},
    )


@mcp.tool(
    name="list_bookmark_ids",
    description=(
        "List bookmarked job or course ids (job seekers only; others get visible=false). "
        "Pass refresh=true to re-fetch the set and pick up changes made elsewhere."
    ),
)
async def list_bookmark_ids_tool(item_type: str, refresh: bool = False) -> dict:
    return await run_tool(list_bookmark_ids, {"item_type": item_type, "refresh": refresh})


@mcp.tool(
    name="check_bookmark",
    description="Ask the backend whether one job or course is bookmarked (job seekers only).",
)
async def check_bookmark_tool(item_type: str, item_id: str) -> dict:
    return await run_tool(check_bookmark, {"item_type": item_type, "item_id": item_id})


@mcp.tool(
    name="toggle_bookmark",
    description=(
        "Toggle bookmark membership of a job or course and return the server-confirmed state "
        "(job seekers only)."
    ),
)
async def toggle_bookmark_tool(item_type: str, item_id: str) -> dict:
    return await run_tool(toggle_bookmark, {"item_type": item_type, "item_id": item_id})


@mcp.tool(
    name="list_saved_items",
    description="Load one page of the job seeker's saved items, optionally for one item type.",
)
async def list_saved_items_tool(item_type: str | None = None, page: int | None = None) -> dict:
    args = {}
    if item_type is not None:
        args["item_type"] = item_type
    if page is not None:
        args["page"] = page
    return await run_tool(list_saved_items, args)


@mcp.tool(
    name="fetch_notifications",
    description=(
        "Fetch the latest notifications and the unread count, or append the next page "
        "with load_more=true."
    ),
)
async def fetch_notifications_tool(load_more: bool | None = None, unread_only: bool | None = None) -> dict:
    args = {}
    if load_more is not None:
        args["load_more"] = load_more
    if unread_only is not None:
        args["unread_only"] = unread_only
    return await run_tool(fetch_notifications, args)


@mcp.tool(name="refresh_unread_count", description="Refresh the unread notification count only.")
async def refresh_unread_count_tool() -> dict:
    return await run_tool(refresh_unread_count, {})


@mcp.tool(name="mark_notification_read", description="Mark one loaded unread notification as read.")
async def mark_notification_read_tool(notification_id: str) -> dict:
    return await run_tool(mark_notification_read, {"notification_id": notification_id})


@mcp.tool(name="mark_all_notifications_read", description="Mark every notification as read.")
async def mark_all_notifications_read_tool() -> dict:
    return await run_tool(mark_all_notifications_read, {})


@mcp.tool(name="delete_notification", description="Delete one notification, read or unread.")
async def delete_notification_tool(notification_id: str) -> dict:
    return await run_tool(delete_notification, {"notification_id": notification_id})


@mcp.tool(name="delete_all_notifications", description="Delete every notification and clear the unread count.")
async def delete_all_notifications_tool() -> dict:
    return await run_tool(delete_all_notifications, {})


def main():
    """
    Main entry point for the MCP server.

    Runs the server in stdio mode, which is the standard transport
    for MCP servers that are invoked by LLM agents.
    """
    # Load and setup configuration
    config.setup_logging()

    # Log startup information
    logger = logging.getLogger(__name__)
    logger.info("Starting marketplace sync MCP server")
    logger.info(f"Server name: {config.server_name}")

    # Validate configuration and log warnings
    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    # Start the server
    logger.info("Server starting in stdio mode")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()

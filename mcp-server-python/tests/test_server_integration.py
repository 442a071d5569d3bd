"""
Integration tests for the MCP server entry point and the tool handlers.

Tools are driven end to end against the fake backend: request validation,
the lifecycle engine, the synchronizers and the error envelope.
"""

import pytest

import server
from conftest import application, inquiry, job, notification, wrap
from models.status import ItemType
from sync.session import MarketplaceSession
from tools.bookmarks import check_bookmark, list_bookmark_ids, list_saved_items, toggle_bookmark
from tools.bulk_update_application_status import bulk_update_application_status
from tools.load_entities import load_entities
from tools.notifications import (
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

EXPECTED_TOOLS = {
    "load_entities",
    "transition_status",
    "update_inquiry_notes",
    "set_training_center_verification",
    "delete_job",
    "bulk_update_application_status",
    "list_bookmark_ids",
    "check_bookmark",
    "toggle_bookmark",
    "list_saved_items",
    "fetch_notifications",
    "refresh_unread_count",
    "mark_notification_read",
    "mark_all_notifications_read",
    "delete_notification",
    "delete_all_notifications",
}


@pytest.fixture
def make_session(backend, make_config):
    def _make(role: str, **env: str) -> MarketplaceSession:
        config = make_config(MARKETPLACE_ACTOR_ROLE=role, **env)
        return MarketplaceSession(config, transport=backend.transport())

    return _make


class TestServerRegistration:
    """The server exposes every marketplace tool."""

    def test_server_name(self):
        assert server.mcp.name == server.config.server_name

    def test_instructions_mention_tools(self):
        assert "load_entities" in server.mcp.instructions
        assert "BUSY" in server.mcp.instructions

    def test_all_tools_registered(self):
        assert set(server.mcp._tool_manager._tools) == EXPECTED_TOOLS

    def test_tool_descriptions(self):
        tool = server.mcp._tool_manager._tools["bulk_update_application_status"]
        assert "nothing is sent" in tool.description

    @pytest.mark.asyncio
    async def test_tool_wrapper_uses_server_session(self, backend, make_session, monkeypatch):
        session = make_session("employer")
        monkeypatch.setattr(server, "_session", session)
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "draft")]))

        result = await server.load_entities_tool("job")

        assert result["count"] == 1
        assert result["entities"][0]["available_transitions"] == ["active", "closed"]


class TestLifecycleTools:
    @pytest.mark.asyncio
    async def test_load_then_transition(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "active", viewCount=3)]))
        backend.route("PUT", "/jobs/j1/status", wrap(job("j1", "paused")))

        loaded = await load_entities(session, {"entity_kind": "job"})
        assert loaded["entities"][0]["record"]["view_count"] == 3

        result = await transition_status(
            session, {"entity_kind": "job", "entity_id": "j1", "target_status": "paused"}
        )

        assert result == {
            "entity_kind": "job",
            "entity_id": "j1",
            "previous_status": "active",
            "status": "paused",
            "action": "updated",
            "success": True,
            "notes": None,
            "available_transitions": ["active", "closed"],
        }

    @pytest.mark.asyncio
    async def test_load_with_status_filter(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/applications/employer", wrap([application("a1", "pending")]))

        result = await load_entities(session, {"entity_kind": "application", "status": "pending"})

        assert result["count"] == 1
        assert backend.calls()[0].url.params["status"] == "pending"

    @pytest.mark.asyncio
    async def test_load_unknown_kind(self, make_session):
        result = await load_entities(make_session("employer"), {"entity_kind": "bookmark"})
        assert result["error"]["code"] == "VALIDATION_REJECTED"

    @pytest.mark.asyncio
    async def test_terminal_transition_envelope(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "closed")]))
        await load_entities(session, {"entity_kind": "job"})

        result = await transition_status(
            session, {"entity_kind": "job", "entity_id": "j1", "target_status": "active"}
        )

        assert result["error"]["code"] == "TERMINAL_STATE"
        assert result["error"]["retryable"] is False
        assert backend.calls("PUT") == []

    @pytest.mark.asyncio
    async def test_request_validation_envelope(self, make_session):
        result = await transition_status(make_session("employer"), {"entity_kind": "job", "entity_id": 5})
        assert result["error"]["code"] == "VALIDATION_REJECTED"
        assert "(and 1 more invalid field(s))" in result["error"]["message"]

    @pytest.mark.asyncio
    async def test_bookmark_kind_not_transitionable(self, make_session):
        result = await transition_status(
            make_session("employer"), {"entity_kind": "bookmark", "entity_id": "b1", "target_status": "x"}
        )
        assert "Invalid entity kind" in result["error"]["message"]

    @pytest.mark.asyncio
    async def test_stale_result_has_no_transitions(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "draft")]))
        backend.route("PUT", "/jobs/j1/status", {"success": True})
        await load_entities(session, {"entity_kind": "job"})

        result = await transition_status(
            session, {"entity_kind": "job", "entity_id": "j1", "target_status": "active"}
        )

        assert result["action"] == "stale"
        assert result["status"] is None
        assert result["available_transitions"] == []

    @pytest.mark.asyncio
    async def test_inquiry_notes(self, backend, make_session):
        session = make_session("training_center")
        backend.route("GET", "/courses/me/inquiries", wrap([inquiry("q1", "closed")]))
        backend.route("PUT", "/courses/inquiries/q1", wrap(inquiry("q1", "closed", notes="No answer")))
        await load_entities(session, {"entity_kind": "course_inquiry"})

        result = await update_inquiry_notes(session, {"entity_id": "q1", "notes": "No answer"})

        assert result["notes"] == "No answer"
        assert result["status"] == "closed"

    @pytest.mark.asyncio
    async def test_verification(self, backend, make_session):
        session = make_session("admin")
        backend.route("GET", "/admin/training-centers", wrap([{"_id": "t1", "isVerified": True}]))
        backend.route("PUT", "/admin/training-centers/t1/verify", wrap({"_id": "t1", "isVerified": False}))
        await load_entities(session, {"entity_kind": "training_center"})

        result = await set_training_center_verification(session, {"entity_id": "t1", "is_verified": False})

        assert result["status"] == "unverified"
        assert result["available_transitions"] == ["verified"]

    @pytest.mark.asyncio
    async def test_verification_requires_boolean(self, make_session):
        result = await set_training_center_verification(
            make_session("admin"), {"entity_id": "t1", "is_verified": "true"}
        )
        assert result["error"]["code"] == "VALIDATION_REJECTED"

    @pytest.mark.asyncio
    async def test_delete_job(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "draft")]))
        backend.route("DELETE", "/jobs/j1", {"success": True})
        await load_entities(session, {"entity_kind": "job"})

        assert await delete_job(session, {"entity_id": "j1"}) == {"entity_id": "j1", "deleted": True}

    @pytest.mark.asyncio
    async def test_bulk_update(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/applications/employer", wrap([application("a1", "pending"), application("a2", "pending")]))
        backend.route(
            "PUT", "/applications/bulk-status", wrap([application("a1", "rejected"), application("a2", "rejected")])
        )
        await load_entities(session, {"entity_kind": "application"})

        result = await bulk_update_application_status(
            session, {"application_ids": ["a1", "a2"], "target_status": "rejected"}
        )

        assert result["sent"] is True
        assert result["updated_count"] == 2
        assert result["results"][0] == {
            "id": "a1",
            "success": True,
            "status": "rejected",
            "action": "updated",
            "error": None,
        }

    @pytest.mark.asyncio
    async def test_bulk_duplicates_rejected(self, make_session):
        result = await bulk_update_application_status(
            make_session("employer"), {"application_ids": ["a1", "a1"], "target_status": "rejected"}
        )
        assert result["error"]["code"] == "VALIDATION_REJECTED"
        assert "Duplicate" in result["error"]["message"]

    @pytest.mark.asyncio
    async def test_network_failure_envelope(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/jobs/employer/me", wrap([job("j1", "draft")]))
        backend.fail("PUT", "/jobs/j1/status")
        await load_entities(session, {"entity_kind": "job"})

        result = await transition_status(
            session, {"entity_kind": "job", "entity_id": "j1", "target_status": "active"}
        )

        assert result["error"]["code"] == "NETWORK_ERROR"
        assert result["error"]["retryable"] is True


class TestBookmarkTools:
    @pytest.mark.asyncio
    async def test_jobseeker_flow(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/ids", wrap({"jobs": ["j2"], "courses": []}))
        backend.route("POST", "/bookmarks/toggle", {"success": True, "isBookmarked": True})

        listed = await list_bookmark_ids(session, {"item_type": "job"})
        assert listed == {"item_type": "job", "ids": ["j2"], "count": 1, "visible": True}

        toggled = await toggle_bookmark(session, {"item_type": "job", "item_id": "j1"})
        assert toggled["is_bookmarked"] is True

        listed = await list_bookmark_ids(session, {"item_type": "job"})
        assert listed["ids"] == ["j1", "j2"]
        assert len(backend.calls("GET", "/bookmarks/ids")) == 1

    @pytest.mark.asyncio
    async def test_refresh_refetches_ids(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/ids", wrap({"jobs": ["j1"], "courses": []}))
        await list_bookmark_ids(session, {"item_type": "job"})

        # bookmarked from another session in the meantime
        backend.route("GET", "/bookmarks/ids", wrap({"jobs": ["j1", "j3"], "courses": []}))
        cached = await list_bookmark_ids(session, {"item_type": "job"})
        refreshed = await list_bookmark_ids(session, {"item_type": "job", "refresh": True})

        assert cached["ids"] == ["j1"]
        assert refreshed["ids"] == ["j1", "j3"]
        assert len(backend.calls("GET", "/bookmarks/ids")) == 2

    @pytest.mark.asyncio
    async def test_refresh_must_be_boolean(self, make_session):
        result = await list_bookmark_ids(make_session("jobseeker"), {"item_type": "job", "refresh": "yes"})
        assert result["error"]["code"] == "VALIDATION_REJECTED"

    @pytest.mark.asyncio
    async def test_check_bookmark(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/check/course/c1", {"success": True, "isBookmarked": True})

        result = await check_bookmark(session, {"item_type": "course", "item_id": "c1"})

        assert result == {"item_type": "course", "item_id": "c1", "is_bookmarked": True, "visible": True}
        assert session.bookmarks[ItemType.COURSE].is_bookmarked("c1")

    @pytest.mark.asyncio
    async def test_check_bookmark_fails_open(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/check/job/j1", {"message": "down"}, status=500)

        result = await check_bookmark(session, {"item_type": "job", "item_id": "j1"})

        assert result["is_bookmarked"] is False

    @pytest.mark.asyncio
    async def test_check_bookmark_hidden_for_admins(self, backend, make_session):
        result = await check_bookmark(make_session("admin"), {"item_type": "job", "item_id": "j1"})

        assert result["visible"] is False
        assert result["is_bookmarked"] is None
        assert backend.calls() == []

    @pytest.mark.asyncio
    async def test_hidden_for_employers(self, backend, make_session):
        session = make_session("employer")

        toggled = await toggle_bookmark(session, {"item_type": "course", "item_id": "c1"})
        listed = await list_bookmark_ids(session, {"item_type": "course"})
        saved = await list_saved_items(session, {})

        assert toggled["visible"] is False
        assert toggled["is_bookmarked"] is None
        assert listed["visible"] is False
        assert saved["visible"] is False
        assert backend.calls() == []

    @pytest.mark.asyncio
    async def test_invalid_item_type(self, make_session):
        result = await toggle_bookmark(make_session("jobseeker"), {"item_type": "event", "item_id": "e1"})
        assert result["error"]["code"] == "VALIDATION_REJECTED"

    @pytest.mark.asyncio
    async def test_saved_items_drop_unbookmarked(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route(
            "GET",
            "/bookmarks",
            {
                "success": True,
                "data": [{"_id": "b1", "itemType": "job", "job": {"_id": "j1"}}],
                "pagination": {"page": 1, "pages": 1, "total": 1},
            },
        )
        backend.route("POST", "/bookmarks/toggle", {"success": True, "isBookmarked": False})

        saved = await list_saved_items(session, {"item_type": "job"})
        assert [item["item_id"] for item in saved["items"]] == ["j1"]

        await toggle_bookmark(session, {"item_type": "job", "item_id": "j1"})

        assert session.saved_items.items == []
        assert session.saved_items.total == 0

    @pytest.mark.asyncio
    async def test_saved_items_page_must_be_positive(self, make_session):
        result = await list_saved_items(make_session("jobseeker"), {"page": 0})
        assert result["error"]["code"] == "VALIDATION_REJECTED"


class TestNotificationTools:
    @pytest.mark.asyncio
    async def test_fetch_mark_delete(self, backend, make_session):
        session = make_session("employer")
        backend.route(
            "GET", "/notifications", wrap([notification("n1"), notification("n2")], unreadCount=2)
        )
        backend.route("PUT", "/notifications/n1/read", {"success": True})
        backend.route("DELETE", "/notifications/n2", {"success": True})

        fetched = await fetch_notifications(session, {})
        assert fetched["unread_count"] == 2
        assert [n["id"] for n in fetched["notifications"]] == ["n1", "n2"]

        marked = await mark_notification_read(session, {"notification_id": "n1"})
        assert marked == {"notification_id": "n1", "changed": True, "unread_count": 1}

        again = await mark_notification_read(session, {"notification_id": "n1"})
        assert again["changed"] is False

        deleted = await delete_notification(session, {"notification_id": "n2"})
        # delete does not touch the badge unless the switch is on
        assert deleted == {"notification_id": "n2", "changed": True, "unread_count": 1}

    @pytest.mark.asyncio
    async def test_delete_decrements_when_configured(self, backend, make_session):
        session = make_session("employer", MARKETPLACE_DECREMENT_UNREAD_ON_DELETE="true")
        backend.route("GET", "/notifications", wrap([notification("n1")], unreadCount=1))
        backend.route("DELETE", "/notifications/n1", {"success": True})
        await fetch_notifications(session, {})

        deleted = await delete_notification(session, {"notification_id": "n1"})

        assert deleted["unread_count"] == 0

    @pytest.mark.asyncio
    async def test_refresh_and_mark_all(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/notifications/unread-count", {"count": 9})
        backend.route("PUT", "/notifications/read-all", {"success": True})

        refreshed = await refresh_unread_count(session, {})
        assert refreshed["unread_count"] == 9

        cleared = await mark_all_notifications_read(session, {})
        assert cleared == {"notification_id": None, "changed": True, "unread_count": 0}

    @pytest.mark.asyncio
    async def test_invalid_notification_id(self, make_session):
        result = await mark_notification_read(make_session("jobseeker"), {"notification_id": " n1"})
        assert result["error"]["code"] == "VALIDATION_REJECTED"

    @pytest.mark.asyncio
    async def test_server_error_envelope(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/notifications", {"message": "db down"}, status=500)

        result = await fetch_notifications(session, {"load_more": False})

        assert result["error"]["code"] == "SERVER_ERROR"
        assert result["error"]["retryable"] is True


class TestSessionMount:
    @pytest.mark.asyncio
    async def test_mount_loads_and_polls(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/ids", wrap({"jobs": ["j1"], "courses": ["c1"]}))
        backend.route("GET", "/notifications", wrap([notification("n1")], unreadCount=1))

        async with session:
            await session.mount()
            assert session.bookmarks[ItemType.JOB].ids == {"j1"}
            assert session.notifications.unread_count == 1
            assert session.notifications.is_polling

        assert not session.notifications.is_polling

    @pytest.mark.asyncio
    async def test_mount_survives_notification_failure(self, backend, make_session):
        session = make_session("employer")
        backend.route("GET", "/notifications", {"message": "down"}, status=503)

        async with session:
            await session.mount()
            assert session.notifications.notifications == []
        assert backend.calls("GET", "/bookmarks/ids") == []

    @pytest.mark.asyncio
    async def test_mount_with_null_notification_data(self, backend, make_session):
        session = make_session("jobseeker")
        backend.route("GET", "/bookmarks/ids", wrap({"jobs": None, "courses": None}))
        backend.route("GET", "/notifications", {"success": True, "data": None, "unreadCount": 0})

        async with session:
            await session.mount()
            assert session.notifications.notifications == []
            assert session.bookmarks[ItemType.JOB].ids == frozenset()
            assert session.notifications.is_polling


class TestServerSession:
    """The server mounts its session on first use and keeps it only once mounted."""

    @pytest.mark.asyncio
    async def test_failed_mount_is_an_envelope_and_retried(self, monkeypatch):
        attempts = []

        class FailingSession:
            def __init__(self, config):
                attempts.append(self)
                self.closed = False

            async def mount(self):
                raise RuntimeError("mount blew up")

            async def close(self):
                self.closed = True

        monkeypatch.setattr(server, "_session", None)
        monkeypatch.setattr(server, "MarketplaceSession", FailingSession)

        first = await server.refresh_unread_count_tool()
        second = await server.refresh_unread_count_tool()

        assert first["error"]["code"] == "INTERNAL_ERROR"
        assert second["error"]["code"] == "INTERNAL_ERROR"
        assert len(attempts) == 2
        assert all(s.closed for s in attempts)
        assert server._session is None

    @pytest.mark.asyncio
    async def test_session_kept_after_mount(self, backend, make_config, monkeypatch):
        config = make_config(MARKETPLACE_ACTOR_ROLE="employer")
        backend.route("GET", "/notifications", wrap([], unreadCount=0))
        backend.route("GET", "/notifications/unread-count", {"count": 4})
        monkeypatch.setattr(server, "_session", None)
        monkeypatch.setattr(
            server, "MarketplaceSession", lambda _config: MarketplaceSession(config, transport=backend.transport())
        )

        result = await server.refresh_unread_count_tool()
        session = server._session
        try:
            assert result == {"notification_id": None, "changed": False, "unread_count": 4}
            assert session is not None
            assert await server.get_session() is session
        finally:
            await session.close()

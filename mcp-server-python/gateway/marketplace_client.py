"""
REST gateway for the marketplace backend.

The backend is the sole source of truth for committed state. This module is
the only place that speaks HTTP: it maps transport failures and non-2xx
responses onto the MarketplaceError taxonomy and hands decoded JSON back to
the lifecycle engine and the synchronizers. It never retries.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from models.errors import (
    create_http_error,
    create_network_error,
    MarketplaceError,
    ErrorCode,
)
from models.status import ItemType

logger = logging.getLogger(__name__)

# Default backend base URL, matching the web client's fallback
DEFAULT_API_URL = "http://localhost:5001/api"
DEFAULT_TIMEOUT_SECONDS = 15.0


def extract_record(payload: Any) -> Dict[str, Any]:
    """
    Return the entity echoed by a mutation response.

    The backend wraps records as ``{"success": true, "data": {...}}``; some
    endpoints answer with the bare record. Anything else yields an empty dict.
    """
    if not isinstance(payload, dict):
        return {}
    data = payload.get("data")
    if isinstance(data, dict):
        return data
    return payload


def _bookmark_flag(payload: Any, what: str) -> bool:
    """Read ``isBookmarked`` from a bare or ``data``-wrapped response."""
    flag = payload.get("isBookmarked") if isinstance(payload, dict) else None
    if flag is None:
        flag = extract_record(payload).get("isBookmarked")
    if not isinstance(flag, bool):
        raise MarketplaceError(
            code=ErrorCode.SERVER_ERROR,
            message=f"{what} response did not include isBookmarked",
            retryable=False,
        )
    return flag


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    """Return the record list of a collection response (``{"data": [...]}``)."""
    if isinstance(payload, dict):
        data = payload.get("data")
    else:
        data = payload
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    return []


class MarketplaceClient:
    """
    Async context manager wrapping an ``httpx.AsyncClient`` for one session.

    Usage:
        async with MarketplaceClient(api_url, token=token) as client:
            payload = await client.update_job_status("j1", "active")
            is_bookmarked = await client.toggle_bookmark("course", "c1")
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway.

        Args:
            api_url: Backend base URL including the ``/api`` prefix
            token: Bearer token of the signed-in user, if any
            timeout: Per-request timeout in seconds
            transport: Optional transport override (tests use httpx.MockTransport)
        """
        self.api_url = api_url.rstrip("/")
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one request and decode its JSON body.

        Raises:
            MarketplaceError: NETWORK_ERROR on transport failure; UNAUTHORIZED,
                FORBIDDEN, NOT_FOUND or SERVER_ERROR on non-2xx responses
        """
        url = f"{self.api_url}{path}"
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, json=json, params=params)
        except httpx.TransportError as e:
            logger.warning("Network error for %s %s: %s", method, path, type(e).__name__)
            raise create_network_error(method, url, original_error=e) from e

        if not response.is_success:
            detail = None
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("message") or body.get("error")
            except ValueError:
                detail = None
            logger.info("%s %s failed with HTTP %d", method, path, response.status_code)
            raise create_http_error(response.status_code, method, url, detail)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise MarketplaceError(
                code=ErrorCode.SERVER_ERROR,
                message=f"Invalid JSON in response to {method} {path}",
                retryable=False,
                original_error=e,
                status_code=response.status_code,
            ) from e

    # ------------------------------------------------------------------
    # Status mutations
    # ------------------------------------------------------------------

    async def update_job_status(self, job_id: str, status: str, as_admin: bool = False) -> Any:
        prefix = "/admin/jobs" if as_admin else "/jobs"
        return await self._request("PUT", f"{prefix}/{job_id}/status", json={"status": status})

    async def delete_job(self, job_id: str, as_admin: bool = False) -> Any:
        prefix = "/admin/jobs" if as_admin else "/jobs"
        return await self._request("DELETE", f"{prefix}/{job_id}")

    async def update_application_status(self, application_id: str, status: str) -> Any:
        return await self._request(
            "PUT", f"/applications/{application_id}/status", json={"status": status}
        )

    async def bulk_update_application_status(self, application_ids: List[str], status: str) -> Any:
        return await self._request(
            "PUT",
            "/applications/bulk-status",
            json={"applicationIds": list(application_ids), "status": status},
        )

    async def update_inquiry(self, inquiry_id: str, status: str, notes: Optional[str] = None) -> Any:
        body: Dict[str, Any] = {"status": status}
        if notes is not None:
            body["notes"] = notes
        return await self._request("PUT", f"/courses/inquiries/{inquiry_id}", json=body)

    async def set_training_center_verification(self, center_id: str, is_verified: bool) -> Any:
        return await self._request(
            "PUT",
            f"/admin/training-centers/{center_id}/verify",
            json={"isVerified": is_verified},
        )

    # ------------------------------------------------------------------
    # Collections (canonical re-fetch on mount)
    # ------------------------------------------------------------------

    async def fetch_collection(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        payload = await self._request("GET", path, params=params)
        return extract_records(payload)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    async def toggle_bookmark(self, item_type: ItemType, item_id: str) -> bool:
        """
        Toggle membership and return the server-confirmed state.

        Raises:
            MarketplaceError: SERVER_ERROR if the response carries no boolean
        """
        payload = await self._request(
            "POST",
            "/bookmarks/toggle",
            json={"itemType": ItemType(item_type).value, "itemId": item_id},
        )
        return _bookmark_flag(payload, "Bookmark toggle")

    async def check_bookmark(self, item_type: ItemType, item_id: str) -> bool:
        """
        Ask whether one item is bookmarked (``GET /bookmarks/check/{type}/{id}``).

        Raises:
            MarketplaceError: SERVER_ERROR if the response carries no boolean
        """
        payload = await self._request("GET", f"/bookmarks/check/{ItemType(item_type).value}/{item_id}")
        return _bookmark_flag(payload, "Bookmark check")

    async def fetch_bookmark_ids(self, item_type: ItemType) -> List[str]:
        """
        Return the bookmarked ids of one item type.

        The backend answers ``{"data": {"jobs": [...], "courses": [...]}}``;
        a bare ``{"jobs": [...]}`` is accepted too. A missing or non-list
        value means no bookmarks.
        """
        item_type = ItemType(item_type)
        payload = await self._request("GET", "/bookmarks/ids", params={"type": item_type.value})
        key = "jobs" if item_type is ItemType.JOB else "courses"
        ids = extract_record(payload).get(key)
        if not isinstance(ids, list):
            return []
        return [str(item_id) for item_id in ids if item_id is not None]

    async def fetch_saved_items(
        self,
        item_type: Optional[ItemType] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if item_type is not None:
            params["type"] = ItemType(item_type).value
        payload = await self._request("GET", "/bookmarks", params=params)
        return payload if isinstance(payload, dict) else {}

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    async def fetch_notifications(
        self,
        limit: int,
        page: Optional[int] = None,
        unread_only: Optional[bool] = None,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {"limit": limit}
        if page is not None:
            params["page"] = page
        if unread_only is not None:
            params["unreadOnly"] = "true" if unread_only else "false"
        payload = await self._request("GET", "/notifications", params=params)
        return payload if isinstance(payload, dict) else {}

    async def fetch_unread_count(self) -> int:
        payload = await self._request("GET", "/notifications/unread-count")
        count = payload.get("count") if isinstance(payload, dict) else None
        if isinstance(count, bool) or not isinstance(count, int):
            raise MarketplaceError(
                code=ErrorCode.SERVER_ERROR,
                message="Unread count response did not include an integer count",
                retryable=False,
            )
        return count

    async def mark_notification_read(self, notification_id: str) -> Any:
        return await self._request("PUT", f"/notifications/{notification_id}/read")

    async def mark_all_notifications_read(self) -> Any:
        return await self._request("PUT", "/notifications/read-all")

    async def delete_notification(self, notification_id: str) -> Any:
        return await self._request("DELETE", f"/notifications/{notification_id}")

    async def delete_all_notifications(self) -> Any:
        return await self._request("DELETE", "/notifications/all")

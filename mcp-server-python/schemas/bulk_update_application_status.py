"""Pydantic schemas for bulk_update_application_status tool."""

from __future__ import annotations

from typing import Any, Optional

from schemas.common import StrictIgnoreRequest, StrictResponse


class BulkUpdateApplicationStatusRequest(StrictIgnoreRequest):
    """Request schema for bulk_update_application_status."""

    application_ids: list[Any]
    target_status: str


class BulkUpdateApplicationStatusResultItem(StrictResponse):
    """Per-item result schema for bulk_update_application_status."""

    id: str
    success: bool
    status: Optional[str] = None
    action: Optional[str] = None
    error: Optional[str] = None


class BulkUpdateApplicationStatusResponse(StrictResponse):
    """Success/failure response schema for bulk_update_application_status."""

    sent: bool
    updated_count: int
    failed_count: int
    results: list[BulkUpdateApplicationStatusResultItem]

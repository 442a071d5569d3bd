"""
Unit tests for the wire record models and the entity store.
"""

import pytest

from models.errors import ErrorCode, MarketplaceError
from models.status import ApplicationStatus, EntityKind, JobStatus, VerificationStatus
from schemas.entities import (
    ApplicationRecord,
    CourseInquiryRecord,
    JobRecord,
    NotificationRecord,
    SavedItemRecord,
    TrainingCenterRecord,
)
from store.entity_store import EntityStore


class TestWireRecords:
    """Records accept backend payloads as sent."""

    def test_job_record_from_backend_payload(self):
        record = JobRecord.model_validate(
            {
                "_id": "j1",
                "status": "active",
                "title": "Welder",
                "employer": {"_id": "e1", "companyName": "Acme"},
                "viewCount": 12,
                "applicationCount": 3,
                "salary": {"min": 1},
            }
        )
        assert record.id == "j1"
        assert record.status is JobStatus.ACTIVE
        assert record.employer == "e1"
        assert record.view_count == 12
        assert record.application_count == 3

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            JobRecord.model_validate({"_id": "j1", "status": "archived"})

    def test_application_references_collapse(self):
        record = ApplicationRecord.model_validate(
            {"_id": "a1", "status": "interview", "job": {"_id": "j1"}, "jobSeeker": "u1"}
        )
        assert record.status is ApplicationStatus.INTERVIEW
        assert record.job == "j1"
        assert record.job_seeker == "u1"

    def test_orphaned_inquiry_is_valid(self):
        """An inquiry whose course was deleted keeps a null course."""
        record = CourseInquiryRecord.model_validate(
            {"_id": "q1", "status": "pending", "course": None, "name": "Ada", "email": "a@b.c"}
        )
        assert record.course is None
        assert record.inquirer is None

    def test_training_center_status_follows_flag(self):
        record = TrainingCenterRecord.model_validate({"_id": "t1", "isVerified": True})
        assert record.status is VerificationStatus.VERIFIED
        assert TrainingCenterRecord.model_validate({"_id": "t2"}).status is VerificationStatus.UNVERIFIED

    def test_notification_record(self):
        record = NotificationRecord.model_validate(
            {"_id": "n1", "isRead": False, "relatedJob": {"_id": "j1"}, "createdAt": "2024-01-01T00:00:00Z"}
        )
        assert record.is_read is False
        assert record.related_job == "j1"

    def test_saved_item_id_from_populated_reference(self):
        record = SavedItemRecord.model_validate(
            {"_id": "b1", "itemType": "course", "course": {"_id": "c9", "title": "Forklift"}}
        )
        assert record.item_type == "course"
        assert record.item_id == "c9"

    def test_saved_item_id_from_item_id_field(self):
        record = SavedItemRecord.model_validate({"_id": "b1", "itemType": "job", "itemId": "j4"})
        assert record.item_id == "j4"


class TestEntityStore:
    def test_replace_all_replaces_kind(self):
        store = EntityStore()
        store.replace_all(EntityKind.JOB, [{"_id": "j1", "status": "draft"}, {"_id": "j2", "status": "active"}])
        store.replace_all(EntityKind.JOB, [{"_id": "j3", "status": "paused"}])
        assert [r.id for r in store.all(EntityKind.JOB)] == ["j3"]

    def test_kinds_are_partitioned(self):
        store = EntityStore()
        store.replace_all(EntityKind.JOB, [{"_id": "x1", "status": "draft"}])
        store.replace_all(EntityKind.APPLICATION, [{"_id": "x1", "status": "pending"}])
        assert store.get(EntityKind.JOB, "x1").status is JobStatus.DRAFT
        assert store.get(EntityKind.APPLICATION, "x1").status is ApplicationStatus.PENDING
        assert len(store) == 2

    def test_require_missing_raises_not_found(self):
        with pytest.raises(MarketplaceError) as exc_info:
            EntityStore().require(EntityKind.JOB, "nope")
        assert exc_info.value.code == ErrorCode.NOT_FOUND

    def test_apply_confirmed_merges_only_echoed_fields(self):
        store = EntityStore()
        store.replace_all(
            EntityKind.JOB, [{"_id": "j1", "status": "active", "title": "Welder", "viewCount": 7}]
        )
        record = store.apply_confirmed(EntityKind.JOB, "j1", {"status": "paused"})
        assert record.status is JobStatus.PAUSED
        assert record.title == "Welder"
        assert record.view_count == 7
        assert store.get(EntityKind.JOB, "j1") is record

    def test_apply_confirmed_on_unloaded_record(self):
        assert EntityStore().apply_confirmed(EntityKind.JOB, "j1", {"status": "paused"}) is None

    def test_apply_confirmed_verification_flag(self):
        store = EntityStore()
        store.replace_all(EntityKind.TRAINING_CENTER, [{"_id": "t1", "isVerified": False, "name": "TC"}])
        record = store.apply_confirmed(EntityKind.TRAINING_CENTER, "t1", {"isVerified": True})
        assert record.is_verified is True
        assert record.name == "TC"

    def test_remove(self):
        store = EntityStore()
        store.replace_all(EntityKind.JOB, [{"_id": "j1", "status": "draft"}])
        assert store.remove(EntityKind.JOB, "j1").id == "j1"
        assert store.remove(EntityKind.JOB, "j1") is None
        assert store.get(EntityKind.JOB, "j1") is None

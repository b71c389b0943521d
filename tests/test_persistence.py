"""
Tests for the repository, remote storage retry, draft cache and media upload service.
"""

from datetime import datetime, timedelta

import pytest

from src.database import health_check_database
from src.errors import NotFoundError, PhotoLimitExceeded, StorageError, VideoLimitExceeded
from src.evidence import MediaUploadService, build_candidate
from src.schemas.models import Inspection, ItemStatus, MediaType, UploadStatus
from src.storage import DraftCache, LocalFileStorage


class TestInspectionRepository:
    """CRUD against an in-memory SQLite database."""

    def test_create_and_get(self, repository, stored_inspection):
        record = repository.get_inspection(stored_inspection.id)

        assert record is not None
        assert record.order_number == "RN100200300"
        assert record.status == "on_delivery_pending"
        assert record.created_at is not None

    def test_get_by_order_number(self, repository, stored_inspection):
        record = repository.get_inspection_by_order_number("RN100200300")
        assert record.id == stored_inspection.id
        assert repository.get_inspection_by_order_number("NOPE") is None

    def test_record_round_trips_to_inspection(self, repository, stored_inspection):
        record = repository.get_inspection(stored_inspection.id)
        loaded = Inspection.from_record(record.to_dict())

        assert loaded.id == stored_inspection.id
        assert len(loaded.sections) == len(stored_inspection.sections)
        assert loaded.sections[0].items[0].id == stored_inspection.sections[0].items[0].id

    def test_update_merges_and_touches(self, repository, stored_inspection):
        before = repository.get_inspection(stored_inspection.id).updated_at
        record = repository.update_inspection(stored_inspection.id, {"failed_items": 3})

        assert record.failed_items == 3
        assert record.vin == stored_inspection.vin
        assert record.updated_at >= before

    def test_update_unknown_inspection(self, repository):
        with pytest.raises(NotFoundError):
            repository.update_inspection(999, {"failed_items": 1})

    def test_update_unknown_field(self, repository, stored_inspection):
        with pytest.raises(ValueError):
            repository.update_inspection(stored_inspection.id, {"colour": "red"})

    def test_list_and_filter(self, repository, stored_inspection):
        assert len(repository.list_inspections()) == 1
        assert repository.list_inspections(status="final_completed") == []

    def test_media_lifecycle(self, repository, stored_inspection):
        media = repository.create_media({
            "inspection_id": stored_inspection.id,
            "item_id": "panel-gaps",
            "media_type": "photo",
            "file_name": "p.jpg",
        })
        assert media.upload_status == "pending"

        repository.update_media(media.id, {"upload_status": "uploaded", "drive_link": "https://x"})
        listed = repository.list_media(stored_inspection.id, "panel-gaps")

        assert [m.upload_status for m in listed] == ["uploaded"]
        assert repository.list_media(stored_inspection.id, "other") == []

    def test_reports(self, repository, stored_inspection):
        report = repository.create_report({
            "inspection_id": stored_inspection.id,
            "pdf_file_name": "Tesla_Inspection_RN100200300.pdf",
        })
        assert report.email_sent is False

        repository.update_report(report.id, {"email_sent": True})
        latest = repository.get_report_for_inspection(stored_inspection.id)
        assert latest.id == report.id
        assert latest.email_sent is True

    def test_delete_cascades(self, repository, stored_inspection):
        repository.create_media({
            "inspection_id": stored_inspection.id,
            "item_id": "panel-gaps",
            "media_type": "photo",
            "file_name": "p.jpg",
        })
        assert repository.delete_inspection(stored_inspection.id) is True
        assert repository.get_inspection(stored_inspection.id) is None
        assert repository.delete_inspection(stored_inspection.id) is False

    def test_health_check(self, repository):
        assert health_check_database(repository._session_factory) is True


class TestObjectStorage:
    """Retry with exponential backoff."""

    def test_first_attempt_succeeds(self, storage):
        stored = storage.upload(b"data", "a.jpg", "image/jpeg")
        assert stored.view_link.startswith("https://")
        assert storage.sleeps == []

    def test_retries_then_succeeds(self, make_storage):
        storage = make_storage(failures=2)
        storage.upload(b"data", "a.jpg", "image/jpeg")

        assert storage.attempts == 3
        assert storage.sleeps == [1.0, 2.0]

    def test_gives_up_after_retries(self, make_storage):
        storage = make_storage(failures=10)

        with pytest.raises(StorageError):
            storage.upload(b"data", "a.jpg", "image/jpeg")

        assert storage.attempts == 4
        assert storage.sleeps == [1.0, 2.0, 4.0]

    def test_local_storage_writes_file(self, tmp_path):
        storage = LocalFileStorage(base_dir=tmp_path / "store")
        stored = storage.upload(b"hello", "note 1.txt", "text/plain")

        path = tmp_path / "store" / stored.id
        assert path.read_bytes() == b"hello"
        assert stored.view_link.startswith("file://")
        assert storage.health_check()[0] is True


class TestDraftCache:
    """Local snapshot store."""

    def test_save_and_load(self, draft_dir, inspection):
        cache = DraftCache(inspection.order_number, base_dir=draft_dir)
        inspection.sections[0].items[0].status = ItemStatus.FAILED

        assert cache.save(inspection) is True
        snapshot = cache.load()

        assert snapshot.order_number == inspection.order_number
        assert snapshot.inspection.sections[0].items[0].status == ItemStatus.FAILED
        assert cache.draft_age() < timedelta(minutes=1)

    def test_missing_draft(self, draft_dir):
        cache = DraftCache("RN1", base_dir=draft_dir)
        assert cache.load() is None
        assert cache.draft_age() is None
        assert cache.has_draft() is False

    def test_corrupt_draft_discarded(self, draft_dir):
        cache = DraftCache("RN1", base_dir=draft_dir)
        cache.path.write_text("{not json", encoding="utf-8")

        assert cache.load() is None
        assert cache.has_draft() is False

    def test_clear(self, draft_dir, inspection):
        cache = DraftCache(inspection.order_number, base_dir=draft_dir)
        cache.save(inspection)
        cache.clear()
        assert cache.has_draft() is False
        cache.clear()

    def test_last_write_wins(self, draft_dir, inspection):
        cache = DraftCache(inspection.order_number, base_dir=draft_dir)
        cache.save(inspection)
        inspection.test_drive_km = 42.0
        cache.save(inspection)

        assert cache.load().inspection.test_drive_km == 42.0
        assert cache.load().last_saved <= datetime.utcnow()


class TestMediaUploadService:
    """Server-side evidence upload."""

    def photo(self, name="p.jpg"):
        return build_candidate(b"\xff\xd8jpeg", "image/jpeg", name)

    def video(self, name="clip.mp4"):
        return build_candidate(b"\x00" * 16, "video/mp4", name, probe_duration=False)

    def test_upload_records_media(self, repository, storage, stored_inspection):
        service = MediaUploadService(repository, storage)
        result = service.upload(stored_inspection.id, "panel-gaps", self.photo())

        assert result.upload_status == UploadStatus.UPLOADED
        assert result.drive_link.startswith("https://storage.test/")
        assert result.size_bytes == 6

        records = repository.list_media(stored_inspection.id, "panel-gaps")
        assert [r.upload_status for r in records] == ["uploaded"]
        assert storage.uploads[0][0] == f"{stored_inspection.id}_panel-gaps_p.jpg"

    def test_unknown_inspection(self, repository, storage):
        with pytest.raises(NotFoundError):
            MediaUploadService(repository, storage).upload(42, "panel-gaps", self.photo())

    def test_count_uses_persisted_media(self, repository, storage, stored_inspection):
        service = MediaUploadService(repository, storage)
        for i in range(5):
            service.upload(stored_inspection.id, "panel-gaps", self.photo(f"p{i}.jpg"))

        with pytest.raises(PhotoLimitExceeded):
            service.upload(stored_inspection.id, "panel-gaps", self.photo("p5.jpg"))
        assert len(storage.uploads) == 5

    def test_storage_failure_marks_record_failed(self, repository, failing_storage, stored_inspection):
        service = MediaUploadService(repository, failing_storage)

        with pytest.raises(StorageError):
            service.upload(stored_inspection.id, "panel-gaps", self.photo())

        records = repository.list_media(stored_inspection.id, "panel-gaps")
        assert [r.upload_status for r in records] == ["failed"]

    def test_failed_upload_still_counted(self, repository, storage, failing_storage, stored_inspection):
        failing = MediaUploadService(repository, failing_storage)
        with pytest.raises(StorageError):
            failing.upload(stored_inspection.id, "panel-gaps", self.photo())

        service = MediaUploadService(repository, storage)
        for i in range(4):
            service.upload(stored_inspection.id, "panel-gaps", self.photo(f"p{i}.jpg"))

        with pytest.raises(PhotoLimitExceeded):
            service.upload(stored_inspection.id, "panel-gaps", self.photo("p4.jpg"))
        assert len(repository.list_media(stored_inspection.id, "panel-gaps")) == 5

    def test_second_video_rejected_after_failed_upload(self, repository, storage, failing_storage, stored_inspection):
        with pytest.raises(StorageError):
            MediaUploadService(repository, failing_storage).upload(
                stored_inspection.id, "brakes", self.video("a.mp4")
            )

        with pytest.raises(VideoLimitExceeded):
            MediaUploadService(repository, storage).upload(stored_inspection.id, "brakes", self.video("b.mp4"))
        assert storage.uploads == []

    def test_retry_reuses_failed_record(self, repository, storage, failing_storage, stored_inspection):
        with pytest.raises(StorageError):
            MediaUploadService(repository, failing_storage).upload(
                stored_inspection.id, "brakes", self.video("a.mp4")
            )

        result = MediaUploadService(repository, storage).upload(stored_inspection.id, "brakes", self.video("a.mp4"))

        records = repository.list_media(stored_inspection.id, "brakes")
        assert [r.upload_status for r in records] == ["uploaded"]
        assert result.id == str(records[0].id)
        assert len(storage.uploads) == 1

    def test_video_kind_recorded(self, repository, storage, stored_inspection):
        video = build_candidate(b"\x00" * 16, "video/mp4", "clip.mp4", probe_duration=False)
        result = MediaUploadService(repository, storage).upload(stored_inspection.id, "brakes", video)
        assert result.media_type == MediaType.VIDEO

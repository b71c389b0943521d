"""
Server-side media upload: re-validates evidence, stores it and records it.
"""

from typing import List

from src.database.models import InspectionMediaRecord
from src.database.repository import InspectionRepository
from src.errors import NotFoundError, StorageError
from src.evidence.validator import EvidenceValidator, is_retry_of
from src.schemas.models import MediaAttachment, MediaCandidate, UploadStatus
from src.storage.remote import ObjectStorage
from utils.config import config
from utils.logger import setup_logger
from utils.validators import sanitize_filename

logger = setup_logger(__name__, level=config.log_level, component="MEDIA")


def media_record_to_attachment(record: InspectionMediaRecord) -> MediaAttachment:
    """Convert a media row into an attachment."""
    return MediaAttachment(
        id=str(record.id),
        item_id=record.item_id,
        media_type=record.media_type,
        file_name=record.file_name,
        drive_file_id=record.drive_file_id,
        drive_link=record.drive_link,
        upload_status=record.upload_status,
        created_at=record.created_at,
    )


class MediaUploadService:
    """
    Receives media for an item.

    Kind, size and count are checked again against persisted media before the
    storage collaborator is called. Failed uploads still count toward the
    limits. Each upload creates a pending record that ends up uploaded or
    failed; re-sending the file of a failed record reuses that record.
    """

    def __init__(
        self,
        repository: InspectionRepository,
        storage: ObjectStorage,
        validator: EvidenceValidator = None,
    ):
        self.logger = logger
        self.repository = repository
        self.storage = storage
        self.validator = validator or EvidenceValidator()

    def existing_media(self, inspection_id: int, item_id: str) -> List[MediaAttachment]:
        return [
            media_record_to_attachment(r)
            for r in self.repository.list_media(inspection_id, item_id)
        ]

    def upload(self, inspection_id: int, item_id: str, candidate: MediaCandidate) -> MediaAttachment:
        """
        Validate, store and record one media file.

        Args:
            inspection_id: Owning inspection
            item_id: Checklist item the media belongs to
            candidate: Media bytes and metadata

        Returns:
            Uploaded MediaAttachment

        Raises:
            NotFoundError: Unknown inspection
            EvidenceError: Rejected by the evidence policy
            StorageError: Storage failed after retries (record marked failed)
        """
        if self.repository.get_inspection(inspection_id) is None:
            raise NotFoundError(f"Inspection #{inspection_id} not found")

        candidate = candidate.model_copy(update={"file_name": sanitize_filename(candidate.file_name)})
        existing = self.existing_media(inspection_id, item_id)

        error = self.validator.validate_server_side(existing, candidate)
        if error is not None:
            self.logger.warning(f"Rejected {candidate.file_name} for item {item_id}: {error.code}")
            raise error

        file_name = candidate.file_name
        retried = next((m for m in existing if is_retry_of(m, candidate)), None)
        if retried is not None:
            self.logger.info(f"Retrying failed upload {file_name} for item {item_id}")
            record = self.repository.update_media(
                int(retried.id), {"upload_status": UploadStatus.PENDING.value}
            )
        else:
            record = self.repository.create_media({
                "inspection_id": inspection_id,
                "item_id": item_id,
                "media_type": candidate.media_type.value,
                "file_name": file_name,
                "upload_status": UploadStatus.PENDING.value,
            })

        try:
            stored = self.storage.upload(
                candidate.data,
                f"{inspection_id}_{item_id}_{file_name}",
                candidate.content_type or "application/octet-stream",
            )
        except StorageError:
            self.repository.update_media(record.id, {"upload_status": UploadStatus.FAILED.value})
            raise

        record = self.repository.update_media(record.id, {
            "drive_file_id": stored.id,
            "drive_link": stored.view_link,
            "upload_status": UploadStatus.UPLOADED.value,
        })
        self.logger.info(f"✓ {candidate.media_type.value} stored for item {item_id}: {stored.id}")

        attachment = media_record_to_attachment(record)
        return attachment.model_copy(update={
            "size_bytes": candidate.size_bytes,
            "duration_seconds": candidate.duration_seconds,
        })

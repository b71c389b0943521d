"""
Evidence validator.
Per-item media limits: type, size, photo/video count and video duration.
"""

import os
import tempfile
from typing import Iterable, Optional

import cv2

from src.errors import (
    EvidenceError,
    FileTooLarge,
    InvalidFileType,
    PhotoLimitExceeded,
    VideoLimitExceeded,
    VideoTooLong,
)
from src.schemas.models import (
    InspectionItem,
    ItemStatus,
    MediaAttachment,
    MediaCandidate,
    MediaType,
    UploadStatus,
)
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="EVIDENCE")


VIDEO_SUFFIXES = {
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/quicktime": ".mov",
    "video/x-msvideo": ".avi",
}


def infer_media_kind(content_type: Optional[str]) -> Optional[MediaType]:
    """
    Derive media kind from a content type.

    Returns:
        PHOTO for image/*, VIDEO for video/*, None otherwise
    """
    if not content_type:
        return None
    major = content_type.split("/", 1)[0].strip().lower()
    if major == "image":
        return MediaType.PHOTO
    if major == "video":
        return MediaType.VIDEO
    return None


def probe_video_duration(data: bytes, content_type: str = "video/mp4") -> Optional[float]:
    """
    Read video duration from container metadata.

    Args:
        data: Encoded video bytes
        content_type: Used to pick a file suffix for the decoder

    Returns:
        Duration in seconds, or None when it cannot be determined
    """
    if not data:
        return None

    suffix = VIDEO_SUFFIXES.get(content_type.lower(), ".mp4")
    fd, tmp_path = tempfile.mkstemp(suffix=suffix)
    cap = None
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)

        cap = cv2.VideoCapture(tmp_path)
        if not cap.isOpened():
            return None

        fps = cap.get(cv2.CAP_PROP_FPS)
        frames = cap.get(cv2.CAP_PROP_FRAME_COUNT)
        if not fps or fps <= 0 or not frames or frames <= 0:
            return None
        return float(frames) / float(fps)

    except cv2.error as e:
        logger.debug(f"Could not probe video duration: {e}")
        return None
    finally:
        if cap is not None:
            cap.release()
        os.unlink(tmp_path)


def build_candidate(
    data: bytes,
    content_type: str,
    file_name: str,
    duration_seconds: Optional[float] = None,
    probe_duration: bool = True,
) -> MediaCandidate:
    """
    Wrap raw bytes as a MediaCandidate.

    The kind always comes from the content type. Video duration is probed
    when not supplied and probing is enabled.
    """
    kind = infer_media_kind(content_type)
    if kind == MediaType.VIDEO and duration_seconds is None and probe_duration:
        duration_seconds = probe_video_duration(data, content_type)

    return MediaCandidate(
        media_type=kind,
        content_type=content_type or "",
        file_name=file_name,
        size_bytes=len(data),
        duration_seconds=duration_seconds,
        data=data,
    )


def is_retry_of(attachment: MediaAttachment, candidate: MediaCandidate) -> bool:
    """True when the candidate re-sends the file of a failed upload."""
    return (
        attachment.upload_status == UploadStatus.FAILED
        and attachment.media_type == candidate.media_type
        and attachment.file_name == candidate.file_name
    )


def evidence_required(item: InspectionItem) -> bool:
    """Advisory flag: a failed item with no media attached."""
    return item.status == ItemStatus.FAILED and len(item.media) == 0


class EvidenceValidator:
    """Checks a media candidate against the per-item evidence policy."""

    def __init__(
        self,
        max_file_size_bytes: Optional[int] = None,
        max_photos: Optional[int] = None,
        max_videos: Optional[int] = None,
        max_video_seconds: Optional[int] = None,
    ):
        self.logger = logger
        self.max_file_size_bytes = (
            config.max_file_size_bytes if max_file_size_bytes is None else max_file_size_bytes
        )
        self.max_photos = config.max_photos_per_item if max_photos is None else max_photos
        self.max_videos = config.max_videos_per_item if max_videos is None else max_videos
        self.max_video_seconds = (
            config.max_video_seconds if max_video_seconds is None else max_video_seconds
        )

    @staticmethod
    def _count(item_media: Iterable[MediaAttachment], candidate: MediaCandidate) -> int:
        # A failed upload keeps its slot; only a retry of that same file may reuse it
        return sum(
            1 for m in item_media
            if m.media_type == candidate.media_type
            and not is_retry_of(m, candidate)
        )

    def validate_attachment(
        self,
        item_media: Iterable[MediaAttachment],
        candidate: MediaCandidate,
        check_duration: bool = True,
    ) -> Optional[EvidenceError]:
        """
        Validate a candidate against the media already attached to an item.

        Rules are applied in order and the first failure wins.

        Args:
            item_media: Existing attachments of the item, failed uploads included
            candidate: Media about to be attached
            check_duration: Apply the video duration rule (client side only)

        Returns:
            None if accepted, otherwise the EvidenceError describing the rejection
        """
        item_media = list(item_media)

        if candidate.media_type not in (MediaType.PHOTO, MediaType.VIDEO):
            return InvalidFileType(details=f"content type: {candidate.content_type or 'unknown'}")

        if candidate.size_bytes > self.max_file_size_bytes:
            size_mb = candidate.size_bytes / (1024 * 1024)
            return FileTooLarge(
                f"File too large: {size_mb:.1f}MB (max: {self.max_file_size_bytes // (1024 * 1024)}MB)"
            )

        if candidate.media_type == MediaType.PHOTO:
            if self._count(item_media, candidate) >= self.max_photos:
                return PhotoLimitExceeded(f"Maximum {self.max_photos} photos per item reached.")
            return None

        if self._count(item_media, candidate) >= self.max_videos:
            return VideoLimitExceeded()

        # Undeterminable duration is accepted
        if check_duration and candidate.duration_seconds is not None:
            if candidate.duration_seconds > self.max_video_seconds:
                return VideoTooLong(
                    f"Video too long: {candidate.duration_seconds:.0f}s (max: {self.max_video_seconds}s)"
                )

        return None

    def validate_server_side(
        self,
        item_media: Iterable[MediaAttachment],
        candidate: MediaCandidate,
    ) -> Optional[EvidenceError]:
        """Re-check kind, size and counts before the storage collaborator is called."""
        return self.validate_attachment(item_media, candidate, check_duration=False)

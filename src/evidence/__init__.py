"""
Evidence validation and server-side media upload.
"""

from src.evidence.validator import (
    EvidenceValidator,
    build_candidate,
    evidence_required,
    infer_media_kind,
    is_retry_of,
    probe_video_duration,
)
from src.evidence.upload import MediaUploadService, media_record_to_attachment

__all__ = [
    "MediaUploadService",
    "media_record_to_attachment",
    "EvidenceValidator",
    "build_candidate",
    "evidence_required",
    "infer_media_kind",
    "is_retry_of",
    "probe_video_duration",
]

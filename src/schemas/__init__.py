"""
Pydantic schemas for the Delivery Inspection System.
"""

from src.schemas.models import (
    ItemStatus,
    Phase,
    DiscoveryStage,
    PhaseStatus,
    InspectionStatus,
    MediaType,
    UploadStatus,
    ReferenceLink,
    MediaAttachment,
    InspectionItem,
    InspectionSection,
    ItemPatch,
    OrderData,
    Totals,
    PhaseStats,
    Inspection,
    MediaCandidate,
    StoredObject,
    InspectionReportRecord,
    CompletionResult,
    DraftSnapshot,
)

__all__ = [
    "ItemStatus",
    "Phase",
    "DiscoveryStage",
    "PhaseStatus",
    "InspectionStatus",
    "MediaType",
    "UploadStatus",
    "ReferenceLink",
    "MediaAttachment",
    "InspectionItem",
    "InspectionSection",
    "ItemPatch",
    "OrderData",
    "Totals",
    "PhaseStats",
    "Inspection",
    "MediaCandidate",
    "StoredObject",
    "InspectionReportRecord",
    "CompletionResult",
    "DraftSnapshot",
]

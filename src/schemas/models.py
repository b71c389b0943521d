"""
Pydantic schemas for inspection records, checklist items and media evidence.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# ENUMS
# ============================================================================

class ItemStatus(str, Enum):
    """Inspection outcome of a single checklist item."""
    PENDING = "pending"
    PASSED = "passed"
    FAILED = "failed"


class Phase(str, Enum):
    """Inspection phase; doubles as the discovery stage of an item."""
    ON_DELIVERY = "on_delivery"
    TEST_DRIVE = "test_drive"

    @property
    def label(self) -> str:
        return {
            Phase.ON_DELIVERY: "On Delivery (static)",
            Phase.TEST_DRIVE: "Test Drive (<100 km)",
        }[self]


DiscoveryStage = Phase


class PhaseStatus(str, Enum):
    """Sign-off state of a phase. APPROVED is never assigned."""
    PENDING = "pending"
    COMPLETED = "completed"
    APPROVED = "approved"


class InspectionStatus(str, Enum):
    """Overall inspection lifecycle."""
    ON_DELIVERY_PENDING = "on_delivery_pending"
    ON_DELIVERY_COMPLETED = "on_delivery_completed"
    TEST_DRIVE_PENDING = "test_drive_pending"
    TEST_DRIVE_COMPLETED = "test_drive_completed"
    FINAL_COMPLETED = "final_completed"


class MediaType(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


class UploadStatus(str, Enum):
    PENDING = "pending"
    UPLOADED = "uploaded"
    FAILED = "failed"


# ============================================================================
# CHECKLIST
# ============================================================================

class ReferenceLink(BaseModel):
    """External reference attached to a checklist item."""
    title: str
    url: str


class MediaAttachment(BaseModel):
    """Photo or video evidence stored remotely. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:12])
    item_id: str
    media_type: MediaType
    file_name: str
    drive_file_id: Optional[str] = None
    drive_link: Optional[str] = None
    upload_status: UploadStatus = UploadStatus.UPLOADED
    size_bytes: Optional[int] = None
    duration_seconds: Optional[float] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)


class InspectionItem(BaseModel):
    """A single checklist item."""
    id: str
    name: str
    description: str = ""
    category: str = ""
    discovery_stage: Phase
    status: ItemStatus = ItemStatus.PENDING
    notes: str = ""
    media: List[MediaAttachment] = Field(default_factory=list)
    suggested_solutions: List[str] = Field(default_factory=list)
    additional_links: List[ReferenceLink] = Field(default_factory=list)
    evidence_required: str = ""

    @property
    def photo_count(self) -> int:
        return sum(1 for m in self.media if m.media_type == MediaType.PHOTO)

    @property
    def video_count(self) -> int:
        return sum(1 for m in self.media if m.media_type == MediaType.VIDEO)

    @property
    def is_decided(self) -> bool:
        """True once the item has been marked passed or failed."""
        return self.status != ItemStatus.PENDING


class InspectionSection(BaseModel):
    """Ordered group of checklist items for one phase."""
    id: str
    name: str
    discovery_stage: Phase
    items: List[InspectionItem] = Field(default_factory=list)


class ItemPatch(BaseModel):
    """Partial update applied to an item. Media is appended, never replaced."""
    status: Optional[ItemStatus] = None
    notes: Optional[str] = None
    add_media: List[MediaAttachment] = Field(default_factory=list)


# ============================================================================
# ORDER / VEHICLE
# ============================================================================

class OrderData(BaseModel):
    """Result of an order lookup."""
    order_number: str
    vin: str
    vehicle_model: str
    vehicle_color: str
    customer_name: str
    customer_email: Optional[str] = None
    sales_rep_email: Optional[str] = None
    delivery_date: Optional[str] = None
    is_placeholder: bool = False


# ============================================================================
# AGGREGATES
# ============================================================================

class Totals(BaseModel):
    """Aggregate counters over all checklist items."""
    total_items: int = 0
    completed_items: int = 0
    failed_items: int = 0


class PhaseStats(BaseModel):
    """Progress counters for one phase."""
    total: int = 0
    completed: int = 0
    failed: int = 0

    @property
    def percent(self) -> float:
        return (self.completed / self.total * 100.0) if self.total else 0.0


class Inspection(BaseModel):
    """Aggregate root of a two-phase delivery inspection."""
    id: Optional[int] = None
    order_number: str
    vin: str = ""
    vehicle_model: str = ""
    vehicle_color: str = ""
    customer_name: str = ""
    customer_email: Optional[str] = None
    sales_rep_email: Optional[str] = None
    status: InspectionStatus = InspectionStatus.ON_DELIVERY_PENDING
    sections: List[InspectionSection] = Field(default_factory=list)

    on_delivery_status: PhaseStatus = PhaseStatus.PENDING
    test_drive_status: PhaseStatus = PhaseStatus.PENDING
    on_delivery_signature: Optional[str] = None
    test_drive_signature: Optional[str] = None
    on_delivery_completed_at: Optional[datetime] = None
    test_drive_completed_at: Optional[datetime] = None
    test_drive_km: Optional[float] = None

    total_items: int = 0
    completed_items: int = 0
    failed_items: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("order_number")
    @classmethod
    def normalize_order_number(cls, v: str) -> str:
        return v.strip()

    # ------------------------------------------------------------------
    # Phase accessors
    # ------------------------------------------------------------------

    def phase_status(self, phase: Phase) -> PhaseStatus:
        return getattr(self, f"{Phase(phase).value}_status")

    def phase_signature(self, phase: Phase) -> Optional[str]:
        return getattr(self, f"{Phase(phase).value}_signature")

    def phase_completed_at(self, phase: Phase) -> Optional[datetime]:
        return getattr(self, f"{Phase(phase).value}_completed_at")

    def iter_items(self, stage: Optional[Phase] = None) -> Iterator[InspectionItem]:
        """Iterate items in catalog order, optionally filtered by discovery stage."""
        for section in self.sections:
            for item in section.items:
                if stage is None or item.discovery_stage == stage:
                    yield item

    def find_item(self, item_id: str) -> Tuple[int, int]:
        """
        Locate an item by id.

        Returns:
            (section_index, item_index)

        Raises:
            KeyError: If no item has that id
        """
        for s_idx, section in enumerate(self.sections):
            for i_idx, item in enumerate(section.items):
                if item.id == item_id:
                    return s_idx, i_idx
        raise KeyError(item_id)

    @property
    def all_media(self) -> List[MediaAttachment]:
        return [m for item in self.iter_items() for m in item.media]

    @property
    def is_final(self) -> bool:
        return self.status == InspectionStatus.FINAL_COMPLETED

    # ------------------------------------------------------------------
    # Persistence mapping
    # ------------------------------------------------------------------

    def inspection_data(self) -> Dict[str, Any]:
        """Serialize the embedded document stored in the inspection_data column."""
        return self.model_dump(
            mode="json",
            include={
                "sections",
                "on_delivery_status",
                "test_drive_status",
                "on_delivery_signature",
                "test_drive_signature",
                "on_delivery_completed_at",
                "test_drive_completed_at",
                "test_drive_km",
            },
        )

    def to_record_fields(self) -> Dict[str, Any]:
        """Flatten into column values for the inspections table."""
        return {
            "order_number": self.order_number,
            "vin": self.vin,
            "vehicle_model": self.vehicle_model,
            "vehicle_color": self.vehicle_color,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "sales_rep_email": self.sales_rep_email,
            "status": self.status.value,
            "inspection_data": self.inspection_data(),
            "signature_data": self.test_drive_signature or self.on_delivery_signature,
            "total_items": self.total_items,
            "completed_items": self.completed_items,
            "failed_items": self.failed_items,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Inspection":
        """Build an Inspection from an InspectionRecord.to_dict() payload."""
        data = dict(record.get("inspection_data") or {})
        return cls(
            id=record.get("id"),
            order_number=record["order_number"],
            vin=record.get("vin") or "",
            vehicle_model=record.get("vehicle_model") or "",
            vehicle_color=record.get("vehicle_color") or "",
            customer_name=record.get("customer_name") or "",
            customer_email=record.get("customer_email"),
            sales_rep_email=record.get("sales_rep_email"),
            status=record.get("status") or InspectionStatus.ON_DELIVERY_PENDING,
            total_items=record.get("total_items") or 0,
            completed_items=record.get("completed_items") or 0,
            failed_items=record.get("failed_items") or 0,
            created_at=record.get("created_at"),
            updated_at=record.get("updated_at"),
            **data,
        )


# ============================================================================
# EVIDENCE / STORAGE / REPORTS
# ============================================================================

class MediaCandidate(BaseModel):
    """Media about to be attached to an item, before upload."""
    media_type: Optional[MediaType] = Field(
        None, description="Kind inferred from content type; None when neither photo nor video"
    )
    content_type: str = ""
    file_name: str
    size_bytes: int
    duration_seconds: Optional[float] = Field(
        None, description="Video duration when determinable"
    )
    data: bytes = Field(default=b"", repr=False)


class StoredObject(BaseModel):
    """Remote storage reference returned by an upload."""
    id: str
    view_link: str


class InspectionReportRecord(BaseModel):
    """Persisted report metadata."""
    id: Optional[int] = None
    inspection_id: int
    pdf_file_name: str
    drive_file_id: Optional[str] = None
    drive_link: Optional[str] = None
    email_sent: bool = False
    created_at: Optional[datetime] = None


class CompletionResult(BaseModel):
    """Outcome of the report completion flow."""
    success: bool
    report_id: Optional[int] = None
    pdf_link: Optional[str] = None
    email_sent: bool = False
    email_results: Dict[str, bool] = Field(default_factory=dict)


class DraftSnapshot(BaseModel):
    """Locally cached inspection state."""
    order_number: str
    inspection: Inspection
    last_saved: datetime = Field(default_factory=datetime.utcnow)


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

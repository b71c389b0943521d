"""
SQLAlchemy ORM models for inspections, media and reports.
"""

from datetime import datetime
from typing import Dict, Any

from sqlalchemy import (
    Column, Integer, String, DateTime,
    Text, Boolean, ForeignKey, JSON
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


class InspectionRecord(Base):
    """Main inspection record. Checklist state lives in inspection_data."""
    __tablename__ = "inspections"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)

    # Vehicle / customer
    vin = Column(String, nullable=False)
    vehicle_model = Column(String, nullable=False)
    vehicle_color = Column(String, nullable=False)
    customer_name = Column(String)
    customer_email = Column(String)
    sales_rep_email = Column(String)

    # on_delivery_pending, ..., final_completed
    status = Column(String, nullable=False, default="on_delivery_pending")

    # Sections/items, phase statuses and signatures
    inspection_data = Column(JSON)
    signature_data = Column(Text)

    # Aggregates
    total_items = Column(Integer, default=0)
    completed_items = Column(Integer, default=0)
    failed_items = Column(Integer, default=0)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    media = relationship(
        "InspectionMediaRecord",
        back_populates="inspection",
        cascade="all, delete-orphan"
    )
    reports = relationship(
        "InspectionReportRow",
        back_populates="inspection",
        cascade="all, delete-orphan"
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "order_number": self.order_number,
            "vin": self.vin,
            "vehicle_model": self.vehicle_model,
            "vehicle_color": self.vehicle_color,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "sales_rep_email": self.sales_rep_email,
            "status": self.status,
            "inspection_data": self.inspection_data,
            "signature_data": self.signature_data,
            "total_items": self.total_items,
            "completed_items": self.completed_items,
            "failed_items": self.failed_items,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class InspectionMediaRecord(Base):
    """Photo or video evidence attached to a checklist item."""
    __tablename__ = "inspection_media"

    id = Column(Integer, primary_key=True, index=True)
    inspection_id = Column(
        Integer,
        ForeignKey("inspections.id"),
        nullable=False,
        index=True
    )
    item_id = Column(String, nullable=False, index=True)
    media_type = Column(String, nullable=False)  # photo, video
    file_name = Column(String, nullable=False)
    drive_file_id = Column(String)
    drive_link = Column(String)
    upload_status = Column(String, nullable=False, default="pending")  # pending, uploaded, failed

    created_at = Column(DateTime, default=datetime.utcnow)

    inspection = relationship("InspectionRecord", back_populates="media")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "item_id": self.item_id,
            "media_type": self.media_type,
            "file_name": self.file_name,
            "drive_file_id": self.drive_file_id,
            "drive_link": self.drive_link,
            "upload_status": self.upload_status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class InspectionReportRow(Base):
    """Generated PDF report for a completed inspection."""
    __tablename__ = "inspection_reports"

    id = Column(Integer, primary_key=True, index=True)
    inspection_id = Column(
        Integer,
        ForeignKey("inspections.id"),
        nullable=False,
        index=True
    )
    pdf_file_name = Column(String, nullable=False)
    drive_file_id = Column(String)
    drive_link = Column(String)
    email_sent = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)

    inspection = relationship("InspectionRecord", back_populates="reports")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "inspection_id": self.inspection_id,
            "pdf_file_name": self.pdf_file_name,
            "drive_file_id": self.drive_file_id,
            "drive_link": self.drive_link,
            "email_sent": self.email_sent,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

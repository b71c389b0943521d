"""
Repository for inspection, media and report CRUD operations.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from src.database.models import (
    Base,
    InspectionRecord,
    InspectionMediaRecord,
    InspectionReportRow,
)
from src.errors import NotFoundError
from utils.logger import setup_logger
from utils.config import config

logger = setup_logger(__name__, level=config.log_level, component="DATABASE")

# Create database engine
engine = create_engine(
    f"sqlite:///{config.database_path}",
    echo=config.database_echo,
    connect_args={"check_same_thread": False}
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


class InspectionRepository:
    """Repository for inspection CRUD operations."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self.logger = logger
        self._session_factory = session_factory or SessionLocal

    def get_session(self) -> Session:
        """Get database session."""
        return self._session_factory()

    # ========================================================================
    # Generic helpers
    # ========================================================================

    def _create(self, model, fields: Dict[str, Any]):
        session = self.get_session()
        try:
            record = model(**fields)
            session.add(record)
            session.commit()
            session.refresh(record)
            return record
        except Exception as e:
            session.rollback()
            self.logger.error(f"Failed to create {model.__tablename__} row: {e}")
            raise
        finally:
            session.close()

    def _update(self, model, record_id: int, updates: Dict[str, Any], touch: bool = False):
        session = self.get_session()
        try:
            record = session.get(model, record_id)
            if record is None:
                raise NotFoundError(f"{model.__tablename__} #{record_id} not found")

            for key, value in updates.items():
                if not hasattr(model, key):
                    raise ValueError(f"Unknown field for {model.__tablename__}: {key}")
                setattr(record, key, value)
            if touch:
                record.updated_at = datetime.utcnow()

            session.commit()
            session.refresh(record)
            return record
        except Exception as e:
            session.rollback()
            self.logger.error(f"Failed to update {model.__tablename__} #{record_id}: {e}")
            raise
        finally:
            session.close()

    # ========================================================================
    # Inspections
    # ========================================================================

    def create_inspection(self, fields: Dict[str, Any]) -> InspectionRecord:
        """
        Create a new inspection record.

        Args:
            fields: Column values (see Inspection.to_record_fields)

        Returns:
            Created inspection record
        """
        inspection = self._create(InspectionRecord, fields)
        self.logger.info(f"Created inspection #{inspection.id} for order {inspection.order_number}")
        return inspection

    def get_inspection(self, inspection_id: int) -> Optional[InspectionRecord]:
        """Get inspection by numeric ID."""
        session = self.get_session()

        try:
            return session.get(InspectionRecord, inspection_id)

        finally:
            session.close()

    def get_inspection_by_order_number(self, order_number: str) -> Optional[InspectionRecord]:
        """Get inspection by order number."""
        session = self.get_session()

        try:
            return session.query(InspectionRecord).filter(
                InspectionRecord.order_number == order_number
            ).first()

        finally:
            session.close()

    def update_inspection(self, inspection_id: int, updates: Dict[str, Any]) -> InspectionRecord:
        """
        Merge partial field updates into an inspection.

        Args:
            inspection_id: Inspection ID
            updates: Column -> new value; omitted columns are untouched

        Returns:
            Updated record

        Raises:
            NotFoundError: If the inspection does not exist
        """
        return self._update(InspectionRecord, inspection_id, updates, touch=True)

    def list_inspections(
        self,
        limit: int = 50,
        offset: int = 0,
        status: Optional[str] = None
    ) -> List[InspectionRecord]:
        """List inspections, newest first, optionally filtered by status."""
        session = self.get_session()

        try:
            query = session.query(InspectionRecord)

            if status:
                query = query.filter(InspectionRecord.status == status)

            return query.order_by(
                InspectionRecord.created_at.desc()
            ).limit(limit).offset(offset).all()

        finally:
            session.close()

    def delete_inspection(self, inspection_id: int) -> bool:
        """Delete an inspection with its media and reports."""
        session = self.get_session()

        try:
            inspection = session.get(InspectionRecord, inspection_id)

            if inspection is None:
                return False

            session.delete(inspection)
            session.commit()
            self.logger.info(f"Deleted inspection #{inspection_id}")
            return True

        except Exception:
            session.rollback()
            raise

        finally:
            session.close()

    # ========================================================================
    # Media
    # ========================================================================

    def create_media(self, fields: Dict[str, Any]) -> InspectionMediaRecord:
        """Create a media record (upload_status defaults to pending)."""
        media = self._create(InspectionMediaRecord, fields)
        self.logger.debug(
            f"Created media #{media.id} ({media.media_type}) for item {media.item_id}"
        )
        return media

    def list_media(
        self,
        inspection_id: int,
        item_id: Optional[str] = None
    ) -> List[InspectionMediaRecord]:
        """List media of an inspection in creation order, optionally for one item."""
        session = self.get_session()

        try:
            query = session.query(InspectionMediaRecord).filter(
                InspectionMediaRecord.inspection_id == inspection_id
            )
            if item_id:
                query = query.filter(InspectionMediaRecord.item_id == item_id)

            return query.order_by(InspectionMediaRecord.id.asc()).all()

        finally:
            session.close()

    def update_media(self, media_id: int, updates: Dict[str, Any]) -> InspectionMediaRecord:
        """Merge partial field updates into a media record."""
        return self._update(InspectionMediaRecord, media_id, updates)

    # ========================================================================
    # Reports
    # ========================================================================

    def create_report(self, fields: Dict[str, Any]) -> InspectionReportRow:
        """Create a report record."""
        report = self._create(InspectionReportRow, fields)
        self.logger.info(f"Created report #{report.id} for inspection #{report.inspection_id}")
        return report

    def get_report(self, report_id: int) -> Optional[InspectionReportRow]:
        session = self.get_session()

        try:
            return session.get(InspectionReportRow, report_id)

        finally:
            session.close()

    def get_report_for_inspection(self, inspection_id: int) -> Optional[InspectionReportRow]:
        """Latest report of an inspection."""
        session = self.get_session()

        try:
            return session.query(InspectionReportRow).filter(
                InspectionReportRow.inspection_id == inspection_id
            ).order_by(InspectionReportRow.id.desc()).first()

        finally:
            session.close()

    def update_report(self, report_id: int, updates: Dict[str, Any]) -> InspectionReportRow:
        """Merge partial field updates into a report record."""
        return self._update(InspectionReportRow, report_id, updates)


def init_database(bind=None) -> bool:
    """Initialize database schema."""
    try:
        Base.metadata.create_all(bind=bind or engine)
        logger.info("Database initialized successfully")
        return True
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        return False


def health_check_database(session_factory: Optional[Callable[[], Session]] = None) -> bool:
    """Check database health."""
    session = (session_factory or SessionLocal)()
    try:
        session.query(InspectionRecord).first()
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    finally:
        session.close()


# Note: init_database() should be called explicitly at app startup

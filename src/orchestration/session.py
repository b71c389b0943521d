"""
Inspection session: wires one order's state machine, draft cache, media
upload and completion flow together.
"""

from pathlib import Path
from typing import Optional

from src.capture.pipeline import MediaCapturePipeline
from src.catalog.checklist import build_initial_sections
from src.database import InspectionRepository
from src.errors import InputValidationError
from src.evidence.upload import MediaUploadService
from src.evidence.validator import EvidenceValidator
from src.integrations.email import EmailDispatcher
from src.integrations.order_lookup import OrderLookupService
from src.orchestration.graph import ReportCompletionFlow
from src.orchestration.state_machine import InspectionStateMachine
from src.schemas.models import Inspection, OrderData
from src.storage.draft_cache import DraftCache
from src.storage.remote import ObjectStorage, get_storage
from utils.config import config
from utils.logger import setup_logger, set_request_id
from utils.validators import validate_order_number

logger = setup_logger(__name__, level=config.log_level, component="SESSION")


def new_inspection(order: OrderData, catalog_path: Optional[Path] = None) -> Inspection:
    """Fresh all-pending inspection for an order."""
    return Inspection(
        order_number=order.order_number,
        vin=order.vin,
        vehicle_model=order.vehicle_model,
        vehicle_color=order.vehicle_color,
        customer_name=order.customer_name,
        customer_email=order.customer_email,
        sales_rep_email=order.sales_rep_email,
        sections=build_initial_sections(catalog_path),
    )


class InspectionSession:
    """One inspector working on one order."""

    def __init__(
        self,
        order: OrderData,
        machine: InspectionStateMachine,
        upload_service: MediaUploadService,
        draft_restored: bool = False,
    ):
        self.logger = logger
        self.order = order
        self.machine = machine
        self.upload_service = upload_service
        self.draft_restored = draft_restored

    @property
    def inspection(self) -> Inspection:
        return self.machine.inspection

    @classmethod
    def open(
        cls,
        order_number: str,
        repository: Optional[InspectionRepository] = None,
        order_lookup: Optional[OrderLookupService] = None,
        storage: Optional[ObjectStorage] = None,
        mailer: Optional[EmailDispatcher] = None,
        completion_flow: Optional[ReportCompletionFlow] = None,
        draft_dir: Optional[Path] = None,
        catalog_path: Optional[Path] = None,
        language: str = "en",
    ) -> "InspectionSession":
        """
        Load or create the inspection for an order.

        The order lookup never blocks: unknown orders get a placeholder
        vehicle. A local draft newer than the stored record is restored and
        written back.

        Args:
            order_number: Order typed by the user
            repository: Persisted store (defaults to the configured database)
            order_lookup: Order lookup client
            storage: Object storage for media and reports
            mailer: Email dispatcher
            completion_flow: Report completion flow
            draft_dir: Directory of the draft cache
            catalog_path: Checklist catalog override
            language: Language of the customer email

        Raises:
            InputValidationError: Malformed order number
        """
        is_valid, error, order_number = validate_order_number(order_number)
        if not is_valid:
            raise InputValidationError(error)

        set_request_id(order_number)
        repository = repository or InspectionRepository()
        storage = storage or get_storage()
        mailer = mailer or EmailDispatcher()
        order_lookup = order_lookup or OrderLookupService()
        completion_flow = completion_flow or ReportCompletionFlow(
            repository=repository, storage=storage, mailer=mailer
        )

        order = order_lookup.get_order(order_number)

        record = repository.get_inspection_by_order_number(order_number)
        if record is not None:
            inspection = Inspection.from_record(record.to_dict())
            logger.info(f"Resumed inspection #{inspection.id} for {order_number} ({inspection.status.value})")
        else:
            inspection = new_inspection(order, catalog_path)
            record = repository.create_inspection(inspection.to_record_fields())
            inspection.id = record.id
            inspection.created_at = record.created_at
            inspection.updated_at = record.updated_at
            logger.info(f"Started inspection #{inspection.id} for {order_number}")

        draft_cache = DraftCache(order_number, base_dir=draft_dir)
        draft_restored = False
        snapshot = draft_cache.load()
        if snapshot is not None and not inspection.is_final:
            stored_at = inspection.updated_at or inspection.created_at
            if stored_at is None or snapshot.last_saved > stored_at:
                inspection = snapshot.inspection.model_copy(update={"id": inspection.id})
                draft_restored = True
                logger.info(f"Restored local draft for {order_number} saved at {snapshot.last_saved}")

        machine = InspectionStateMachine(
            inspection,
            repository,
            draft_cache=draft_cache,
            completion_flow=completion_flow,
            mailer=mailer,
            language=language,
        )
        if draft_restored:
            machine.save()

        upload_service = MediaUploadService(repository, storage)
        return cls(order, machine, upload_service, draft_restored=draft_restored)

    def pipeline_for(self, item_id: str, **kwargs) -> MediaCapturePipeline:
        """
        Capture pipeline for one item.

        Uploads go through the media upload service; accepted media is
        appended to the item through the state machine. Limits are checked
        against persisted media so failed uploads keep their slot.
        """
        self.inspection.find_item(item_id)

        def current_media():
            return self.upload_service.existing_media(self.inspection.id, item_id)

        kwargs.setdefault("validator", EvidenceValidator())
        return MediaCapturePipeline(
            item_id,
            media_provider=current_media,
            uploader=lambda candidate: self.upload_service.upload(self.inspection.id, item_id, candidate),
            on_attached=self.machine.attach_media,
            **kwargs,
        )

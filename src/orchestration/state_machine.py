"""
Inspection state machine.
Owns the in-memory inspection, recomputes aggregates on every mutation and
writes each change through to the repository and the draft cache.
"""

from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from src.catalog.checklist import phase_stats as catalog_phase_stats
from src.database import InspectionRepository
from src.errors import (
    AppError,
    CompletionFailed,
    InputValidationError,
    PersistenceError,
    to_app_error,
)
from src.evidence.validator import evidence_required
from src.integrations.email import EmailDispatcher
from src.schemas.models import (
    CompletionResult,
    Inspection,
    InspectionItem,
    InspectionSection,
    InspectionStatus,
    ItemPatch,
    ItemStatus,
    MediaAttachment,
    Phase,
    PhaseStats,
    PhaseStatus,
    Totals,
)
from src.storage.draft_cache import DraftCache
from utils.config import config
from utils.logger import setup_logger
from utils.validators import validate_item_notes, validate_test_drive_km

logger = setup_logger(__name__, level=config.log_level, component="STATE")


class CompletionRunner(Protocol):
    def run(self, inspection_id: int, language: str = "en") -> CompletionResult:
        ...


def recompute_totals(sections: Iterable[InspectionSection]) -> Totals:
    """
    Count items over every section.

    completed_items counts items that are no longer pending; failed_items
    counts failed items.
    """
    items = [item for section in sections for item in section.items]
    return Totals(
        total_items=len(items),
        completed_items=sum(1 for i in items if i.status != ItemStatus.PENDING),
        failed_items=sum(1 for i in items if i.status == ItemStatus.FAILED),
    )


class InspectionStateMachine:
    """
    Authoritative state of one inspection.

    Phases move pending -> completed. Signing the on-delivery phase unlocks the
    test drive; signing the test drive runs the report completion flow.
    """

    def __init__(
        self,
        inspection: Inspection,
        repository: InspectionRepository,
        draft_cache: Optional[DraftCache] = None,
        completion_flow: Optional[CompletionRunner] = None,
        mailer: Optional[EmailDispatcher] = None,
        language: str = "en",
    ):
        self.logger = logger
        self.inspection = inspection
        self.repository = repository
        self.draft_cache = draft_cache
        self.completion_flow = completion_flow
        self.mailer = mailer
        self.language = language

        self.unsaved_changes = False
        self.last_error: Optional[AppError] = None
        self.completion_result: Optional[CompletionResult] = None

        self._apply_totals()

    # ========================================================================
    # Queries
    # ========================================================================

    @property
    def totals(self) -> Totals:
        return Totals(
            total_items=self.inspection.total_items,
            completed_items=self.inspection.completed_items,
            failed_items=self.inspection.failed_items,
        )

    def item(self, section_index: int, item_index: int) -> InspectionItem:
        return self.inspection.sections[section_index].items[item_index]

    def phase_stats(self, phase: Phase) -> PhaseStats:
        return catalog_phase_stats(Phase(phase), self.inspection.sections)

    def is_phase_unlocked(self, phase: Phase) -> bool:
        """The test drive stays locked until the on-delivery phase is signed."""
        if Phase(phase) == Phase.ON_DELIVERY:
            return True
        return self.inspection.on_delivery_status != PhaseStatus.PENDING

    def can_complete_phase(self, phase: Phase) -> bool:
        """
        True iff every item of the phase is decided and the phase is still pending.
        """
        phase = Phase(phase)
        if self.inspection.phase_status(phase) != PhaseStatus.PENDING:
            return False
        return all(item.is_decided for item in self.inspection.iter_items(phase))

    def items_missing_evidence(self, phase: Optional[Phase] = None) -> List[InspectionItem]:
        """Failed items without media. Advisory only; never blocks sign-off."""
        return [item for item in self.inspection.iter_items(phase) if evidence_required(item)]

    # ========================================================================
    # Mutations
    # ========================================================================

    def update_item(self, section_index: int, item_index: int, patch: ItemPatch) -> InspectionItem:
        """
        Merge a patch into one item and write the inspection through.

        Status and notes replace the current values; media is appended.

        Args:
            section_index: Index into inspection.sections
            item_index: Index into the section's items
            patch: Fields to merge

        Returns:
            The updated item

        Raises:
            IndexError: Unknown section or item
            InputValidationError: Notes longer than allowed
        """
        item = self.item(section_index, item_index)

        if patch.notes is not None:
            is_valid, error, notes = validate_item_notes(patch.notes)
            if not is_valid:
                raise InputValidationError(error)
            item.notes = notes
        if patch.status is not None:
            item.status = ItemStatus(patch.status)
        if patch.add_media:
            item.media.extend(patch.add_media)

        self._apply_totals()
        self.logger.debug(
            f"Item {item.id}: status={item.status.value}, media={len(item.media)} "
            f"({self.inspection.completed_items}/{self.inspection.total_items} done)"
        )
        self._persist("update_item")
        return item

    def update_item_by_id(self, item_id: str, patch: ItemPatch) -> InspectionItem:
        section_index, item_index = self.inspection.find_item(item_id)
        return self.update_item(section_index, item_index, patch)

    def attach_media(self, attachment: MediaAttachment) -> InspectionItem:
        """Append an uploaded attachment to its item."""
        return self.update_item_by_id(attachment.item_id, ItemPatch(add_media=[attachment]))

    def set_test_drive_km(self, km) -> None:
        is_valid, error, value = validate_test_drive_km(km)
        if not is_valid:
            raise InputValidationError(error)
        self.inspection.test_drive_km = value
        self._persist("set_test_drive_km")

    def complete_phase(self, phase: Phase, signature: str) -> Optional[CompletionResult]:
        """
        Sign off a phase.

        Eligibility is not re-checked here; callers offer the signature only
        when can_complete_phase() is true.

        Args:
            phase: Phase being signed
            signature: Signature image data URL or typed name

        Returns:
            CompletionResult after the test drive sign-off, otherwise None

        Raises:
            CompletionFailed: The completion flow failed or the final state could not be saved
        """
        phase = Phase(phase)
        now = datetime.utcnow()

        setattr(self.inspection, f"{phase.value}_signature", signature)
        setattr(self.inspection, f"{phase.value}_status", PhaseStatus.COMPLETED)
        setattr(self.inspection, f"{phase.value}_completed_at", now)

        if phase == Phase.ON_DELIVERY:
            self.inspection.status = InspectionStatus.TEST_DRIVE_PENDING
            self.logger.info(f"On-delivery phase signed for {self.inspection.order_number}; test drive unlocked")
            self._persist("complete_phase")
            if self.mailer is not None:
                self.mailer.send_phase_notification(self.inspection, phase)
            return None

        self.inspection.status = InspectionStatus.FINAL_COMPLETED
        self.logger.info(f"Test drive phase signed for {self.inspection.order_number}")
        if not self._persist("complete_phase"):
            raise CompletionFailed(details="final inspection state could not be saved")
        return self.run_completion()

    def run_completion(self) -> Optional[CompletionResult]:
        """
        Run the completion flow once for a final inspection.

        A successful result is kept and returned on later calls; after a
        failure the flow may be run again.
        """
        if self.completion_result is not None:
            return self.completion_result
        if self.completion_flow is None:
            self.logger.warning("No completion flow configured; report not generated")
            return None

        try:
            result = self.completion_flow.run(self.inspection.id, language=self.language)
        except CompletionFailed as e:
            self.last_error = to_app_error(e, "complete_inspection")
            raise

        self.completion_result = result
        self.last_error = None
        if self.draft_cache is not None:
            self.draft_cache.clear()
        return result

    # ========================================================================
    # Persistence
    # ========================================================================

    def _apply_totals(self) -> None:
        totals = recompute_totals(self.inspection.sections)
        self.inspection.total_items = totals.total_items
        self.inspection.completed_items = totals.completed_items
        self.inspection.failed_items = totals.failed_items

    def _persist(self, operation: str) -> bool:
        """
        Write the inspection to the draft cache and the repository.

        A repository failure leaves the in-memory state as is and raises the
        unsaved_changes flag.

        Returns:
            True if the repository accepted the write
        """
        if self.draft_cache is not None:
            self.draft_cache.save(self.inspection)

        try:
            if self.inspection.id is None:
                record = self.repository.create_inspection(self.inspection.to_record_fields())
                self.inspection.id = record.id
            else:
                self.repository.update_inspection(self.inspection.id, self.inspection.to_record_fields())
        except Exception as e:
            self.unsaved_changes = True
            self.last_error = to_app_error(PersistenceError(details=str(e)), operation)
            return False

        self.unsaved_changes = False
        return True

    def save(self) -> bool:
        """Retry persisting local changes."""
        return self._persist("save")

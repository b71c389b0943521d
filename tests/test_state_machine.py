"""
Tests for the inspection state machine: item updates, aggregates, phase
gating and sign-off.
"""

import pytest

from src.errors import CompletionFailed, InputValidationError
from src.orchestration import InspectionStateMachine, recompute_totals
from src.schemas.models import (
    CompletionResult,
    InspectionStatus,
    ItemPatch,
    ItemStatus,
    MediaAttachment,
    MediaType,
    Phase,
    PhaseStatus,
)
from src.storage import DraftCache


class FakeFlow:
    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def run(self, inspection_id, language="en"):
        self.calls.append((inspection_id, language))
        if self.error is not None:
            error, self.error = self.error, None
            raise error
        return CompletionResult(success=True, report_id=1, pdf_link="https://storage.test/pdf", email_sent=True)


class BrokenRepository:
    """Repository whose writes always fail."""

    def __init__(self, inner):
        self.inner = inner
        self.fail = True

    def create_inspection(self, fields):
        if self.fail:
            raise RuntimeError("database is locked")
        return self.inner.create_inspection(fields)

    def update_inspection(self, inspection_id, updates):
        if self.fail:
            raise RuntimeError("database is locked")
        return self.inner.update_inspection(inspection_id, updates)


def phase_positions(inspection, phase):
    return [
        (s_idx, i_idx)
        for s_idx, section in enumerate(inspection.sections)
        if section.discovery_stage == phase
        for i_idx, _ in enumerate(section.items)
    ]


def decide_all(machine, phase, status=ItemStatus.PASSED):
    for s_idx, i_idx in phase_positions(machine.inspection, phase):
        machine.update_item(s_idx, i_idx, ItemPatch(status=status))


@pytest.fixture
def flow():
    return FakeFlow()


@pytest.fixture
def machine(stored_inspection, repository, draft_dir, flow, mailer):
    return InspectionStateMachine(
        stored_inspection,
        repository,
        draft_cache=DraftCache(stored_inspection.order_number, base_dir=draft_dir),
        completion_flow=flow,
        mailer=mailer,
    )


class TestAggregates:
    """Totals are recomputed on every mutation."""

    def test_initial_totals(self, machine):
        totals = machine.totals
        assert totals.total_items == sum(len(s.items) for s in machine.inspection.sections)
        assert totals.completed_items == 0
        assert totals.failed_items == 0

    def test_update_recomputes(self, machine):
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.PASSED))
        machine.update_item(0, 1, ItemPatch(status=ItemStatus.FAILED))

        assert machine.totals.completed_items == 2
        assert machine.totals.failed_items == 1
        assert machine.totals == recompute_totals(machine.inspection.sections)

    def test_status_change_back_to_pending(self, machine):
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.FAILED))
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.PENDING))
        assert machine.totals.completed_items == 0
        assert machine.totals.failed_items == 0

    def test_update_persists(self, machine, repository):
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.FAILED, notes="  dent  "))

        record = repository.get_inspection(machine.inspection.id)
        assert record.failed_items == 1
        assert record.inspection_data["sections"][0]["items"][0]["notes"] == "dent"

    def test_same_update_twice_is_idempotent(self, machine):
        patch = ItemPatch(status=ItemStatus.PASSED, notes="ok")
        machine.update_item(0, 0, patch)
        first = machine.inspection.model_dump(exclude={"updated_at"})
        machine.update_item(0, 0, patch)

        assert machine.inspection.model_dump(exclude={"updated_at"}) == first

    def test_notes_too_long(self, machine):
        with pytest.raises(InputValidationError):
            machine.update_item(0, 0, ItemPatch(notes="x" * 2001))

    def test_unknown_item(self, machine):
        with pytest.raises(IndexError):
            machine.update_item(0, 999, ItemPatch(status=ItemStatus.PASSED))

    def test_media_is_appended(self, machine):
        item_id = machine.item(0, 0).id
        for _ in range(2):
            machine.attach_media(MediaAttachment(item_id=item_id, media_type=MediaType.PHOTO, file_name="p.jpg"))
        assert machine.item(0, 0).photo_count == 2

    def test_test_drive_km(self, machine):
        machine.set_test_drive_km("35")
        assert machine.inspection.test_drive_km == 35.0
        with pytest.raises(InputValidationError):
            machine.set_test_drive_km(150)


class TestEvidenceAdvisory:
    """Failed items without media are flagged but never block sign-off."""

    def test_failed_item_without_media_flagged(self, machine):
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.FAILED))
        missing = machine.items_missing_evidence(Phase.ON_DELIVERY)

        assert [item.id for item in missing] == [machine.item(0, 0).id]

    def test_flag_cleared_by_media(self, machine):
        machine.update_item(0, 0, ItemPatch(status=ItemStatus.FAILED))
        item_id = machine.item(0, 0).id
        machine.attach_media(MediaAttachment(item_id=item_id, media_type=MediaType.PHOTO, file_name="p.jpg"))

        assert machine.items_missing_evidence() == []

    def test_missing_evidence_does_not_block(self, machine):
        decide_all(machine, Phase.ON_DELIVERY, ItemStatus.FAILED)
        assert machine.items_missing_evidence(Phase.ON_DELIVERY)
        assert machine.can_complete_phase(Phase.ON_DELIVERY) is True


class TestPhaseGating:
    """On-delivery sign-off unlocks the test drive."""

    def test_test_drive_locked_initially(self, machine):
        assert machine.is_phase_unlocked(Phase.ON_DELIVERY) is True
        assert machine.is_phase_unlocked(Phase.TEST_DRIVE) is False

    def test_cannot_complete_with_pending_items(self, machine):
        s_idx, i_idx = phase_positions(machine.inspection, Phase.ON_DELIVERY)[0]
        machine.update_item(s_idx, i_idx, ItemPatch(status=ItemStatus.PASSED))
        assert machine.can_complete_phase(Phase.ON_DELIVERY) is False

    def test_test_drive_items_do_not_gate_on_delivery(self, machine):
        decide_all(machine, Phase.ON_DELIVERY)
        assert machine.can_complete_phase(Phase.ON_DELIVERY) is True
        assert machine.can_complete_phase(Phase.TEST_DRIVE) is False

    def test_on_delivery_completion_unlocks_test_drive(self, machine, repository, mailer, flow):
        decide_all(machine, Phase.ON_DELIVERY)
        result = machine.complete_phase(Phase.ON_DELIVERY, "Jane Doe")

        assert result is None
        assert machine.inspection.on_delivery_status == PhaseStatus.COMPLETED
        assert machine.inspection.on_delivery_signature == "Jane Doe"
        assert machine.inspection.on_delivery_completed_at is not None
        assert machine.inspection.status == InspectionStatus.TEST_DRIVE_PENDING
        assert machine.is_phase_unlocked(Phase.TEST_DRIVE) is True
        assert machine.can_complete_phase(Phase.ON_DELIVERY) is False
        assert mailer.phase_calls == [(machine.inspection.order_number, Phase.ON_DELIVERY)]
        assert flow.calls == []

        record = repository.get_inspection(machine.inspection.id)
        assert record.status == "test_drive_pending"

    def test_phase_stats(self, machine):
        decide_all(machine, Phase.ON_DELIVERY)
        stats = machine.phase_stats(Phase.ON_DELIVERY)
        assert stats.completed == stats.total
        assert stats.percent == 100.0
        assert machine.phase_stats(Phase.TEST_DRIVE).completed == 0


class TestFinalCompletion:
    """Test drive sign-off runs the completion flow once."""

    def sign_both(self, machine):
        decide_all(machine, Phase.ON_DELIVERY)
        machine.complete_phase(Phase.ON_DELIVERY, "Jane Doe")
        decide_all(machine, Phase.TEST_DRIVE)
        return machine.complete_phase(Phase.TEST_DRIVE, "Jane Doe")

    def test_completion_runs_flow(self, machine, flow, draft_dir):
        result = self.sign_both(machine)

        assert result.success is True
        assert machine.inspection.status == InspectionStatus.FINAL_COMPLETED
        assert flow.calls == [(machine.inspection.id, "en")]
        assert machine.draft_cache.has_draft() is False

    def test_completion_runs_once(self, machine, flow):
        first = self.sign_both(machine)
        second = machine.run_completion()

        assert second is first
        assert len(flow.calls) == 1

    def test_failed_flow_can_be_retried(self, machine, flow):
        flow.error = CompletionFailed(details="storage down")

        with pytest.raises(CompletionFailed):
            self.sign_both(machine)
        assert machine.last_error.code == "COMPLETION_FAILED"
        assert machine.inspection.status == InspectionStatus.FINAL_COMPLETED

        result = machine.run_completion()
        assert result.success is True
        assert len(flow.calls) == 2
        assert machine.last_error is None

    def test_language_passed_to_flow(self, machine, flow):
        machine.language = "de"
        self.sign_both(machine)
        assert flow.calls[0][1] == "de"

    def test_without_flow_returns_none(self, stored_inspection, repository):
        machine = InspectionStateMachine(stored_inspection, repository)
        decide_all(machine, Phase.ON_DELIVERY)
        machine.complete_phase(Phase.ON_DELIVERY, "sig")
        decide_all(machine, Phase.TEST_DRIVE)
        assert machine.complete_phase(Phase.TEST_DRIVE, "sig") is None


class TestPersistenceFailure:
    """Repository failures keep local state and raise the unsaved flag."""

    def test_unsaved_changes_then_save(self, stored_inspection, repository, draft_dir):
        broken = BrokenRepository(repository)
        cache = DraftCache(stored_inspection.order_number, base_dir=draft_dir)
        machine = InspectionStateMachine(stored_inspection, broken, draft_cache=cache)

        machine.update_item(0, 0, ItemPatch(status=ItemStatus.FAILED))

        assert machine.unsaved_changes is True
        assert machine.last_error.code == "PERSISTENCE_ERROR"
        assert machine.item(0, 0).status == ItemStatus.FAILED
        assert cache.load().inspection.sections[0].items[0].status == ItemStatus.FAILED

        broken.fail = False
        assert machine.save() is True
        assert machine.unsaved_changes is False
        assert repository.get_inspection(stored_inspection.id).failed_items == 1

    def test_final_state_must_be_saved(self, stored_inspection, repository, flow):
        broken = BrokenRepository(repository)
        broken.fail = False
        machine = InspectionStateMachine(stored_inspection, broken, completion_flow=flow)
        decide_all(machine, Phase.ON_DELIVERY)
        machine.complete_phase(Phase.ON_DELIVERY, "sig")
        decide_all(machine, Phase.TEST_DRIVE)

        broken.fail = True
        with pytest.raises(CompletionFailed):
            machine.complete_phase(Phase.TEST_DRIVE, "sig")
        assert flow.calls == []

    def test_new_inspection_created_on_first_persist(self, inspection, repository):
        machine = InspectionStateMachine(inspection, repository)
        assert machine.inspection.id is None

        machine.update_item(0, 0, ItemPatch(status=ItemStatus.PASSED))

        assert machine.inspection.id is not None
        assert repository.get_inspection(machine.inspection.id).completed_items == 1

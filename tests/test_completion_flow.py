"""
Tests for the report completion workflow (load -> render -> store -> record -> notify -> finalize).
"""

import pytest

from src.errors import CompletionFailed, StorageError
from src.orchestration import InspectionStateMachine, ReportCompletionFlow
from src.orchestration.state import validate_state
from src.schemas.models import InspectionStatus, ItemPatch, ItemStatus, Phase


def sign_off(machine):
    for phase in Phase:
        for s_idx, section in enumerate(machine.inspection.sections):
            if section.discovery_stage != phase:
                continue
            for i_idx, _ in enumerate(section.items):
                status = ItemStatus.FAILED if (s_idx, i_idx) == (0, 0) else ItemStatus.PASSED
                machine.update_item(s_idx, i_idx, ItemPatch(status=status))
        result = machine.complete_phase(phase, "data:image/png;base64,AAAA")
    return result


@pytest.fixture
def flow(repository, renderer, storage, mailer):
    return ReportCompletionFlow(repository=repository, renderer=renderer, storage=storage, mailer=mailer)


@pytest.fixture
def machine(stored_inspection, repository, flow):
    return InspectionStateMachine(stored_inspection, repository, completion_flow=flow)


class TestValidateState:
    """Completion state validation."""

    def test_valid(self):
        assert validate_state({"inspection_id": 1, "current_step": "load"}) == (True, None)

    def test_missing_fields(self):
        is_valid, error = validate_state({"inspection_id": 1})
        assert is_valid is False
        assert "current_step" in error

    def test_wrong_types(self):
        assert validate_state({"inspection_id": "1", "current_step": "x"})[0] is False
        assert validate_state({"inspection_id": 1, "current_step": "x", "pdf_bytes": "pdf"})[0] is False
        assert validate_state([])[0] is False


class TestReportCompletionFlow:
    """End-to-end completion with fake renderer, storage and mailer."""

    def test_full_completion(self, machine, repository, renderer, storage, mailer):
        result = sign_off(machine)

        assert result.success is True
        assert result.email_sent is True
        assert renderer.calls == 1
        assert len(storage.uploads) == 1

        file_name, mime_type, data = storage.uploads[0]
        assert file_name == "Tesla_Inspection_RN100200300.pdf"
        assert mime_type == "application/pdf"
        assert data.startswith(b"%PDF")

        assert mailer.report_calls == [("RN100200300", result.pdf_link, "en")]

        report = repository.get_report(result.report_id)
        assert report.drive_link == result.pdf_link
        assert report.email_sent is True

        record = repository.get_inspection(machine.inspection.id)
        assert record.status == InspectionStatus.FINAL_COMPLETED.value
        assert record.failed_items == 1

    def test_completion_is_not_repeated(self, machine, renderer, storage, mailer):
        sign_off(machine)
        machine.run_completion()

        assert renderer.calls == 1
        assert len(storage.uploads) == 1
        assert len(mailer.report_calls) == 1

    def test_partial_email_delivery(self, stored_inspection, repository, renderer, storage, make_mailer):
        mailer = make_mailer({"representative": True, "customer": False})
        flow = ReportCompletionFlow(repository=repository, renderer=renderer, storage=storage, mailer=mailer)
        machine = InspectionStateMachine(stored_inspection, repository, completion_flow=flow)

        result = sign_off(machine)

        assert result.success is True
        assert result.email_sent is False
        assert result.email_results == {"representative": True, "customer": False}
        assert repository.get_report(result.report_id).email_sent is False

    def test_render_failure_aborts(self, stored_inspection, repository, make_renderer, storage, mailer):
        renderer = make_renderer(error=RuntimeError("font missing"))
        flow = ReportCompletionFlow(repository=repository, renderer=renderer, storage=storage, mailer=mailer)
        machine = InspectionStateMachine(stored_inspection, repository, completion_flow=flow)

        with pytest.raises(CompletionFailed):
            sign_off(machine)

        assert storage.uploads == []
        assert mailer.report_calls == []
        assert repository.get_report_for_inspection(stored_inspection.id) is None

    def test_storage_failure_aborts_without_report(
        self, stored_inspection, repository, renderer, failing_storage, mailer
    ):
        flow = ReportCompletionFlow(
            repository=repository, renderer=renderer, storage=failing_storage, mailer=mailer
        )
        machine = InspectionStateMachine(stored_inspection, repository, completion_flow=flow)

        with pytest.raises(CompletionFailed) as exc_info:
            sign_off(machine)

        assert isinstance(exc_info.value.__cause__, StorageError)
        assert renderer.calls == 1
        assert mailer.report_calls == []
        assert repository.get_report_for_inspection(stored_inspection.id) is None

    def test_unknown_inspection(self, flow):
        with pytest.raises(CompletionFailed):
            flow.run(12345)

    def test_media_included(self, machine, repository, storage, renderer):
        item_id = machine.item(0, 0).id
        repository.create_media({
            "inspection_id": machine.inspection.id,
            "item_id": item_id,
            "media_type": "photo",
            "file_name": "p.jpg",
            "drive_link": "https://storage.test/p",
            "upload_status": "uploaded",
        })
        captured = {}
        original = renderer.render

        def render(inspection, media):
            captured["media"] = media
            return original(inspection, media)

        renderer.render = render
        sign_off(machine)

        assert [m.file_name for m in captured["media"]] == ["p.jpg"]

"""
Phase overview cards and the per-phase checklist view.
"""

import streamlit as st

from app.components.inspection_item import render_inspection_item
from app.components.signature_pad import render_signature_pad
from app.services.session_manager import get_state, notify, release_pipelines, set_state
from src.catalog import phase_info
from src.errors import CompletionFailed
from src.orchestration import InspectionSession
from src.schemas.models import Phase, PhaseStatus
from utils.config import config
from utils.logger import setup_logger, print_phase_summary

logger = setup_logger(__name__, level=config.log_level, component="UI")


def render_phase_card(session: InspectionSession, phase: Phase):
    """Progress card for one phase."""
    machine = session.machine
    stats = machine.phase_stats(phase)
    status = session.inspection.phase_status(phase)
    unlocked = machine.is_phase_unlocked(phase)

    with st.container(border=True):
        icon = "🔒" if not unlocked else ("✅" if status != PhaseStatus.PENDING else "📝")
        st.markdown(f"#### {icon} {phase.label}")
        st.progress(stats.percent / 100.0)
        st.caption(f"{stats.completed}/{stats.total} checked · {stats.failed} failed · {status.value}")

        completed_at = session.inspection.phase_completed_at(phase)
        if completed_at:
            st.caption(f"Signed {completed_at.strftime('%Y-%m-%d %H:%M')}")


def _complete_phase(session: InspectionSession, phase: Phase, signature: str):
    machine = session.machine
    release_pipelines()
    stats = machine.phase_stats(phase)

    with st.spinner("Completing inspection..." if phase == Phase.TEST_DRIVE else "Saving signature..."):
        try:
            result = machine.complete_phase(phase, signature)
        except CompletionFailed as e:
            set_state("completion_error", e.message)
            st.rerun()

    print_phase_summary(
        session.inspection.order_number, phase.value, stats.total, stats.completed, stats.failed
    )
    if result is not None:
        set_state("completion_result", result)
        set_state("completion_error", None)
        notify("🎉 Inspection completed. The report has been generated.", "success")
    else:
        notify(f"✅ {phase.label} phase completed", "success")
    st.rerun()


def render_phase_checklist(session: InspectionSession, phase: Phase):
    """Sections and items of a phase, followed by the sign-off form."""
    machine = session.machine
    info = phase_info(phase)

    if not machine.is_phase_unlocked(phase):
        st.info("🔒 Complete and sign the on-delivery inspection to unlock the test drive.")
        return

    if info.get("description"):
        st.caption(info["description"])

    locked = session.inspection.phase_status(phase) != PhaseStatus.PENDING

    if phase == Phase.TEST_DRIVE and not locked:
        km = st.number_input(
            "Test drive distance (km)",
            min_value=0.0,
            max_value=99.0,
            value=float(session.inspection.test_drive_km or 0.0),
            step=1.0,
            key="test_drive_km",
        )
        if km != (session.inspection.test_drive_km or 0.0):
            machine.set_test_drive_km(km)

    for s_idx, section in enumerate(session.inspection.sections):
        if section.discovery_stage != phase:
            continue
        st.subheader(section.name)
        for i_idx, _ in enumerate(section.items):
            render_inspection_item(session, s_idx, i_idx, locked=locked)

    st.divider()

    if phase == Phase.TEST_DRIVE and get_state("completion_error"):
        st.error(f"❌ {get_state('completion_error')}")
        if st.button("🔁 Retry report generation", key="retry_completion"):
            try:
                result = machine.run_completion()
            except CompletionFailed as e:
                set_state("completion_error", e.message)
                return
            set_state("completion_result", result)
            set_state("completion_error", None)
            st.rerun()

    if locked:
        st.success(f"✅ {phase.label} phase signed")
        return

    missing = machine.items_missing_evidence(phase)
    if missing:
        st.warning(f"📷 {len(missing)} failed item(s) have no photo or video yet.")

    if machine.can_complete_phase(phase):
        signature = render_signature_pad(phase.value, title=f"Sign off {phase.label}")
        if signature:
            _complete_phase(session, phase, signature)
    else:
        stats = machine.phase_stats(phase)
        st.caption(f"Check all items to sign off ({stats.total - stats.completed} remaining).")

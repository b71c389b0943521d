"""
Inspection header: vehicle information, overall progress and save state.
"""

import streamlit as st

from src.orchestration import InspectionSession
from src.schemas.models import InspectionStatus

STATUS_TEXT = {
    InspectionStatus.ON_DELIVERY_PENDING: ("🟡", "On-delivery inspection in progress"),
    InspectionStatus.ON_DELIVERY_COMPLETED: ("🔵", "On-delivery inspection signed"),
    InspectionStatus.TEST_DRIVE_PENDING: ("🟡", "Test drive inspection in progress"),
    InspectionStatus.TEST_DRIVE_COMPLETED: ("🔵", "Test drive inspection signed"),
    InspectionStatus.FINAL_COMPLETED: ("🟢", "Inspection completed"),
}


def render_inspection_header(session: InspectionSession):
    """Render vehicle details and overall counters."""
    inspection = session.inspection
    machine = session.machine

    emoji, text = STATUS_TEXT[inspection.status]
    st.title(f"🚗 Order {inspection.order_number}")
    st.caption(f"{emoji} {text}")

    if session.order.is_placeholder:
        st.info("ℹ️ Order details could not be loaded. Placeholder vehicle information is shown.")
    if session.draft_restored:
        st.info("💾 Unsaved work from a previous session was restored.")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.markdown("**VIN**")
        st.code(inspection.vin or "N/A", language=None)
    with col2:
        st.markdown("**Vehicle**")
        st.write(inspection.vehicle_model or "N/A")
    with col3:
        st.markdown("**Color**")
        st.write(inspection.vehicle_color or "N/A")
    with col4:
        st.markdown("**Customer**")
        st.write(inspection.customer_name or "N/A")

    totals = machine.totals
    progress = totals.completed_items / totals.total_items if totals.total_items else 0.0
    st.progress(progress, text=f"{totals.completed_items}/{totals.total_items} items checked")

    m1, m2, m3 = st.columns(3)
    m1.metric("Total Items", totals.total_items)
    m2.metric("Checked", totals.completed_items)
    m3.metric("Failed", totals.failed_items)

    if machine.unsaved_changes:
        col_warn, col_retry = st.columns([4, 1])
        with col_warn:
            st.warning("⚠️ Changes could not be saved. They are kept locally.")
        with col_retry:
            if st.button("🔁 Save now", key="retry_save"):
                if machine.save():
                    st.rerun()

"""
Streamlit UI for the Delivery Inspection System.
Order entry, two-phase checklist, evidence capture and sign-off.
"""

import streamlit as st
from pathlib import Path

# Add parent to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config import config
from utils.logger import setup_logger
from src.database import InspectionRepository, init_database
from src.errors import InputValidationError
from src.orchestration import InspectionSession
from src.schemas.models import Phase

from app.components.sidebar import render_sidebar
from app.components.inspection_header import render_inspection_header
from app.components.phase_overview import render_phase_card, render_phase_checklist
from app.services.session_manager import (
    clear_inspection_state,
    get_inspection_session,
    get_state,
    init_session_state,
    pop_notifications,
    update_state,
)

# Configure page
st.set_page_config(
    page_title=config.app_title,
    page_icon="🚗",
    layout="wide",
    initial_sidebar_state="expanded"
)

logger = setup_logger(__name__, level=config.log_level, component="UI")


@st.cache_resource
def _init_database() -> bool:
    return init_database()


# ============================================================================
# NOTIFICATIONS
# ============================================================================

def render_notifications():
    for level, message in pop_notifications():
        if level == "success":
            st.toast(message)
        elif level == "warning":
            st.warning(message)
        else:
            st.info(message)


# ============================================================================
# ORDER ENTRY
# ============================================================================

def order_entry_page():
    """Order number form shown before an inspection is open."""
    st.title(f"🚗 {config.app_title}")
    st.caption("Pre-delivery inspection: on delivery, then test drive")

    with st.form("order_form"):
        order_number = st.text_input("Order number", placeholder="RN123456789")
        submitted = st.form_submit_button("Start inspection", type="primary")

    if not submitted:
        return

    with st.spinner("Loading order..."):
        try:
            session = InspectionSession.open(order_number, language=get_state("language", "en"))
        except InputValidationError as e:
            st.error(f"❌ {e.message}")
            return

    update_state({
        "inspection_session": session,
        "order_number": session.inspection.order_number,
    })
    logger.info(f"Inspection session opened for {session.inspection.order_number}")
    st.rerun()


# ============================================================================
# INSPECTION
# ============================================================================

def render_completion_banner():
    result = get_state("completion_result")
    if result is None:
        return

    st.success("🎉 Inspection completed and report generated")
    if result.pdf_link:
        st.markdown(f"📄 [Open PDF report]({result.pdf_link})")
    if result.email_sent:
        st.caption("📧 Report emailed to the representative and customer")
    else:
        st.caption("📧 Report email was not delivered to every recipient")


def inspection_page():
    """Two-phase inspection with tabs per phase."""
    session = get_inspection_session()
    if session is None:
        order_entry_page()
        return

    render_inspection_header(session)
    render_completion_banner()

    col1, col2 = st.columns(2)
    with col1:
        render_phase_card(session, Phase.ON_DELIVERY)
    with col2:
        render_phase_card(session, Phase.TEST_DRIVE)

    test_drive_label = Phase.TEST_DRIVE.label
    if not session.machine.is_phase_unlocked(Phase.TEST_DRIVE):
        test_drive_label = f"🔒 {test_drive_label}"

    tab1, tab2 = st.tabs([f"📋 {Phase.ON_DELIVERY.label}", test_drive_label])
    with tab1:
        render_phase_checklist(session, Phase.ON_DELIVERY)
    with tab2:
        render_phase_checklist(session, Phase.TEST_DRIVE)


# ============================================================================
# HISTORY / SETTINGS
# ============================================================================

def inspection_history_page():
    """Recent inspections."""
    st.header("📋 Inspection History")

    repo = InspectionRepository()
    recent = repo.list_inspections(limit=20)

    if not recent:
        st.info("📋 No inspections yet. Start one from the Inspection page.")
        return

    st.dataframe(
        [{
            "Order": r.order_number,
            "Vehicle": r.vehicle_model,
            "Status": r.status.replace("_", " ").title(),
            "Checked": f"{r.completed_items}/{r.total_items}",
            "Failed": r.failed_items,
            "Updated": r.updated_at.strftime("%Y-%m-%d %H:%M") if r.updated_at else "",
        } for r in recent],
        use_container_width=True,
        hide_index=True,
    )


def settings_page():
    """Settings page."""
    st.title("⚙️ Settings")

    st.subheader("📷 Evidence Limits")
    for key, value in {
        "Max file size": f"{config.max_file_size_mb} MB",
        "Photos per item": config.max_photos_per_item,
        "Videos per item": config.max_videos_per_item,
        "Max video length": f"{config.max_video_seconds}s",
    }.items():
        st.write(f"**{key}:** {value}")

    st.subheader("💻 System Information")
    st.write(f"**Environment:** {config.environment.upper()}")
    st.write(f"**Database:** {config.database_path}")
    st.write(f"**Storage:** {config.storage_backend}")
    st.write(f"**Email:** {'SendGrid' if config.email_enabled else 'Disabled (log only)'}")

    st.divider()

    if st.button("🗑️ Close Current Inspection", type="secondary"):
        clear_inspection_state()
        st.success("✅ Inspection closed. Local draft is kept.")
        st.rerun()


# ============================================================================
# MAIN
# ============================================================================

def main():
    """Main application."""
    init_session_state()
    _init_database()

    with st.sidebar:
        page = render_sidebar()

    render_notifications()

    if page == "🏠 Inspection":
        inspection_page()
    elif page == "📋 Inspection History":
        inspection_history_page()
    else:
        settings_page()


if __name__ == "__main__":
    main()

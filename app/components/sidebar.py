"""
Sidebar components for the Delivery Inspection System.
System status, active inspection info and quick actions.
"""

import streamlit as st

from app.services.session_manager import (
    clear_inspection_state,
    get_inspection_session,
    get_state,
    set_state,
)
from src.integrations import SUPPORTED_LANGUAGES
from utils.config import config


def _status_row(label: str, online: bool, caption: str):
    col1, col2 = st.columns([1, 3])
    with col1:
        status_class = "status-online" if online else "status-offline"
        st.markdown(f'<span class="{status_class}">●</span>', unsafe_allow_html=True)
    with col2:
        st.markdown(f"**{label}**")
        st.caption(caption)


def render_system_status():
    """Render system status indicators in sidebar."""
    st.markdown("#### ┌─ SYSTEM STATUS ─────────────┐")

    _status_row("Database", True, config.database_path)
    _status_row(
        "Storage",
        True,
        "Google Drive" if config.storage_backend == "gdrive" else "Local files",
    )
    _status_row("Email", config.email_enabled, "SendGrid" if config.email_enabled else "Log only")
    _status_row("Order API", config.order_api_enabled, "Connected" if config.order_api_enabled else "Placeholder data")

    st.markdown("#### └──────────────────────────────┘")


def render_active_inspection():
    """Render active inspection information."""
    session = get_inspection_session()
    if session is None:
        st.markdown("**Status:** No active inspection")
        return

    inspection = session.inspection
    totals = session.machine.totals

    st.markdown("#### ┌─ ACTIVE INSPECTION ──────────┐")
    st.markdown(f"**Order:** `{inspection.order_number}`")
    st.markdown(f"**Inspection:** #{inspection.id}")
    st.markdown(f"**Items:** {totals.completed_items}/{totals.total_items}")
    st.markdown(f"**Status:** {inspection.status.value.replace('_', ' ').title()}")

    age = session.machine.draft_cache.draft_age() if session.machine.draft_cache else None
    if age is not None:
        st.caption(f"Local draft saved {int(age.total_seconds())}s ago")
    st.markdown("#### └──────────────────────────────┘")


def render_quick_actions():
    """Render quick action buttons."""
    st.markdown("#### ┌─ QUICK ACTIONS ─────────────┐")

    languages = list(SUPPORTED_LANGUAGES)
    language = st.selectbox(
        "Customer email language",
        languages,
        index=languages.index(get_state("language", "en")),
    )
    if language != get_state("language"):
        set_state("language", language)
        session = get_inspection_session()
        if session is not None:
            session.machine.language = language

    if get_inspection_session() is not None:
        if st.button("🔄 New Inspection", use_container_width=True):
            clear_inspection_state()
            st.rerun()

    st.markdown("#### └──────────────────────────────┘")


def render_sidebar():
    """Render complete sidebar."""
    st.title("🚗 Delivery Inspection")
    st.caption(f"v1.0.0 | {config.environment.upper()}")

    st.markdown("---")

    st.markdown("#### ┌─ NAVIGATION ─────────────────┐")
    page = st.radio(
        "Navigation",
        ["🏠 Inspection", "📋 Inspection History", "⚙️ Settings"],
        label_visibility="collapsed"
    )
    st.markdown("#### └──────────────────────────────┘")

    st.markdown("---")
    render_system_status()
    st.markdown("---")
    render_active_inspection()
    st.markdown("---")
    render_quick_actions()
    st.markdown("---")

    st.caption(f"Session: {str(get_state('session_id') or 'unknown')[:8]}")

    return page

"""
Session state management for the Delivery Inspection System.
Centralizes all session state initialization and management.
"""

import streamlit as st
import uuid
from typing import Any, Dict, Optional

from src.orchestration import InspectionSession


def init_session_state():
    """Initialize all required session state variables."""
    defaults = {
        # Core state
        "session_id": str(uuid.uuid4()),
        "initialized": True,
        "inspection_session": None,  # InspectionSession for the open order
        "order_number": None,

        # Capture pipelines by item id
        "pipelines": {},
        "active_item_id": None,

        # Completion
        "completion_result": None,
        "completion_error": None,

        # UI state
        "language": "en",
        "active_phase": "on_delivery",
        "notifications": [],
    }

    for key, default_value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = default_value


def get_state(key: str, default: Any = None) -> Any:
    """Get a session state value safely."""
    return st.session_state.get(key, default)


def set_state(key: str, value: Any):
    """Set a session state value."""
    st.session_state[key] = value


def update_state(updates: Dict[str, Any]):
    """Update multiple session state values at once."""
    for key, value in updates.items():
        st.session_state[key] = value


def get_inspection_session() -> Optional[InspectionSession]:
    return st.session_state.get("inspection_session")


def notify(message: str, level: str = "info"):
    """Queue a non-blocking notification shown on the next render."""
    st.session_state.setdefault("notifications", []).append((level, message))


def pop_notifications():
    notifications = st.session_state.get("notifications", [])
    st.session_state["notifications"] = []
    return notifications


def release_pipelines():
    """Close every capture pipeline so no camera stays open."""
    for pipeline in st.session_state.get("pipelines", {}).values():
        pipeline.close()
    st.session_state["pipelines"] = {}
    st.session_state["active_item_id"] = None


def clear_inspection_state():
    """Clear inspection-related state for a new order."""
    release_pipelines()
    update_state({
        "inspection_session": None,
        "order_number": None,
        "completion_result": None,
        "completion_error": None,
        "active_phase": "on_delivery",
    })


def get_session_summary() -> dict:
    """Get summary of current session for debugging."""
    session = get_inspection_session()
    return {
        "session_id": get_state("session_id"),
        "order_number": get_state("order_number"),
        "inspection_id": session.inspection.id if session else None,
        "open_pipelines": len(get_state("pipelines", {})),
    }

"""
State definition for the report completion workflow.
"""

from __future__ import annotations

from typing import TypedDict, Optional, Dict, Any, List, Tuple


def validate_state(state: CompletionState, required_fields: Optional[List[str]] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate completion state before a node runs.

    Args:
        state: Completion state to validate
        required_fields: Optional list of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(state, dict):
        return False, "State must be a dictionary"

    if required_fields is None:
        required_fields = ["inspection_id", "current_step"]

    missing_fields = [field for field in required_fields if field not in state or state[field] is None]
    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    if "inspection_id" in state and not isinstance(state["inspection_id"], int):
        return False, "inspection_id must be an integer"

    if state.get("pdf_bytes") is not None and not isinstance(state["pdf_bytes"], (bytes, bytearray)):
        return False, "pdf_bytes must be bytes"

    return True, None


class CompletionState(TypedDict):
    """State for the report completion workflow."""

    # Input
    inspection_id: int
    language: str

    # Request tracking
    start_time: float

    # Loaded aggregate
    order_number: Optional[str]
    inspection: Optional[Dict[str, Any]]  # Inspection as dict
    media: List[Dict[str, Any]]  # MediaAttachment dicts

    # Rendered and stored document
    pdf_bytes: Optional[bytes]
    pdf_file_name: Optional[str]
    drive_file_id: Optional[str]
    pdf_link: Optional[str]

    # Report record and notifications
    report_id: Optional[int]
    email_results: Dict[str, bool]
    email_sent: bool

    # Metadata
    processing_time: Optional[float]
    current_step: str

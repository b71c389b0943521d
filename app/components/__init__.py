"""
UI Components for the Delivery Inspection System.
"""

from app.components.sidebar import render_sidebar
from app.components.inspection_header import render_inspection_header
from app.components.phase_overview import render_phase_card, render_phase_checklist
from app.components.inspection_item import render_inspection_item
from app.components.media_capture import render_media_panel, render_media_list
from app.components.signature_pad import render_signature_pad, typed_signature_data_url

__all__ = [
    # Sidebar
    "render_sidebar",
    # Header
    "render_inspection_header",
    # Phases
    "render_phase_card",
    "render_phase_checklist",
    # Items
    "render_inspection_item",
    # Media
    "render_media_panel",
    "render_media_list",
    # Signature
    "render_signature_pad",
    "typed_signature_data_url",
]

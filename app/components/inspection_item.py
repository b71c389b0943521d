"""
Checklist item row: pass/fail controls, notes, guidance and evidence.
"""

import streamlit as st

from app.components.media_capture import render_media_list, render_media_panel
from src.errors import InputValidationError
from src.evidence import evidence_required
from src.orchestration import InspectionSession
from src.schemas.models import ItemPatch, ItemStatus

STATUS_ICONS = {
    ItemStatus.PENDING: "⚪",
    ItemStatus.PASSED: "✅",
    ItemStatus.FAILED: "❌",
}


def render_inspection_item(session: InspectionSession, section_index: int, item_index: int, locked: bool = False):
    """
    Render one checklist item.

    Args:
        session: Open inspection session
        section_index: Section position in the inspection
        item_index: Item position in the section
        locked: Phase already signed; controls are read-only
    """
    machine = session.machine
    item = machine.item(section_index, item_index)
    needs_evidence = evidence_required(item)

    title = f"{STATUS_ICONS[item.status]} {item.name}"
    if needs_evidence:
        title += " · 📷 evidence required"

    with st.expander(title, expanded=item.status == ItemStatus.FAILED and not locked):
        if item.description:
            st.markdown(item.description)
        if item.evidence_required:
            st.caption(f"Evidence: {item.evidence_required}")

        options = [s.value for s in ItemStatus]
        choice = st.radio(
            "Result",
            options,
            index=options.index(item.status.value),
            format_func=lambda v: {"pending": "Not checked", "passed": "Pass", "failed": "Fail"}[v],
            horizontal=True,
            key=f"status_{item.id}",
            disabled=locked,
        )
        if choice != item.status.value:
            machine.update_item(section_index, item_index, ItemPatch(status=choice))
            st.rerun()

        notes = st.text_area("Notes", value=item.notes, key=f"notes_{item.id}", disabled=locked)
        if notes != item.notes and not locked:
            try:
                machine.update_item(section_index, item_index, ItemPatch(notes=notes))
            except InputValidationError as e:
                st.error(e.message)

        if item.status == ItemStatus.FAILED:
            if needs_evidence:
                st.warning("⚠️ Please attach a photo or video of this issue.")

            if item.suggested_solutions:
                st.markdown("**Suggested solutions**")
                for solution in item.suggested_solutions:
                    st.markdown(f"- {solution}")

        if item.additional_links:
            st.markdown(" · ".join(f"[{link.title}]({link.url})" for link in item.additional_links))

        if locked:
            render_media_list(item)
        elif item.status != ItemStatus.PENDING or item.media:
            render_media_panel(session, item)

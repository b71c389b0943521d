"""
Media evidence panel: file picker, browser snapshot and device camera capture.
All paths go through the item's capture pipeline.
"""

from typing import Callable

import streamlit as st

from app.services.file_handler import format_size, read_uploaded_file
from app.services.session_manager import get_state, notify
from src.capture import CaptureState, MediaCapturePipeline
from src.errors import InspectionError
from src.orchestration import InspectionSession
from src.schemas.models import InspectionItem, MediaType
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="UI")


def get_pipeline(session: InspectionSession, item_id: str) -> MediaCapturePipeline:
    """Capture pipeline for an item. Rendering never touches another item's camera."""
    pipelines = get_state("pipelines", {})
    if item_id not in pipelines:
        pipelines[item_id] = session.pipeline_for(item_id)
        st.session_state["pipelines"] = pipelines
    return pipelines[item_id]


def activate_pipeline(session: InspectionSession, item_id: str) -> MediaCapturePipeline:
    """
    Make an item the one using the camera.

    Called when the user opens a camera for the item. The previously active
    item's capture is cancelled so only one camera is open at a time.
    """
    pipelines = get_state("pipelines", {})
    active_item_id = get_state("active_item_id")

    if active_item_id and active_item_id != item_id and active_item_id in pipelines:
        logger.debug(f"Releasing camera of item {active_item_id} for {item_id}")
        pipelines[active_item_id].cancel()

    st.session_state["active_item_id"] = item_id
    return get_pipeline(session, item_id)


def _run(action: Callable, success_message: str):
    try:
        result = action()
    except InspectionError as e:
        st.error(f"❌ {e.message}")
        return None
    notify(success_message, "success")
    return result


def render_media_list(item: InspectionItem):
    """List attached media with links."""
    if not item.media:
        st.caption("No media attached")
        return

    st.caption(f"📷 {item.photo_count}/{config.max_photos_per_item} photos · "
               f"🎥 {item.video_count}/{config.max_videos_per_item} video")
    for m in item.media:
        icon = "📷" if m.media_type == MediaType.PHOTO else "🎥"
        size = f" · {format_size(m.size_bytes)}" if m.size_bytes else ""
        if m.drive_link:
            st.markdown(f"{icon} [{m.file_name}]({m.drive_link}){size}")
        else:
            st.markdown(f"{icon} {m.file_name}{size} ({m.upload_status.value})")


def _render_file_picker(pipeline: MediaCapturePipeline, item: InspectionItem):
    uploaded = st.file_uploader(
        "Choose a photo or video",
        type=None,
        key=f"file_{item.id}_{len(item.media)}",
        help=f"Maximum file size: {config.max_file_size_mb}MB",
    )
    if uploaded is not None and st.button("📤 Attach file", key=f"attach_{item.id}"):
        data, content_type, file_name = read_uploaded_file(uploaded)
        if _run(lambda: pipeline.upload_file(data, content_type, file_name), f"✅ {file_name} attached"):
            st.rerun()


def _render_browser_camera(pipeline: MediaCapturePipeline, item: InspectionItem):
    snapshot = st.camera_input("Take a photo", key=f"snapshot_{item.id}_{len(item.media)}")
    if snapshot is not None:
        data, _, file_name = read_uploaded_file(snapshot)
        if _run(lambda: pipeline.upload_file(data, "image/jpeg", file_name), "✅ Photo attached"):
            st.rerun()


@st.fragment(run_every=1)
def _render_recording_status(pipeline: MediaCapturePipeline):
    """Live recording counter. Reruns the page once the time limit stopped the recording."""
    if pipeline.has_finished_recording:
        st.rerun()
    st.markdown(f"🔴 Recording… {pipeline.recording_seconds}s / {config.max_video_seconds}s")


def _render_device_camera(session: InspectionSession, pipeline: MediaCapturePipeline, item: InspectionItem):
    kind = MediaType(st.radio(
        "Capture",
        [MediaType.PHOTO.value, MediaType.VIDEO.value],
        horizontal=True,
        key=f"kind_{item.id}",
    ))

    if pipeline.state == CaptureState.IDLE:
        if st.button("📷 Start camera", key=f"start_{item.id}"):
            pipeline = activate_pipeline(session, item.id)
            if not pipeline.start_camera(kind):
                st.warning(f"⚠️ {pipeline.last_error.message}")
            else:
                st.rerun()
        return

    if pipeline.kind != kind:
        if st.button("🔄 Switch camera mode", key=f"switch_{item.id}"):
            activate_pipeline(session, item.id).switch_kind(kind)
            st.rerun()

    col1, col2 = st.columns(2)
    with col1:
        if pipeline.state == CaptureState.CAMERA_ACTIVE and pipeline.kind == MediaType.PHOTO:
            if st.button("📸 Capture photo", key=f"capture_{item.id}", type="primary"):
                if _run(pipeline.capture_photo, "✅ Photo captured"):
                    st.rerun()
        elif pipeline.state == CaptureState.CAMERA_ACTIVE and pipeline.kind == MediaType.VIDEO:
            if st.button("⏺️ Start recording", key=f"record_{item.id}", type="primary"):
                _run(pipeline.start_recording, "Recording started")
                st.rerun()
        elif pipeline.state == CaptureState.RECORDING_VIDEO:
            _render_recording_status(pipeline)
            if st.button("⏹️ Stop recording", key=f"stop_{item.id}", type="primary"):
                if _run(pipeline.stop_recording, "✅ Video attached"):
                    st.rerun()
    with col2:
        if st.button("✖️ Cancel", key=f"cancel_{item.id}"):
            pipeline.cancel()
            st.rerun()


def render_media_panel(session: InspectionSession, item: InspectionItem):
    """
    Render the evidence panel for one item.

    Args:
        session: Open inspection session
        item: Item receiving the media
    """
    pipeline = get_pipeline(session, item.id)
    if pipeline.has_finished_recording:
        if _run(pipeline.collect_recording, f"✅ Video attached ({config.max_video_seconds}s limit reached)"):
            st.rerun()

    render_media_list(item)

    if pipeline.last_error is not None:
        st.error(f"❌ {pipeline.last_error.message}")
        if pipeline.has_pending_retry and st.button("🔁 Retry upload", key=f"retry_{item.id}"):
            if _run(pipeline.retry_upload, "✅ Upload succeeded"):
                st.rerun()

    tab_file, tab_snapshot, tab_device = st.tabs(["📁 File", "📷 Snapshot", "🎥 Device camera"])
    with tab_file:
        _render_file_picker(pipeline, item)
    with tab_snapshot:
        _render_browser_camera(pipeline, item)
    with tab_device:
        _render_device_camera(session, pipeline, item)

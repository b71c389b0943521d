"""
Tests for camera ownership across item media panels.
Streamlit session state is replaced by a plain dict.
"""

import pytest
import streamlit as st

from app.components.media_capture import activate_pipeline, get_pipeline
from src.capture import CaptureState, MediaCapturePipeline
from src.schemas.models import MediaType


class PanelSession:
    """Builds pipelines the way InspectionSession.pipeline_for does, without uploads."""

    def __init__(self, camera, timer_cls):
        self.camera = camera
        self.timer_cls = timer_cls
        self.created = []

    def pipeline_for(self, item_id):
        self.created.append(item_id)
        return MediaCapturePipeline(
            item_id,
            media_provider=list,
            uploader=self.upload,
            camera=self.camera,
            timer_factory=self.timer_cls,
            probe_duration=False,
        )

    def upload(self, candidate):
        raise AssertionError("upload not expected")


@pytest.fixture
def session_state(monkeypatch):
    state = {"pipelines": {}, "active_item_id": None}
    monkeypatch.setattr(st, "session_state", state)
    return state


@pytest.fixture
def panel_session(camera, make_timer):
    return PanelSession(camera, make_timer)


class TestPipelineOwnership:
    """Rendering panels never releases another item's camera."""

    def test_pipeline_created_once_per_item(self, session_state, panel_session):
        first = get_pipeline(panel_session, "panel-gaps")
        assert get_pipeline(panel_session, "panel-gaps") is first
        assert panel_session.created == ["panel-gaps"]

    def test_rendering_other_item_keeps_camera(self, session_state, panel_session, camera):
        a = activate_pipeline(panel_session, "panel-gaps")
        a.start_camera(MediaType.PHOTO)

        get_pipeline(panel_session, "paint")
        again = get_pipeline(panel_session, "panel-gaps")

        assert again is a
        assert again.state == CaptureState.CAMERA_ACTIVE
        assert camera.streams[0].release_count == 0
        assert session_state["active_item_id"] == "panel-gaps"

    def test_recording_survives_render_pass(self, session_state, panel_session, make_recorder):
        a = activate_pipeline(panel_session, "panel-gaps")
        a.recorder_factory = make_recorder
        a.start_camera(MediaType.VIDEO)
        a.start_recording()

        for item_id in ("paint", "brakes", "panel-gaps"):
            get_pipeline(panel_session, item_id)

        assert a.state == CaptureState.RECORDING_VIDEO

    def test_activating_other_item_releases_camera(self, session_state, panel_session, camera):
        a = activate_pipeline(panel_session, "panel-gaps")
        a.start_camera(MediaType.PHOTO)

        b = activate_pipeline(panel_session, "paint")

        assert a.state == CaptureState.IDLE
        assert camera.streams[0].release_count == 1
        assert b.state == CaptureState.IDLE
        assert session_state["active_item_id"] == "paint"

    def test_reactivating_same_item_keeps_camera(self, session_state, panel_session):
        a = activate_pipeline(panel_session, "panel-gaps")
        a.start_camera(MediaType.PHOTO)

        assert activate_pipeline(panel_session, "panel-gaps") is a
        assert a.state == CaptureState.CAMERA_ACTIVE

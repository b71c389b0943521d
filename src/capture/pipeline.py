"""
Media capture/upload pipeline for a single checklist item.
Owns the camera lifecycle, recording timer and the validator -> upload path.
"""

import threading
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Tuple

from src.capture.devices import OpenCVCamera, OpenCVRecorder, encode_jpeg
from src.errors import (
    AppError,
    CameraUnavailable,
    CaptureBusy,
    CaptureStateError,
    FileTooLarge,
    InspectionError,
    PermissionDenied,
    to_app_error,
)
from src.evidence.validator import EvidenceValidator, build_candidate
from src.schemas.models import MediaAttachment, MediaCandidate, MediaType
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="CAPTURE")


class CaptureState(str, Enum):
    IDLE = "idle"
    CAMERA_ACTIVE = "camera_active"
    CAPTURING_PHOTO = "capturing_photo"
    RECORDING_VIDEO = "recording_video"


class RecordingTimer:
    """Calls `callback` once per `interval` seconds until cancelled."""

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="recording-timer", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.callback()

    def cancel(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2)


# (candidate) -> stored attachment
Uploader = Callable[[MediaCandidate], MediaAttachment]


class MediaCapturePipeline:
    """
    Capture and upload evidence for one item.

    States: idle -> camera_active -> (capturing_photo | recording_video) -> idle.
    The camera stream is released on every exit path. Only one upload may be
    in flight; further requests are rejected with CaptureBusy.
    """

    def __init__(
        self,
        item_id: str,
        media_provider: Callable[[], List[MediaAttachment]],
        uploader: Uploader,
        on_attached: Optional[Callable[[MediaAttachment], None]] = None,
        camera: Optional[OpenCVCamera] = None,
        recorder_factory: Callable[[], OpenCVRecorder] = OpenCVRecorder,
        validator: Optional[EvidenceValidator] = None,
        timer_factory: Callable[[Callable[[], None]], RecordingTimer] = RecordingTimer,
        probe_duration: bool = True,
    ):
        self.logger = logger
        self.item_id = item_id
        self.media_provider = media_provider
        self.uploader = uploader
        self.on_attached = on_attached
        self.camera = camera or OpenCVCamera()
        self.recorder_factory = recorder_factory
        self.validator = validator or EvidenceValidator()
        self.timer_factory = timer_factory
        self.probe_duration = probe_duration

        self.state = CaptureState.IDLE
        self.kind: Optional[MediaType] = None
        self.last_error: Optional[AppError] = None
        self.recording_seconds = 0

        self._stream = None
        self._recorder: Optional[OpenCVRecorder] = None
        self._timer: Optional[RecordingTimer] = None
        self._state_lock = threading.RLock()
        self._upload_lock = threading.Lock()
        self._pending_retry: Optional[Tuple[bytes, str, str, Optional[float]]] = None
        self._finished_recording: Optional[Tuple[bytes, float]] = None

    # ========================================================================
    # Camera lifecycle
    # ========================================================================

    def start_camera(self, kind: MediaType) -> bool:
        """
        Open the camera for a photo or a video.

        Returns:
            True if the camera is active; False when access was denied or no
            camera exists (last_error is set and the pipeline stays idle)
        """
        kind = MediaType(kind)
        with self._state_lock:
            if self.state == CaptureState.CAMERA_ACTIVE and self.kind == kind:
                return True
            if self.state != CaptureState.IDLE:
                self._teardown()

            try:
                self._stream = self.camera.open(
                    prefer_rear=True, audio=(kind == MediaType.VIDEO)
                )
            except (PermissionDenied, CameraUnavailable) as e:
                self.last_error = to_app_error(e, "start_camera")
                self.state = CaptureState.IDLE
                return False

            self.kind = kind
            self.state = CaptureState.CAMERA_ACTIVE
            self.last_error = None
            self.logger.debug(f"Camera active for {kind.value} on item {self.item_id}")
            return True

    def switch_kind(self, kind: MediaType) -> bool:
        """Release the current stream and reopen for another media kind."""
        with self._state_lock:
            self._teardown()
            return self.start_camera(kind)

    def _release_stream(self) -> None:
        if self._stream is not None:
            self._stream.release()
            self._stream = None

    def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._recorder is not None:
            self._recorder.discard()
            self._recorder = None
        self._release_stream()
        self.state = CaptureState.IDLE
        self.kind = None

    def cancel(self) -> None:
        """Abort any capture or recording and release the camera."""
        with self._state_lock:
            if self.state != CaptureState.IDLE:
                self.logger.debug(f"Capture cancelled in state {self.state.value}")
            self._teardown()
            self._finished_recording = None

    def close(self) -> None:
        self.cancel()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # ========================================================================
    # Photo
    # ========================================================================

    def capture_photo(self) -> MediaAttachment:
        """
        Grab a frame, stop the camera, then validate and upload the JPEG.

        Raises:
            CaptureStateError: Camera not active for photos
            CaptureBusy: Another upload is in flight
            EvidenceError / StorageError: Rejected or failed upload
        """
        with self._state_lock:
            if self.state != CaptureState.CAMERA_ACTIVE or self.kind != MediaType.PHOTO:
                raise CaptureStateError(details=f"state={self.state.value}")
            if self._upload_lock.locked():
                raise CaptureBusy()

            self.state = CaptureState.CAPTURING_PHOTO
            try:
                frame = self._stream.read_frame()
                data = encode_jpeg(frame)
            except InspectionError as e:
                self.last_error = to_app_error(e, "capture_photo")
                raise
            finally:
                self._teardown()

        file_name = f"photo_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.jpg"
        return self._submit(data, "image/jpeg", file_name)

    # ========================================================================
    # Video
    # ========================================================================

    def start_recording(self) -> None:
        with self._state_lock:
            if self.state != CaptureState.CAMERA_ACTIVE or self.kind != MediaType.VIDEO:
                raise CaptureStateError(details=f"state={self.state.value}")
            if self._upload_lock.locked():
                raise CaptureBusy()

            self._recorder = self.recorder_factory()
            self._recorder.start(self._stream)
            self.recording_seconds = 0
            self.state = CaptureState.RECORDING_VIDEO
            self._timer = self.timer_factory(self.tick)
            self._timer.start()
            self.logger.info(f"Recording started for item {self.item_id}")

    def tick(self) -> int:
        """
        Advance the recording clock by one second.

        At the maximum duration the recording is finalized and the camera
        released, but nothing is uploaded: the finished recording waits for
        collect_recording() on the caller's thread. Errors from the automatic
        stop are kept in last_error.
        """
        with self._state_lock:
            if self.state != CaptureState.RECORDING_VIDEO:
                return self.recording_seconds
            self.recording_seconds += 1
            elapsed = self.recording_seconds
            limit_reached = elapsed >= config.max_video_seconds

        if limit_reached:
            self.logger.info(f"Recording reached {elapsed}s limit, stopping")
            try:
                with self._state_lock:
                    self._finished_recording = self._finalize_recording()
            except InspectionError:
                pass  # already stopped, or recorded in last_error
        return elapsed

    def _finalize_recording(self) -> Tuple[bytes, float]:
        with self._state_lock:
            if self.state != CaptureState.RECORDING_VIDEO:
                raise CaptureStateError(details=f"state={self.state.value}")

            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            recorder, self._recorder = self._recorder, None
            duration = float(self.recording_seconds)
            try:
                data = recorder.stop()
            except InspectionError as e:
                self.last_error = to_app_error(e, "stop_recording")
                raise
            finally:
                self._teardown()
        return data, duration

    def _upload_recording(self, data: bytes, duration: float) -> MediaAttachment:
        if len(data) > self.validator.max_file_size_bytes:
            error = FileTooLarge(
                f"Recording too large: {len(data) / (1024 * 1024):.1f}MB"
            )
            self.last_error = to_app_error(error, "stop_recording")
            raise error

        file_name = f"video_{datetime.now().strftime('%Y%m%d_%H%M%S_%f')}.mp4"
        return self._submit(data, "video/mp4", file_name, duration)

    def stop_recording(self) -> MediaAttachment:
        """
        Finalize the recording, release the camera and upload the video.

        Raises:
            CaptureStateError: Not recording
            FileTooLarge: Recording exceeds the size limit (discarded)
        """
        data, duration = self._finalize_recording()
        return self._upload_recording(data, duration)

    @property
    def has_finished_recording(self) -> bool:
        return self._finished_recording is not None

    def collect_recording(self) -> Optional[MediaAttachment]:
        """Upload a recording stopped at the time limit. Returns None when there is none."""
        with self._state_lock:
            finished, self._finished_recording = self._finished_recording, None
        if finished is None:
            return None
        return self._upload_recording(*finished)

    # ========================================================================
    # Upload
    # ========================================================================

    def upload_file(self, data: bytes, content_type: str, file_name: str) -> MediaAttachment:
        """File-picker path: kind is inferred from the content type."""
        return self._submit(data, content_type, file_name)

    @property
    def has_pending_retry(self) -> bool:
        return self._pending_retry is not None

    def retry_upload(self) -> Optional[MediaAttachment]:
        """Retry the last failed upload. Returns None when nothing is pending."""
        if self._pending_retry is None:
            return None
        data, content_type, file_name, duration = self._pending_retry
        return self._submit(data, content_type, file_name, duration)

    def _submit(
        self,
        data: bytes,
        content_type: str,
        file_name: str,
        duration: Optional[float] = None,
    ) -> MediaAttachment:
        if not self._upload_lock.acquire(blocking=False):
            raise CaptureBusy()

        try:
            candidate = build_candidate(
                data, content_type, file_name,
                duration_seconds=duration,
                probe_duration=self.probe_duration,
            )
            error = self.validator.validate_attachment(self.media_provider(), candidate)
            if error is not None:
                self.last_error = to_app_error(error, "validate_attachment")
                self._pending_retry = None
                raise error

            try:
                attachment = self.uploader(candidate)
            except Exception as e:
                self.last_error = to_app_error(e, "upload_media")
                self._pending_retry = (
                    (data, content_type, file_name, duration) if self.last_error.retryable else None
                )
                raise

            self._pending_retry = None
            self.last_error = None
            if self.on_attached is not None:
                self.on_attached(attachment)
            return attachment

        finally:
            self._upload_lock.release()

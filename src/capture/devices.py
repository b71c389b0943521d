"""
OpenCV camera and recorder adapters used by the capture pipeline.
"""

import os
import tempfile
import threading
from typing import Optional

import cv2
import numpy as np

from src.errors import CameraUnavailable, PermissionDenied
from utils.config import config
from utils.logger import setup_logger

logger = setup_logger(__name__, level=config.log_level, component="CAMERA")


def encode_jpeg(frame: np.ndarray, quality: Optional[int] = None) -> bytes:
    """
    Encode a BGR frame as JPEG.

    Args:
        frame: Image array from the camera
        quality: JPEG quality 1-100 (defaults to PHOTO_JPEG_QUALITY)

    Returns:
        JPEG bytes
    """
    quality = quality or config.photo_jpeg_quality
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise CameraUnavailable("Failed to encode photo")
    return buffer.tobytes()


class CameraStream:
    """An open camera. Must be released exactly once."""

    def __init__(self, capture: cv2.VideoCapture, index: int, audio: bool = False):
        self._capture = capture
        self.index = index
        self.audio = audio
        self._lock = threading.Lock()
        self.active = True

    def read_frame(self) -> np.ndarray:
        with self._lock:
            if not self.active:
                raise CameraUnavailable("Camera stream already released")
            ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraUnavailable("Failed to read frame from camera")
        return frame

    @property
    def frame_size(self):
        width = int(self._capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or 640
        height = int(self._capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or 480
        return width, height

    def release(self) -> None:
        with self._lock:
            if self.active:
                self._capture.release()
                self.active = False
                logger.debug(f"Camera {self.index} released")


class OpenCVCamera:
    """Opens local cameras, preferring the rear-facing one when configured."""

    def __init__(self, index: Optional[int] = None, rear_index: Optional[int] = None):
        self.index = config.camera_index if index is None else index
        self.rear_index = config.camera_rear_index if rear_index is None else rear_index

    def _try_open(self, index: int) -> Optional[cv2.VideoCapture]:
        capture = cv2.VideoCapture(index)
        if capture.isOpened():
            return capture
        capture.release()
        return None

    def open(self, prefer_rear: bool = True, audio: bool = False) -> CameraStream:
        """
        Open a camera stream.

        Audio is requested only for video; OpenCV captures no audio track, so
        the flag is recorded on the stream and otherwise ignored.

        Raises:
            PermissionDenied: The OS refused access to the device
            CameraUnavailable: No camera could be opened
        """
        candidates = []
        if prefer_rear and self.rear_index is not None:
            candidates.append(self.rear_index)
        if self.index not in candidates:
            candidates.append(self.index)

        for index in candidates:
            try:
                capture = self._try_open(index)
            except PermissionError as e:
                raise PermissionDenied(details=str(e)) from e
            if capture is not None:
                logger.info(f"✓ Camera {index} opened (audio={'on' if audio else 'off'})")
                return CameraStream(capture, index, audio=audio)

        raise CameraUnavailable(details=f"tried camera indexes {candidates}")


class OpenCVRecorder:
    """Records frames from a stream into an MP4 file on a background thread."""

    def __init__(self, fps: Optional[float] = None):
        self.fps = fps or config.recording_fps
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._path: Optional[str] = None
        self._error: Optional[Exception] = None

    @property
    def recording(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, stream: CameraStream) -> None:
        fd, self._path = tempfile.mkstemp(suffix=".mp4")
        os.close(fd)
        width, height = stream.frame_size
        writer = cv2.VideoWriter(
            self._path, cv2.VideoWriter_fourcc(*"mp4v"), self.fps, (width, height)
        )
        self._stop.clear()
        self._error = None
        self._thread = threading.Thread(
            target=self._run, args=(stream, writer), name="video-recorder", daemon=True
        )
        self._thread.start()

    def _run(self, stream: CameraStream, writer: cv2.VideoWriter) -> None:
        interval = 1.0 / self.fps
        try:
            while not self._stop.is_set():
                writer.write(stream.read_frame())
                self._stop.wait(interval)
        except CameraUnavailable as e:
            self._error = e
        finally:
            writer.release()

    def _finish(self) -> Optional[str]:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5)
            self._thread = None
        path, self._path = self._path, None
        return path

    def stop(self) -> bytes:
        """Finalize the recording and return the encoded bytes."""
        path = self._finish()
        if path is None:
            return b""
        try:
            with open(path, "rb") as f:
                data = f.read()
        finally:
            os.unlink(path)
        if self._error is not None and not data:
            raise self._error
        return data

    def discard(self) -> None:
        path = self._finish()
        if path is not None and os.path.exists(path):
            os.unlink(path)

"""
Camera capture and media upload pipeline.
"""

from src.capture.devices import CameraStream, OpenCVCamera, OpenCVRecorder, encode_jpeg
from src.capture.pipeline import CaptureState, MediaCapturePipeline, RecordingTimer

__all__ = [
    "CameraStream",
    "OpenCVCamera",
    "OpenCVRecorder",
    "encode_jpeg",
    "CaptureState",
    "MediaCapturePipeline",
    "RecordingTimer",
]

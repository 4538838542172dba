"""
カメラモジュール
OpenCV camera access for the capture screen.

    open_camera()   acquire a device by facing preference
    Camera.read()   grab the current frame (native resolution)
    encode_jpeg()   frame -> data URL sent to Gemini and kept in the log
    mjpeg_frames()  multipart stream for the browser live preview

All of these block; the capture controller calls them through
asyncio.to_thread so the event loop stays free.
"""
import base64
import logging
import threading
import time
from typing import Iterator, Optional

import cv2
import numpy as np

import config
from modules.errors import CameraPermissionError

logger = logging.getLogger(__name__)


class Camera:
    """An open OpenCV device. Reads and release are serialized."""

    def __init__(self, capture: "cv2.VideoCapture", index: int):
        self._capture = capture
        self._lock = threading.Lock()
        self.index = index

    @property
    def is_open(self) -> bool:
        return self._capture is not None

    def read(self) -> Optional[np.ndarray]:
        """Return the current frame, or None if the device gave nothing."""
        with self._lock:
            if self._capture is None:
                return None
            ok, frame = self._capture.read()
        if not ok or frame is None:
            return None
        return frame

    def release(self) -> None:
        with self._lock:
            if self._capture is None:
                return
            self._capture.release()
            self._capture = None
        logger.info("Camera %d released", self.index)

    def __repr__(self):
        return f"Camera(index={self.index}, open={self.is_open})"


def _try_open(index: int) -> Optional["cv2.VideoCapture"]:
    capture = cv2.VideoCapture(index)
    if capture.isOpened():
        return capture
    capture.release()
    return None


def open_camera(facing: str = config.CAMERA_FACING) -> Camera:
    """
    Acquire a camera, preferring the one matching `facing`.

    Raises:
        CameraPermissionError: no device could be opened (denied or absent).
    """
    candidates = [config.CAMERA_INDEXES.get(facing, config.CAMERA_FALLBACK_INDEX)]
    if config.CAMERA_FALLBACK_INDEX not in candidates:
        candidates.append(config.CAMERA_FALLBACK_INDEX)

    for index in candidates:
        capture = _try_open(index)
        if capture is not None:
            logger.info("Camera %d opened (facing=%s)", index, facing)
            return Camera(capture, index)

    logger.error("Camera access failed for devices %s", candidates)
    raise CameraPermissionError(config.CAMERA_ERROR_MESSAGE)


def encode_jpeg(frame: np.ndarray, quality: int = config.JPEG_QUALITY) -> str:
    """Encode a BGR frame as a JPEG data URL at its own resolution."""
    ok, buffer = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), quality])
    if not ok:
        raise ValueError("JPEG encoding failed")
    encoded = base64.b64encode(buffer.tobytes()).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def mjpeg_frames(camera: Camera) -> Iterator[bytes]:
    """Yield multipart JPEG chunks until the camera is released."""
    while camera.is_open:
        frame = camera.read()
        if frame is None:
            break
        ok, buffer = cv2.imencode(
            ".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), config.PREVIEW_JPEG_QUALITY]
        )
        if ok:
            yield (
                b"--frame\r\nContent-Type: image/jpeg\r\n\r\n"
                + buffer.tobytes()
                + b"\r\n"
            )
        time.sleep(config.PREVIEW_FRAME_INTERVAL)

"""Tests for the OpenCV camera wrapper. cv2.VideoCapture is faked."""
import base64

import cv2
import numpy as np
import pytest

import config
from modules import camera
from modules.errors import CameraPermissionError


class FakeCapture:
    available = set()
    opened = []

    def __init__(self, index):
        self.index = index
        self.released = False
        self.frames = [np.full((3, 5, 3), 128, dtype=np.uint8)] * 2
        FakeCapture.opened.append(index)

    def isOpened(self):
        return self.index in FakeCapture.available

    def read(self):
        if not self.frames:
            return False, None
        return True, self.frames.pop()

    def release(self):
        self.released = True


@pytest.fixture
def fake_capture(monkeypatch):
    FakeCapture.available = set()
    FakeCapture.opened = []
    monkeypatch.setattr(camera.cv2, "VideoCapture", FakeCapture)
    return FakeCapture


class TestOpenCamera:

    def test_prefers_facing_device(self, fake_capture):
        fake_capture.available = {0, config.CAMERA_INDEXES["environment"]}
        cam = camera.open_camera("environment")
        assert cam.index == config.CAMERA_INDEXES["environment"]

    def test_falls_back(self, fake_capture):
        fake_capture.available = {config.CAMERA_FALLBACK_INDEX}
        cam = camera.open_camera("environment")
        assert cam.index == config.CAMERA_FALLBACK_INDEX

    def test_no_device_raises(self, fake_capture):
        with pytest.raises(CameraPermissionError) as exc_info:
            camera.open_camera("environment")
        assert exc_info.value.message == config.CAMERA_ERROR_MESSAGE


class TestCamera:

    def test_read_and_release(self):
        capture = FakeCapture(0)
        cam = camera.Camera(capture, 0)
        assert cam.read().shape == (3, 5, 3)
        cam.release()
        assert capture.released
        assert not cam.is_open
        assert cam.read() is None

    def test_read_failure_returns_none(self):
        capture = FakeCapture(0)
        capture.frames = []
        assert camera.Camera(capture, 0).read() is None

    def test_mjpeg_stops_when_frames_run_out(self, monkeypatch):
        monkeypatch.setattr(config, "PREVIEW_FRAME_INTERVAL", 0)
        cam = camera.Camera(FakeCapture(0), 0)
        chunks = list(camera.mjpeg_frames(cam))
        assert len(chunks) == 2
        assert chunks[0].startswith(b"--frame\r\nContent-Type: image/jpeg\r\n\r\n\xff\xd8")


class TestEncodeJpeg:

    def test_data_url_at_native_size(self):
        frame = np.zeros((48, 64, 3), dtype=np.uint8)
        data_url = camera.encode_jpeg(frame)
        assert data_url.startswith("data:image/jpeg;base64,")

        raw = base64.b64decode(data_url.split(",", 1)[1])
        assert raw[:2] == b"\xff\xd8"
        decoded = cv2.imdecode(np.frombuffer(raw, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == frame.shape

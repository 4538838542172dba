"""
Pytest fixtures for Vision Logger tests.

The camera and Gemini are replaced by in-process fakes; everything else
(controller, log, session loop, Flask routes) is the real thing.
"""

import numpy as np
import pytest

import config
from app import create_app
from modules.capture import CaptureController
from modules.credentials import CredentialHolder
from modules.errors import CameraPermissionError
from modules.models import AnalysisRecord
from modules.session import AppSession
from modules.storage import LogStore


IMAGE = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQ=="


class FakeCamera:
    def __init__(self):
        self.frame = np.zeros((4, 6, 3), dtype=np.uint8)
        self.released = False
        self.fail_reads = False
        self.reads = 0

    @property
    def is_open(self):
        return not self.released

    def read(self):
        self.reads += 1
        if self.fail_reads or self.released:
            return None
        return self.frame

    def release(self):
        self.released = True


class FakeCameraSource:
    """Stands in for modules.camera.open_camera."""

    def __init__(self):
        self.deny = False
        self.block = None  # threading.Event holding acquisition open
        self.facings = []
        self.cameras = []

    def __call__(self, facing):
        self.facings.append(facing)
        if self.block is not None:
            self.block.wait(timeout=5)
        if self.deny:
            raise CameraPermissionError(config.CAMERA_ERROR_MESSAGE)
        camera = FakeCamera()
        self.cameras.append(camera)
        return camera


class FakeAnalyzer:
    """
    Stands in for modules.vlm.analyze_image.

    Replies are consumed in order; the last one repeats. An exception
    instance in the list is raised instead of returned.
    """

    def __init__(self):
        self.replies = ["A red mug on a desk."]
        self.gate = None  # asyncio.Event holding the call in flight
        self.calls = []

    async def __call__(self, api_key, image):
        self.calls.append((api_key, image))
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def fake_encode(frame):
    return IMAGE


@pytest.fixture
def credentials():
    holder = CredentialHolder()
    holder.set("test-key")
    return holder


@pytest.fixture
def log():
    return LogStore()


@pytest.fixture
def camera_source():
    return FakeCameraSource()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def controller(credentials, log, camera_source, analyzer):
    return CaptureController(
        credentials, log,
        acquire=camera_source,
        analyze=analyzer,
        encode=fake_encode,
    )


@pytest.fixture
def make_record():
    def _make(description="A desk lamp.", image=IMAGE):
        return AnalysisRecord.create(image, description)
    return _make


@pytest.fixture
def session(camera_source, analyzer):
    def factory(credentials, log):
        return CaptureController(
            credentials, log,
            acquire=camera_source,
            analyze=analyzer,
            encode=fake_encode,
        )

    s = AppSession(controller_factory=factory)
    yield s
    s.close()


@pytest.fixture
def app(session):
    app = create_app(session)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def authed_client(client):
    client.post("/setup", data={"api_key": "test-key"})
    return client

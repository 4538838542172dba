"""
Capture controller: camera lifetime and the capture -> analyze -> log round trip.

    UNINITIALIZED --start ok--> STREAMING --capture--> ANALYZING
          |                        ^                      |
          +--start denied--> STREAM_ERROR                 |
                                   ^                      |
                                   +----frame lost--------+
    ANALYZING --success / AnalysisError--> STREAMING
    any state --stop--> UNINITIALIZED

Only one capture can be in flight: capture() is a no-op unless STREAMING.
Every start() opens a Lifetime that stop() cancels. Work that resumes after
its lifetime was cancelled changes nothing, so a late analysis result is
dropped instead of being appended to the log.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

import config
from modules import camera as camera_mod
from modules import vlm
from modules.credentials import CredentialHolder
from modules.errors import AnalysisError, CameraPermissionError, VisionLoggerError
from modules.models import AnalysisRecord, CaptureState
from modules.storage import LogStore

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str, str], Awaitable[str]]


class Lifetime:
    """Cancellation token for one start()/stop() span."""

    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class CaptureController:
    def __init__(
        self,
        credentials: CredentialHolder,
        log: LogStore,
        acquire: Callable[[str], "camera_mod.Camera"] = camera_mod.open_camera,
        analyze: AnalyzeFn = vlm.analyze_image,
        encode: Callable = camera_mod.encode_jpeg,
        facing: str = config.CAMERA_FACING,
    ):
        self._credentials = credentials
        self._log = log
        self._acquire = acquire
        self._analyze = analyze
        self._encode = encode
        self._facing = facing

        self.state = CaptureState.UNINITIALIZED
        self.camera_error: Optional[CameraPermissionError] = None
        self.last_error: Optional[VisionLoggerError] = None
        self._camera = None
        self._lifetime: Optional[Lifetime] = None

    @property
    def camera(self):
        return self._camera

    @property
    def can_capture(self) -> bool:
        return self.state is CaptureState.STREAMING

    def pop_error(self) -> Optional[VisionLoggerError]:
        """Return the transient analysis error once, then forget it."""
        error, self.last_error = self.last_error, None
        return error

    async def start(self) -> None:
        """Acquire the camera. Safe to call again; retries after STREAM_ERROR."""
        if self._lifetime is not None and self.state is not CaptureState.STREAM_ERROR:
            return
        if self._lifetime is not None:
            self._lifetime.cancel()

        lifetime = Lifetime()
        self._lifetime = lifetime
        self.state = CaptureState.UNINITIALIZED
        self.camera_error = None

        try:
            camera = await asyncio.to_thread(self._acquire, self._facing)
        except CameraPermissionError as exc:
            if not lifetime.cancelled:
                logger.warning("Camera unavailable: %s", exc.message)
                self.state = CaptureState.STREAM_ERROR
                self.camera_error = exc
            return

        if lifetime.cancelled:
            # stop() ran while we were waiting on the device
            await asyncio.to_thread(camera.release)
            return

        self._camera = camera
        self.state = CaptureState.STREAMING

    async def capture(self) -> Optional[AnalysisRecord]:
        """
        Grab one frame, describe it and log it.

        Returns the new record, or None if the capture was ignored, failed,
        or finished after the controller was stopped.
        """
        if self.state is not CaptureState.STREAMING:
            logger.debug("Capture ignored while %s", self.state.value)
            return None

        lifetime = self._lifetime
        camera = self._camera
        self.state = CaptureState.ANALYZING
        self.last_error = None

        try:
            frame = await asyncio.to_thread(camera.read)
        except Exception:
            logger.exception("Camera %s read failed", camera)
            frame = None
        if lifetime.cancelled:
            return None
        if frame is None:
            logger.error("Camera %s stopped delivering frames", camera)
            await self._lose_camera()
            return None

        try:
            image = self._encode(frame)
        except Exception:
            # cv2 reports encoder failures as cv2.error, not ValueError
            logger.exception("Could not encode captured frame")
            return self._analysis_failed(lifetime, AnalysisError(config.ANALYSIS_ERROR_MESSAGE))

        api_key = self._credentials.get() if self._credentials.is_set else ""
        try:
            description = await self._analyze(api_key, image)
        except AnalysisError as exc:
            return self._analysis_failed(lifetime, exc)
        except Exception:
            logger.exception("Analysis raised an unexpected error")
            return self._analysis_failed(lifetime, AnalysisError(config.ANALYSIS_ERROR_MESSAGE))

        if lifetime.cancelled:
            logger.info("Discarding analysis that finished after the camera was stopped")
            return None

        record = AnalysisRecord.create(image, description)
        self._log.append(record)
        self.state = CaptureState.STREAMING
        return record

    async def stop(self) -> None:
        """Leave the capture screen: release the camera, cancel the lifetime."""
        lifetime, self._lifetime = self._lifetime, None
        if lifetime is not None:
            lifetime.cancel()
        camera, self._camera = self._camera, None

        self.state = CaptureState.UNINITIALIZED
        self.camera_error = None
        self.last_error = None

        if camera is not None:
            await asyncio.to_thread(camera.release)

    def _analysis_failed(self, lifetime: Lifetime, error: AnalysisError) -> None:
        if lifetime.cancelled:
            return None
        logger.info("Analysis failed; ready to retry")
        self.last_error = error
        self.state = CaptureState.STREAMING
        return None

    async def _lose_camera(self) -> None:
        camera, self._camera = self._camera, None
        self.state = CaptureState.STREAM_ERROR
        self.camera_error = CameraPermissionError(config.CAMERA_LOST_MESSAGE)
        if camera is not None:
            await asyncio.to_thread(camera.release)

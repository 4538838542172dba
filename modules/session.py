"""
Application session: everything that lives for one run of the program.

The session owns the API key, the log and the capture controller, and
the one asyncio event loop on which all of their state changes happen.
Flask handles requests on worker threads, so routes hand coroutines to
that loop with `session.run(...)` and wait for the answer.
"""
import asyncio
import logging
import threading
from typing import Any, Awaitable, Optional

from modules.capture import CaptureController
from modules.credentials import CredentialHolder
from modules.models import AppView
from modules.storage import LogStore

logger = logging.getLogger(__name__)


class SessionLoop:
    """An asyncio loop running on its own daemon thread."""

    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._ready.clear()
        self._thread = threading.Thread(target=self._run, name="session-loop", daemon=True)
        self._thread.start()
        self._ready.wait()

    def _run(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    def run(self, coro: Awaitable) -> Any:
        """Run a coroutine on the loop and block the calling thread for it."""
        if not self.running:
            raise RuntimeError("Session loop is not running")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def stop(self) -> None:
        if not self.running:
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join()
        self._thread = None


class AppSession:
    def __init__(self, controller_factory=CaptureController):
        self.credentials = CredentialHolder()
        self.log = LogStore()
        self.controller = controller_factory(self.credentials, self.log)
        self.loop = SessionLoop()

    def open(self) -> "AppSession":
        self.loop.start()
        return self

    def close(self) -> None:
        """Release the camera and stop the loop. Nothing is saved."""
        if self.loop.running:
            self.loop.run(self.controller.stop())
            self.loop.stop()
        logger.info("Session closed")

    def run(self, coro: Awaitable) -> Any:
        return self.loop.run(coro)

    async def capture(self):
        """One capture plus its transient error, if any, as (record, error)."""
        record = await self.controller.capture()
        return record, self.controller.pop_error()

    async def clear_log(self) -> None:
        self.log.clear()

    def resolve_view(self, requested: AppView) -> AppView:
        """No key, no access: everything but setup routes back to setup."""
        if not self.credentials.is_set:
            return AppView.SETUP
        if requested is AppView.SETUP:
            return AppView.CAPTURE
        return requested

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()

"""Capture session lifecycle; hardware hooks run on one worker thread per session."""
import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from enum import Enum

from snapsort.orchestrator.errors import (
    CaptureBusy, CaptureFailed, DeviceUnavailable, ScanError,
)


class SessionState(str, Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURING = "configuring"
    READY = "ready"
    CAPTURING = "capturing"
    STOPPED = "stopped"


class CaptureSession(ABC):
    name = "camera"

    def __init__(self, status_store):
        self.status = status_store
        self.state = SessionState.UNCONFIGURED
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"{self.name}-session")

    @abstractmethod
    def _open(self) -> None:
        """Acquire device + output sink. Raise DeviceUnavailable on failure."""
        ...

    @abstractmethod
    def _grab(self) -> bytes:
        ...

    @abstractmethod
    def _release(self) -> None:
        ...

    async def _run(self, fn):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn)

    async def configure(self):
        if self.state in (SessionState.READY, SessionState.CAPTURING):
            return
        if self.state is SessionState.CONFIGURING:
            raise CaptureBusy("Camera is still starting. Try again.")
        self.state = SessionState.CONFIGURING
        self.status.log(f"{self.name}: configuring")
        try:
            await self._run(self._open)
        except ScanError:
            self._configure_failed()
            raise
        except Exception as e:
            self._configure_failed()
            self.status.log(f"{self.name}: configure error {type(e).__name__}: {e}")
            raise DeviceUnavailable() from e
        if self.state is SessionState.STOPPED:
            # stop() arrived mid-configure; its release is queued behind _open
            return
        self.state = SessionState.READY
        self.status.log(f"{self.name}: ready")

    def _configure_failed(self):
        if self.state is SessionState.CONFIGURING:
            self.state = SessionState.UNCONFIGURED

    async def capture_one_photo(self) -> bytes:
        if self.state in (SessionState.CAPTURING, SessionState.CONFIGURING):
            self.status.log(f"{self.name}: capture rejected, session {self.state.value}")
            raise CaptureBusy()
        if self.state in (SessionState.UNCONFIGURED, SessionState.STOPPED):
            await self.configure()
            if self.state is not SessionState.READY:
                self.status.log(f"{self.name}: stopped while configuring, capture abandoned")
                raise DeviceUnavailable("Camera session was stopped.")

        self.state = SessionState.CAPTURING
        try:
            data = await self._run(self._grab)
        except ScanError:
            raise
        except Exception as e:
            self.status.log(f"{self.name}: capture error {type(e).__name__}: {e}")
            raise CaptureFailed() from e
        finally:
            # stop() may have landed while we were waiting on the worker
            if self.state is SessionState.CAPTURING:
                self.state = SessionState.READY

        if not data:
            raise CaptureFailed("Camera returned an empty photo. Try again.")
        self.status.log(f"{self.name}: captured {len(data)} bytes")
        return data

    async def stop(self):
        if self.state in (SessionState.STOPPED, SessionState.UNCONFIGURED):
            self.state = SessionState.STOPPED
            return
        self.state = SessionState.STOPPED
        await self._run(self._release)
        self.status.log(f"{self.name}: stopped")

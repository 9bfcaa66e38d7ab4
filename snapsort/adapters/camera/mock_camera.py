"""Mock capture session: serves JPEGs from a directory, or a synthetic frame."""
import random
import time
from pathlib import Path

import cv2
import numpy as np

from snapsort.adapters.camera.base import CaptureSession
from snapsort.orchestrator.errors import CaptureFailed, DeviceUnavailable


def synthetic_jpeg(width: int = 64, height: int = 48, quality: int = 90) -> bytes:
    """A small grey-gradient JPEG, good enough to flow through the pipeline."""
    row = np.linspace(0, 255, width, dtype=np.uint8)
    img = np.dstack([np.tile(row, (height, 1))] * 3)
    ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, quality])
    if not ok:
        raise RuntimeError("could not encode synthetic frame")
    return buf.tobytes()


class MockCaptureSession(CaptureSession):
    name = "mock_camera"

    def __init__(self, status_store, image_dir: str | None = None, frames: list[bytes] | None = None,
                 delay_s: float = 0.0, fail_open: bool = False, fail_capture: bool = False):
        super().__init__(status_store)
        self._image_dir = Path(image_dir) if image_dir else None
        self._frames = list(frames) if frames is not None else None
        self.delay_s = delay_s
        self.fail_open = fail_open
        self.fail_capture = fail_capture
        self.open_calls = 0
        self.grab_calls = 0
        self.release_calls = 0

    def _open(self):
        self.open_calls += 1
        if self.fail_open:
            self.status.log("mock_camera: simulated missing device")
            raise DeviceUnavailable()

    def _grab(self) -> bytes:
        self.grab_calls += 1
        if self.delay_s:
            time.sleep(self.delay_s)
        if self.fail_capture:
            self.status.log("mock_camera: simulated sensor error")
            raise CaptureFailed()
        if self._frames is not None:
            if not self._frames:
                return b""
            return self._frames[(self.grab_calls - 1) % len(self._frames)]
        if self._image_dir is not None:
            jpegs = sorted(self._image_dir.glob("*.jpg"))
            if jpegs:
                chosen = random.choice(jpegs)
                self.status.log(f"mock_camera: serving {chosen.name}")
                return chosen.read_bytes()
            self.status.log("mock_camera: no images found, using synthetic frame")
        return synthetic_jpeg()

    def _release(self):
        self.release_calls += 1

"""
OpenCV webcam capture session.
CAMERA_INDEX (Settings.camera_index) selects the webcam device.
"""
import cv2
from snapsort.adapters.camera.base import CaptureSession
from snapsort.orchestrator.errors import CaptureFailed, DeviceUnavailable

# frames read and thrown away after opening so auto-exposure can settle
_WARMUP_FRAMES = 3


class CV2CaptureSession(CaptureSession):
    name = "cv2_camera"

    def __init__(self, status_store, index: int = 0, jpeg_quality: int = 95):
        super().__init__(status_store)
        self._index = index
        self._jpeg_quality = jpeg_quality
        self._cap = None

    def _open(self):
        if self._cap is not None and self._cap.isOpened():
            return
        cap = cv2.VideoCapture(self._index)
        if not cap.isOpened():
            cap.release()
            self.status.log(f"cv2_camera: failed to open device {self._index}")
            raise DeviceUnavailable()
        for _ in range(_WARMUP_FRAMES):
            cap.read()
        self._cap = cap

    def _grab(self) -> bytes:
        if self._cap is None or not self._cap.isOpened():
            raise CaptureFailed("Camera is not running. Try again.")
        ret, frame = self._cap.read()
        if not ret or frame is None:
            self.status.log("cv2_camera: frame capture failed")
            raise CaptureFailed()
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality])
        if not ok:
            self.status.log("cv2_camera: jpeg encode failed")
            raise CaptureFailed()
        return buf.tobytes()

    def _release(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

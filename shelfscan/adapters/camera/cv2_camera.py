"""
OpenCV webcam capture adapter.
CAMERA_INDEX env var (default 0) selects the webcam device.
"""
import os
import threading
import cv2
from shelfscan.adapters.camera.base import FrameSource

class CV2Camera(FrameSource):
    def __init__(self, status_store, index: int | None = None, jpeg_quality: int = 85):
        self.status = status_store
        self._index = index if index is not None else int(os.getenv("CAMERA_INDEX", "0"))
        self._quality = jpeg_quality
        self._cap = None
        # capture_bytes runs in worker threads; VideoCapture is not thread-safe
        self._lock = threading.Lock()

    def _open(self):
        if self._cap is None or not self._cap.isOpened():
            self._cap = cv2.VideoCapture(self._index)
            if not self._cap.isOpened():
                self.status.log(f"cv2_camera: failed to open device {self._index}")

    def is_ready(self) -> bool:
        with self._lock:
            self._open()
            return self._cap is not None and self._cap.isOpened()

    def capture_bytes(self) -> bytes | None:
        with self._lock:
            self._open()
            if self._cap is None or not self._cap.isOpened():
                return None
            ret, frame = self._cap.read()
        if not ret or frame is None:
            self.status.log("cv2_camera: frame capture failed")
            return None
        ok, buf = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._quality])
        if not ok:
            return None
        return bytes(buf)

    def release(self):
        with self._lock:
            if self._cap and self._cap.isOpened():
                self._cap.release()
            self._cap = None

"""
Uploaded still image as a frame source.

The image is decoded once up front and re-encoded as JPEG, whatever format
it arrived in; a file OpenCV cannot decode never becomes ready, so detection
on it is skipped.
"""
import numpy as np
import cv2
from shelfscan.adapters.camera.base import FrameSource

class UploadedImageSource(FrameSource):
    def __init__(self, status_store, image_bytes: bytes, jpeg_quality: int = 90):
        self.status = status_store
        self._quality = jpeg_quality
        self._bytes: bytes | None = None
        self._ready = False
        self._decode(image_bytes)

    def _decode(self, image_bytes: bytes):
        arr = np.frombuffer(image_bytes or b"", dtype=np.uint8)
        img = cv2.imdecode(arr, cv2.IMREAD_COLOR) if arr.size else None
        if img is None:
            self.status.log("upload_source: image could not be decoded")
            return
        ok, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, self._quality])
        if not ok:
            self.status.log("upload_source: jpeg encode failed")
            return
        h, w = img.shape[:2]
        self._bytes = bytes(buf)
        self._ready = True
        self.status.log(f"upload_source: decoded {w}x{h}")

    def is_ready(self) -> bool:
        return self._ready and self._bytes is not None

    def capture_bytes(self) -> bytes | None:
        return self._bytes if self.is_ready() else None

    def release(self):
        self._bytes = None
        self._ready = False

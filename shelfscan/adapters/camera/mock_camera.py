"""Mock camera: serves a random image from MOCK_IMAGES_DIR, or a blank gray frame."""
import os
import random
from pathlib import Path
import cv2
import numpy as np
from shelfscan.adapters.camera.base import FrameSource

class MockCamera(FrameSource):
    def __init__(self, status_store, images_dir: str | None = None):
        self.status = status_store
        self.images_dir = Path(images_dir or os.getenv("MOCK_IMAGES_DIR", "samples"))

    def capture_bytes(self) -> bytes | None:
        jpegs = sorted(self.images_dir.glob("*.jpg")) if self.images_dir.is_dir() else []
        if jpegs:
            return random.choice(jpegs).read_bytes()
        return _blank_jpeg()


def _blank_jpeg(width: int = 320, height: int = 240) -> bytes | None:
    frame = np.full((height, width, 3), 128, dtype=np.uint8)
    ok, buf = cv2.imencode(".jpg", frame)
    return bytes(buf) if ok else None

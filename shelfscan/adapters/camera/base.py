from abc import ABC, abstractmethod


class FrameSource(ABC):
    def is_ready(self) -> bool:
        """May block (device probe); callers on the event loop use a worker thread."""
        return True

    @abstractmethod
    def capture_bytes(self) -> bytes | None:
        """Capture one frame. Returns JPEG bytes or None on failure."""
        ...

    def release(self):
        """Free the underlying device or buffer."""
        pass

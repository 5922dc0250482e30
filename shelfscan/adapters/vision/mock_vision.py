import random
from shelfscan.adapters.vision.base import DetectorAdapter, TextRecognizerAdapter
from shelfscan.orchestrator.contracts import Detection

LABELS = ["apple", "banana", "bottle", "cup", "book"]
SAMPLE_TEXT = "Organic Honey\nNet Wt 12oz"


class MockVision(DetectorAdapter, TextRecognizerAdapter):
    """Offline stand-in for both engines: random grocery labels, canned label text."""

    def __init__(self, status_store, labels: list[str] | None = None, text: str = SAMPLE_TEXT):
        self.status = status_store
        self.labels = labels or LABELS
        self.text = text

    async def detect(self, image_bytes: bytes) -> list[Detection]:
        label = random.choice(self.labels)
        self.status.log(f"mock_vision: {label}")
        return [Detection(label=label, confidence=0.9)]

    async def read_text(self, image_bytes: bytes) -> str:
        self.status.log("mock_vision: read_text")
        return self.text

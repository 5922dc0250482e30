from shelfscan.orchestrator.errors import EngineNotReady


class DetectorAdapter:
    def is_ready(self) -> bool:
        return True

    async def detect(self, image_bytes: bytes):
        """Return a list of Detection for the image, in any order."""
        raise EngineNotReady(type(self).__name__)


class TextRecognizerAdapter:
    async def read_text(self, image_bytes: bytes) -> str:
        """Return raw recognized text; may be empty or multi-line."""
        raise NotImplementedError

"""
Detector gateway: the single entry point the scan controller uses for
inference.

detect_objects never fails; an engine that is not up yet, or that errors,
yields no detections for that frame. recognize_text surfaces every engine
failure as RecognitionError so the caller can speak a fallback.
"""
from shelfscan.orchestrator.contracts import Detection
from shelfscan.orchestrator.errors import EngineNotReady, RecognitionError


class DetectorGateway:
    def __init__(self, detector, recognizer, status_store):
        self.detector = detector
        self.recognizer = recognizer
        self.status = status_store

    @property
    def is_ready(self) -> bool:
        return self.detector.is_ready()

    async def detect_objects(self, frame: bytes) -> list[Detection]:
        if not self.detector.is_ready():
            return []
        try:
            found = await self.detector.detect(frame)
        except EngineNotReady:
            return []
        except Exception as e:
            self.status.log(f"gateway: detect error {type(e).__name__}: {e}")
            return []
        return sorted(found or [], key=lambda d: d.confidence, reverse=True)

    async def recognize_text(self, frame: bytes) -> str:
        try:
            text = await self.recognizer.read_text(frame)
        except RecognitionError:
            raise
        except Exception as e:
            raise RecognitionError(f"{type(e).__name__}: {e}") from e
        return text or ""

"""
Claude vision back end (zero-shot, no model files needed).

Sends the frame to Claude via the Anthropic API, once to list the objects in
view with a confidence each, and once to transcribe visible text.

Requires ANTHROPIC_API_KEY in environment (shelfscan/.env or system env).
Without it the adapter reports not ready and detection yields nothing.
"""
import base64
import json
import os
import re
import anthropic
from shelfscan.adapters.vision.base import DetectorAdapter, TextRecognizerAdapter
from shelfscan.orchestrator.contracts import Detection
from shelfscan.orchestrator.errors import EngineNotReady, RecognitionError

CLAUDE_VISION_MODEL = os.getenv("CLAUDE_VISION_MODEL", "claude-haiku-4-5-20251001")

_DETECT_PROMPT = (
    "You are an object detector for a shopping assistant used by blind people. "
    "List the distinct everyday objects clearly visible in this image, most prominent first.\n\n"
    "Reply with ONLY a JSON array, nothing else, in this exact form:\n"
    '[{"label": "apple", "confidence": 0.92}]\n'
    "Use short lowercase common nouns for labels and a confidence between 0 and 1. "
    "Reply [] if nothing is recognizable."
)

_READ_PROMPT = (
    "Transcribe all text visible in this image. Do not add any extra information, "
    "comments, or formatting. Do not try to complete any partial sentences. Just "
    "return the exact text you see, one line per printed line. "
    "Reply with an empty message if there is no text."
)

_JSON_ARRAY = re.compile(r"\[.*\]", re.DOTALL)


class ClaudeVision(DetectorAdapter, TextRecognizerAdapter):
    def __init__(self, status_store, api_key: str | None = None, model: str = CLAUDE_VISION_MODEL):
        self.status = status_store
        self.model = model
        self._client = None
        self._ready = False

        api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            self.status.log("claude_vision: ANTHROPIC_API_KEY not set")
            return
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._ready = True
        self.status.log(f"claude_vision: ready ({self.model})")

    def is_ready(self) -> bool:
        return self._ready

    async def detect(self, image_bytes: bytes) -> list[Detection]:
        if not self._ready:
            raise EngineNotReady("claude_vision")
        raw = await self._ask(image_bytes, _DETECT_PROMPT, max_tokens=256)
        detections = self._parse_detections(raw)
        if detections:
            top = detections[0]
            self.status.log(f"claude_vision: → {top.label} (conf={top.confidence:.2f}) of {len(detections)}")
        return detections

    async def read_text(self, image_bytes: bytes) -> str:
        if not self._ready:
            raise RecognitionError("claude_vision: ANTHROPIC_API_KEY not set")
        try:
            text = await self._ask(image_bytes, _READ_PROMPT, max_tokens=512)
        except anthropic.APIError as e:
            raise RecognitionError(f"claude_vision: API error: {e}") from e
        self.status.log(f"claude_vision: read {len(text)} chars")
        return text

    async def _ask(self, image_bytes: bytes, prompt: str, max_tokens: int) -> str:
        b64 = base64.standard_b64encode(image_bytes).decode("utf-8")
        message = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": "image/jpeg",
                                "data": b64,
                            },
                        },
                        {"type": "text", "text": prompt},
                    ],
                }
            ],
        )
        parts = [block.text for block in message.content if getattr(block, "type", "") == "text"]
        return "".join(parts).strip()

    def _parse_detections(self, raw: str) -> list[Detection]:
        match = _JSON_ARRAY.search(raw)
        if not match:
            self.status.log(f"claude_vision: unexpected response '{raw[:120]}'")
            return []
        try:
            items = json.loads(match.group(0))
        except json.JSONDecodeError:
            self.status.log(f"claude_vision: bad JSON '{raw[:120]}'")
            return []

        detections = []
        for item in items:
            if not isinstance(item, dict) or not item.get("label"):
                continue
            try:
                conf = float(item.get("confidence", 0.0))
            except (TypeError, ValueError):
                continue
            detections.append(Detection(label=str(item["label"]).strip().lower(),
                                        confidence=min(1.0, max(0.0, conf))))
        return detections

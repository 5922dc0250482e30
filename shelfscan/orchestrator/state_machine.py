import asyncio
from functools import partial
from shelfscan.orchestrator.contracts import ScanMode, Detection, UploadedImage, ScanStatus
from shelfscan.orchestrator.announcement_gate import AnnouncementGate
from shelfscan.orchestrator.frame_poller import FramePoller, DEFAULT_INTERVAL_MS
from shelfscan.orchestrator.errors import SourceUnavailable, ERR_UNKNOWN
from shelfscan.adapters.tts import lines as L

CONFIDENCE_THRESHOLD = 0.70


class ScanController:
    """
    Owns the scan mode, the frame poller and the announcement gate.

    Every transition bumps `epoch`; async work captures the epoch it started
    under and drops its result if the controller has moved on since. None of
    the public operations raise. Gateway calls are serialized, so a
    superseded call still settling holds off the next one.
    """

    def __init__(self, gateway, speech, history, status_store, live_source,
                 interval_ms: int = DEFAULT_INTERVAL_MS,
                 threshold: float = CONFIDENCE_THRESHOLD,
                 first_line_only: bool = True):
        self.gateway = gateway
        self.speech = speech
        self.history = history
        self.status = status_store
        self.live_source = live_source
        self.interval_ms = interval_ms
        self.threshold = threshold
        self.first_line_only = first_line_only

        self.gate = AnnouncementGate(speech, status_store)
        self.mode = ScanMode.IDLE
        self.epoch = 0
        self.label = ""
        self.upload_label = ""
        self._poller: FramePoller | None = None
        self._upload: UploadedImage | None = None
        self._tasks: set[asyncio.Task] = set()
        # One gateway call at a time, including superseded ones still settling
        self._inference = asyncio.Lock()

    # ── Public operations ──────────────────────────────────────────────────

    async def start_live_scan(self):
        epoch = self._enter(ScanMode.LIVE_SCANNING)
        self._release_upload()
        self.upload_label = ""
        self.gate.consider(L.CAMERA_ACTIVE)

        self._poller = FramePoller(
            self.live_source,
            partial(self._on_live_frame, epoch),
            self.status,
            interval_ms=self.interval_ms,
        )
        self._poller.start()

    async def toggle_live_scan(self):
        if self.mode == ScanMode.LIVE_SCANNING:
            await self.stop()
        else:
            await self.start_live_scan()

    async def stop(self):
        self._enter(ScanMode.IDLE)
        self._release_upload()
        self.label = ""
        self.upload_label = ""

    async def read_text_once(self):
        if self.mode == ScanMode.READING_TEXT:
            self.status.log("controller: read_text ignored, already reading")
            return

        epoch = self._enter(ScanMode.READING_TEXT)
        self._release_upload()
        self.upload_label = ""
        self.gate.consider(L.SCANNING_TEXT)

        try:
            frame = await self._capture(self.live_source)
            text = await self._recognize(epoch, frame)
        except SourceUnavailable as e:
            if self._current(epoch, "read_text"):
                self.status.log(f"controller: read_text skipped ({e})")
                self._enter(ScanMode.IDLE)
            return
        except Exception as e:
            if self._current(epoch, "read_text"):
                self.status.error(f"read_text {getattr(e, 'code', ERR_UNKNOWN)}: {e}")
                self.gate.consider(L.ERROR_READING)
                self._enter(ScanMode.IDLE)
            return

        if text is None or not self._current(epoch, "read_text"):
            return

        line = self._clean_text(text)
        if line:
            self.gate.consider(line)
            self.label = f"{L.TEXT_LABEL_PREFIX}{line}"
        else:
            self.gate.consider(L.NO_TEXT_FOUND)
            self.label = L.NO_TEXT_LABEL
        self.status.log(f"controller: read_text label='{self.label}'")
        self._enter(ScanMode.IDLE)

    async def load_image(self, image: UploadedImage):
        epoch = self._enter(ScanMode.REVIEWING_UPLOAD)
        # Old handle goes first, then the new one takes its place
        self._release_upload()
        self._upload = image
        self.label = ""
        self.upload_label = ""
        self.status.log(f"controller: image loaded name={image.name or '-'}")
        self._spawn(self._detect_upload(epoch, image))

    async def clear_image(self):
        if self.mode != ScanMode.REVIEWING_UPLOAD:
            self.status.log(f"controller: clear_image ignored in {self.mode.value}")
            return
        self._enter(ScanMode.IDLE)
        self._release_upload()
        self.label = ""
        self.upload_label = ""

    def snapshot(self) -> ScanStatus:
        return ScanStatus(
            mode=self.mode,
            label=self.label,
            upload_label=self.upload_label,
            epoch=self.epoch,
            polling=self._poller is not None and self._poller.running,
            logs=list(self.status.logs),
        )

    async def drain(self):
        """Wait for background detections and history submissions to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def shutdown(self):
        await self.stop()
        await self.drain()
        try:
            self.speech.cancel_speech()
        except Exception as e:
            self.status.log(f"controller: cancel_speech failed: {e}")
        self.live_source.release()

    # ── Frame handlers ─────────────────────────────────────────────────────

    async def _on_live_frame(self, epoch: int, frame: bytes):
        detections = await self._detect(epoch, "live_frame", frame)
        if detections is None or not self._current(epoch, "live_frame"):
            return
        top = self._best(detections)
        if top is None:
            return
        if self.gate.consider(top.label):
            self.label = top.label
            self.status.log(f"controller: live label={top.label} conf={top.confidence:.2f}")
            self._report(top.label)

    async def _detect_upload(self, epoch: int, image: UploadedImage):
        try:
            frame = await self._capture(image.source)
            detections = await self._detect(epoch, "upload", frame)
        except SourceUnavailable as e:
            self.status.log(f"controller: upload detection skipped ({e})")
            return
        except Exception as e:
            self.status.log(f"controller: upload detection error {type(e).__name__}: {e}")
            return

        if detections is None or not self._current(epoch, "upload"):
            return
        top = self._best(detections)
        if top is None:
            self.status.log("controller: upload has no confident detection")
            return
        if self.gate.consider(top.label):
            self.upload_label = top.label
            self.status.log(f"controller: upload label={top.label} conf={top.confidence:.2f}")
            self._report(top.label)

    # ── Helpers ────────────────────────────────────────────────────────────

    def _enter(self, mode: ScanMode) -> int:
        self._stop_poller()
        self.epoch += 1
        self.gate.reset()
        prev, self.mode = self.mode, mode
        self.status.log(f"controller: {prev.value} -> {mode.value} epoch={self.epoch}")
        return self.epoch

    def _current(self, epoch: int, what: str) -> bool:
        if epoch == self.epoch:
            return True
        self.status.log(f"controller: drop stale {what} result epoch={epoch} now={self.epoch}")
        return False

    def _stop_poller(self):
        if self._poller is None:
            return
        self._poller.stop()
        # In-flight frame keeps running; track it so drain() can wait on it
        pending = self._poller.pending
        if pending is not None:
            self._tasks.add(pending)
            pending.add_done_callback(self._tasks.discard)
        self._poller = None

    def _release_upload(self):
        if self._upload is None:
            return
        try:
            self._upload.source.release()
        except Exception as e:
            self.status.log(f"controller: release upload failed: {e}")
        self._upload = None

    def _best(self, detections: list[Detection]) -> Detection | None:
        # Gateway orders best-first; only the top guess is consulted
        if not detections:
            return None
        top = detections[0]
        return top if top.confidence > self.threshold else None

    def _clean_text(self, text: str) -> str:
        text = (text or "").strip()
        if self.first_line_only:
            text = text.split("\n")[0].strip()
        return text

    async def _detect(self, epoch: int, what: str, frame: bytes) -> list[Detection] | None:
        """Returns None without calling the gateway if superseded while queued."""
        async with self._inference:
            if not self._current(epoch, what):
                return None
            return await self.gateway.detect_objects(frame)

    async def _recognize(self, epoch: int, frame: bytes) -> str | None:
        async with self._inference:
            if not self._current(epoch, "read_text"):
                return None
            return await self.gateway.recognize_text(frame)

    async def _capture(self, source) -> bytes:
        if source is None or not await asyncio.to_thread(source.is_ready):
            raise SourceUnavailable("source not ready")
        frame = await asyncio.to_thread(source.capture_bytes)
        if frame is None:
            raise SourceUnavailable("no frame")
        return frame

    def _report(self, item: str):
        self._spawn(self._submit_history(item))

    async def _submit_history(self, item: str):
        try:
            result = await self.history.submit(item)
            self.status.log(f"history: submitted '{item}' entries={len(result.get('history', []))}")
        except Exception as e:
            self.status.log(f"history: submit '{item}' failed: {e}")

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

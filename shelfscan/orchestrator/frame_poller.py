"""
Fixed-cadence frame poller.

The timer fires every `interval_ms` on wall-clock time. A tick whose
predecessor is still running is dropped rather than queued, so `on_frame`
never overlaps itself. stop() only cancels the timer: an in-flight
`on_frame` runs to completion and the caller discards stale results.
"""
import asyncio
from shelfscan.orchestrator.errors import SourceUnavailable

DEFAULT_INTERVAL_MS = 1500


class FramePoller:
    def __init__(self, source, on_frame, status_store, interval_ms: int = DEFAULT_INTERVAL_MS):
        self.source = source
        self.on_frame = on_frame
        self.status = status_store
        self.interval_ms = interval_ms
        self.ticks = 0
        self.skipped = 0
        self._timer: asyncio.Task | None = None
        self._pending: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def busy(self) -> bool:
        return self._pending is not None and not self._pending.done()

    @property
    def pending(self) -> asyncio.Task | None:
        return self._pending if self.busy else None

    def start(self):
        if self.running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run())
        self.status.log(f"frame_poller: started interval={self.interval_ms}ms")

    def stop(self):
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        self.status.log(f"frame_poller: stopped ticks={self.ticks} skipped={self.skipped}")

    async def wait_idle(self):
        """Wait for the in-flight on_frame call, if any."""
        if self._pending is not None:
            await asyncio.gather(self._pending, return_exceptions=True)

    async def _run(self):
        loop = asyncio.get_running_loop()
        interval = self.interval_ms / 1000.0
        next_at = loop.time() + interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            next_at += interval
            self._tick()

    def _tick(self):
        self.ticks += 1
        if self.busy:
            self.skipped += 1
            return
        self._pending = asyncio.get_running_loop().create_task(self._invoke())

    async def _invoke(self):
        try:
            if not await asyncio.to_thread(self.source.is_ready):
                raise SourceUnavailable("source not ready")
            frame = await asyncio.to_thread(self.source.capture_bytes)
            if frame is None:
                raise SourceUnavailable("no frame")
            await self.on_frame(frame)
        except SourceUnavailable as e:
            self.skipped += 1
            self.status.log(f"frame_poller: skip tick ({e})")
        except Exception as e:
            self.status.log(f"frame_poller: on_frame error {type(e).__name__}: {e}")

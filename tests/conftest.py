import asyncio
import threading

import pytest
import pytest_asyncio

from shelfscan.orchestrator.state_machine import ScanController
from shelfscan.services.status_store import StatusStore


class FakeSpeech:
    def __init__(self):
        self.spoken = []
        self.cancels = 0

    def speak(self, text):
        self.spoken.append(text)

    def cancel_speech(self):
        self.cancels += 1


class FakeSource:
    def __init__(self, frame=b"frame", ready=True):
        self.frame = frame
        self.ready = ready
        self.released = False
        # True per call made on the main (event loop) thread
        self.ready_on_main = []

    def is_ready(self):
        self.ready_on_main.append(threading.current_thread() is threading.main_thread())
        return self.ready

    def capture_bytes(self):
        return self.frame

    def release(self):
        self.released = True


class FakeGateway:
    """Scripted stand-in for DetectorGateway.

    `detections` is consumed one list per call; once empty every call
    returns no detections. Set `detect_block` / `read_block` to an
    asyncio.Event to hold a call in flight until the test releases it.
    """

    def __init__(self):
        self.detections = []
        self.text = ""
        self.read_error = None
        self.detect_block = None
        self.read_block = None
        self.detect_calls = 0
        self.read_calls = 0

    async def detect_objects(self, frame):
        self.detect_calls += 1
        if self.detect_block is not None:
            await self.detect_block.wait()
        return self.detections.pop(0) if self.detections else []

    async def recognize_text(self, frame):
        self.read_calls += 1
        if self.read_block is not None:
            await self.read_block.wait()
        if self.read_error is not None:
            raise self.read_error
        return self.text


class FakeHistory:
    def __init__(self):
        self.items = []

    async def submit(self, item):
        self.items.append(item)
        return {"success": True, "history": [{"item": i} for i in reversed(self.items)]}


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


@pytest.fixture
def status():
    return StatusStore()


@pytest.fixture
def speech():
    return FakeSpeech()


@pytest.fixture
def live_source():
    return FakeSource()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def history():
    return FakeHistory()


@pytest_asyncio.fixture
async def controller(gateway, speech, history, status, live_source):
    ctrl = ScanController(
        gateway=gateway,
        speech=speech,
        history=history,
        status_store=status,
        live_source=live_source,
        interval_ms=20,
    )
    yield ctrl
    # Unblock anything a test left hanging so shutdown can drain
    for event in (gateway.detect_block, gateway.read_block):
        if event is not None:
            event.set()
    await ctrl.shutdown()

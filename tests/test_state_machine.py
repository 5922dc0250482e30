import asyncio

import pytest

from shelfscan.adapters.tts import lines as L
from shelfscan.orchestrator.contracts import Detection, ScanMode, UploadedImage
from shelfscan.orchestrator.errors import RecognitionError
from shelfscan.orchestrator.state_machine import ScanController, CONFIDENCE_THRESHOLD

from conftest import FakeSource, wait_until


def _upload(name="shelf.jpg"):
    return UploadedImage(source=FakeSource(b"upload"), name=name)


def test_defaults(gateway, speech, history, status, live_source):
    ctrl = ScanController(gateway, speech, history, status, live_source)
    assert ctrl.mode == ScanMode.IDLE
    assert ctrl.interval_ms == 1500
    assert ctrl.threshold == CONFIDENCE_THRESHOLD == 0.70
    assert ctrl.label == ""


@pytest.mark.asyncio
async def test_start_live_scan_announces_and_polls(controller, speech, gateway):
    await controller.start_live_scan()

    assert controller.mode == ScanMode.LIVE_SCANNING
    assert speech.spoken == [L.CAMERA_ACTIVE]
    assert controller.snapshot().polling
    await wait_until(lambda: gateway.detect_calls >= 2)
    assert speech.spoken == [L.CAMERA_ACTIVE]


@pytest.mark.asyncio
async def test_live_label_spoken_once_and_reported(controller, speech, gateway, history):
    gateway.detections = [
        [Detection("apple", 0.85)],
        [Detection("apple", 0.90)],
    ]
    await controller.start_live_scan()

    await wait_until(lambda: history.items == ["apple"])
    await wait_until(lambda: gateway.detect_calls >= 3)

    assert speech.spoken == [L.CAMERA_ACTIVE, "apple"]
    assert controller.label == "apple"
    assert history.items == ["apple"]
    assert controller.mode == ScanMode.LIVE_SCANNING


@pytest.mark.asyncio
async def test_live_detection_at_threshold_is_ignored(controller, speech, gateway, history):
    gateway.detections = [[Detection("cup", 0.70)]]
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls >= 2)

    assert speech.spoken == [L.CAMERA_ACTIVE]
    assert controller.label == ""
    assert history.items == []


@pytest.mark.asyncio
async def test_only_top_detection_is_consulted(controller, speech, gateway):
    gateway.detections = [[Detection("shelf", 0.5), Detection("apple", 0.99)]]
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls >= 2)
    assert "apple" not in speech.spoken


@pytest.mark.asyncio
async def test_toggle_switches_between_live_and_idle(controller):
    await controller.toggle_live_scan()
    assert controller.mode == ScanMode.LIVE_SCANNING
    await controller.toggle_live_scan()
    assert controller.mode == ScanMode.IDLE
    assert not controller.snapshot().polling


@pytest.mark.asyncio
async def test_stop_clears_label_and_gate(controller, gateway, history):
    gateway.detections = [[Detection("apple", 0.85)]]
    await controller.start_live_scan()
    await wait_until(lambda: controller.label == "apple")

    await controller.stop()

    assert controller.mode == ScanMode.IDLE
    assert controller.label == ""
    assert controller.gate.last_spoken == ""
    assert not controller.snapshot().polling


@pytest.mark.asyncio
async def test_stale_live_result_dropped_after_stop(controller, speech, gateway, history):
    gateway.detect_block = asyncio.Event()
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls == 1)

    await controller.stop()
    gateway.detections = [[Detection("apple", 0.95)]]
    gateway.detect_block.set()
    await controller.drain()

    assert speech.spoken == [L.CAMERA_ACTIVE]
    assert controller.label == ""
    assert history.items == []
    assert gateway.detect_calls == 1


@pytest.mark.asyncio
async def test_read_text_mid_session_takes_first_line(controller, speech, gateway):
    gateway.text = "Organic Honey\nNet Wt 12oz"
    await controller.start_live_scan()

    await controller.read_text_once()

    assert not controller.snapshot().polling
    assert speech.spoken[-2:] == [L.SCANNING_TEXT, "Organic Honey"]
    assert controller.label == "Text: Organic Honey"
    assert controller.mode == ScanMode.IDLE
    assert gateway.read_calls == 1


@pytest.mark.asyncio
async def test_read_text_empty_result(controller, speech, gateway):
    gateway.text = "   \n  "
    await controller.read_text_once()

    assert speech.spoken == [L.SCANNING_TEXT, L.NO_TEXT_FOUND]
    assert controller.label == L.NO_TEXT_LABEL
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_read_text_error_keeps_label(controller, speech, gateway, status):
    gateway.text = "Whole Milk"
    await controller.read_text_once()
    assert controller.label == "Text: Whole Milk"

    gateway.read_error = RecognitionError("engine crashed")
    await controller.read_text_once()

    assert speech.spoken[-2:] == [L.SCANNING_TEXT, L.ERROR_READING]
    assert controller.label == "Text: Whole Milk"
    assert status.last_error.startswith("read_text RECOGNITION_ERROR")
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_read_text_unexpected_error_never_raises(controller, speech, gateway):
    gateway.read_error = ValueError("bad frame")
    await controller.read_text_once()
    assert speech.spoken[-1] == L.ERROR_READING
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_read_text_without_frame_is_skipped(controller, speech, gateway, live_source):
    live_source.ready = False
    await controller.read_text_once()

    assert gateway.read_calls == 0
    assert speech.spoken == [L.SCANNING_TEXT]
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_read_text_ignored_while_reading(controller, gateway):
    gateway.read_block = asyncio.Event()
    gateway.text = "Oat Milk"
    first = asyncio.create_task(controller.read_text_once())
    await wait_until(lambda: gateway.read_calls == 1)
    assert controller.mode == ScanMode.READING_TEXT

    await controller.read_text_once()
    assert gateway.read_calls == 1

    gateway.read_block.set()
    await first
    assert controller.label == "Text: Oat Milk"


@pytest.mark.asyncio
async def test_read_text_from_upload_discards_image(controller, gateway):
    image = _upload()
    await controller.load_image(image)
    await controller.drain()
    gateway.text = "Sea Salt"

    await controller.read_text_once()

    assert image.source.released
    assert controller.label == "Text: Sea Salt"
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_upload_during_read_drops_recognition(controller, speech, gateway):
    gateway.read_block = asyncio.Event()
    gateway.text = "Organic Honey"
    reading = asyncio.create_task(controller.read_text_once())
    await wait_until(lambda: gateway.read_calls == 1)

    await controller.load_image(_upload())
    gateway.read_block.set()
    await reading
    await controller.drain()

    assert controller.mode == ScanMode.REVIEWING_UPLOAD
    assert "Organic Honey" not in speech.spoken
    assert controller.label == ""


@pytest.mark.asyncio
async def test_load_image_below_threshold_then_clear(controller, speech, gateway, history):
    await controller.start_live_scan()
    gateway.detections = [[Detection("banana", 0.4)]]
    image = _upload()

    await controller.load_image(image)
    await controller.drain()

    assert not controller.snapshot().polling
    assert controller.mode == ScanMode.REVIEWING_UPLOAD
    assert "banana" not in speech.spoken
    assert controller.upload_label == ""

    await controller.clear_image()

    assert controller.mode == ScanMode.IDLE
    assert controller.upload_label == ""
    assert controller.label == ""
    assert image.source.released
    assert history.items == []


@pytest.mark.asyncio
async def test_load_image_confident_detection(controller, speech, gateway, history):
    gateway.detections = [[Detection("cereal", 0.93)]]
    await controller.load_image(_upload())
    await controller.drain()

    assert speech.spoken == ["cereal"]
    assert controller.upload_label == "cereal"
    assert history.items == ["cereal"]


@pytest.mark.asyncio
async def test_new_upload_releases_previous(controller):
    first, second = _upload("a.jpg"), _upload("b.jpg")
    await controller.load_image(first)
    await controller.load_image(second)
    await controller.drain()

    assert first.source.released
    assert not second.source.released


@pytest.mark.asyncio
async def test_undecodable_upload_skips_detection(controller, gateway):
    await controller.load_image(UploadedImage(source=FakeSource(ready=False)))
    await controller.drain()
    assert gateway.detect_calls == 0
    assert controller.mode == ScanMode.REVIEWING_UPLOAD


@pytest.mark.asyncio
async def test_start_live_scan_from_upload_discards_image(controller, speech):
    image = _upload()
    await controller.load_image(image)
    await controller.drain()

    await controller.start_live_scan()

    assert image.source.released
    assert controller.mode == ScanMode.LIVE_SCANNING
    assert speech.spoken[-1] == L.CAMERA_ACTIVE


@pytest.mark.asyncio
async def test_clear_image_outside_review_is_noop(controller):
    await controller.start_live_scan()
    epoch = controller.epoch
    await controller.clear_image()
    assert controller.mode == ScanMode.LIVE_SCANNING
    assert controller.epoch == epoch


@pytest.mark.asyncio
async def test_every_transition_bumps_epoch(controller):
    seen = [controller.epoch]
    await controller.start_live_scan()
    seen.append(controller.epoch)
    await controller.load_image(_upload())
    seen.append(controller.epoch)
    await controller.clear_image()
    seen.append(controller.epoch)
    assert seen == sorted(set(seen))


@pytest.mark.asyncio
async def test_history_failure_is_logged(controller, gateway, status):
    class BrokenHistory:
        async def submit(self, item):
            raise ConnectionError("backend down")

    controller.history = BrokenHistory()
    gateway.detections = [[Detection("apple", 0.85)]]
    await controller.load_image(_upload())
    await controller.drain()

    assert controller.upload_label == "apple"
    assert any("backend down" in line for line in status.logs)


@pytest.mark.asyncio
async def test_shutdown_releases_live_source(controller, live_source):
    await controller.start_live_scan()
    await controller.shutdown()
    assert live_source.released
    assert controller.mode == ScanMode.IDLE


@pytest.mark.asyncio
async def test_upload_waits_for_superseded_live_detection(controller, speech, gateway):
    gateway.detect_block = asyncio.Event()
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls == 1)

    await controller.load_image(_upload())
    await asyncio.sleep(0.05)
    assert gateway.detect_calls == 1

    gateway.detections = [[Detection("apple", 0.95)], [Detection("cereal", 0.9)]]
    gateway.detect_block.set()
    await controller.drain()

    assert gateway.detect_calls == 2
    assert controller.label == ""
    assert controller.upload_label == "cereal"
    assert "apple" not in speech.spoken


@pytest.mark.asyncio
async def test_restarted_scan_waits_for_superseded_detection(controller, gateway):
    gateway.detect_block = asyncio.Event()
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls == 1)

    await controller.stop()
    await controller.start_live_scan()
    await asyncio.sleep(0.1)
    assert gateway.detect_calls == 1

    gateway.detect_block.set()
    await wait_until(lambda: gateway.detect_calls >= 2)


@pytest.mark.asyncio
async def test_read_text_waits_for_superseded_detection(controller, gateway):
    gateway.detect_block = asyncio.Event()
    gateway.text = "Rolled Oats"
    await controller.start_live_scan()
    await wait_until(lambda: gateway.detect_calls == 1)

    reading = asyncio.create_task(controller.read_text_once())
    await asyncio.sleep(0.05)
    assert gateway.read_calls == 0

    gateway.detect_block.set()
    await reading
    assert gateway.read_calls == 1
    assert controller.label == "Text: Rolled Oats"


@pytest.mark.asyncio
async def test_source_readiness_checked_off_event_loop(controller, live_source):
    await controller.start_live_scan()
    await wait_until(lambda: len(live_source.ready_on_main) >= 1)
    await controller.read_text_once()

    assert len(live_source.ready_on_main) >= 2
    assert not any(live_source.ready_on_main)

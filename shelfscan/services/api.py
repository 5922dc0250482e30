import asyncio
import base64
import binascii
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from dotenv import load_dotenv
from shelfscan.services.models import StatusResponse, ScanOpResponse, UploadRequest
from shelfscan.services.status_store import StatusStore
from shelfscan.orchestrator.contracts import UploadedImage
from shelfscan.orchestrator import errors
from shelfscan.orchestrator.frame_poller import DEFAULT_INTERVAL_MS
from shelfscan.orchestrator.state_machine import ScanController, CONFIDENCE_THRESHOLD
from shelfscan.adapters.vision.gateway import DetectorGateway
from shelfscan.adapters.vision.mock_vision import MockVision
from shelfscan.adapters.camera.upload_source import UploadedImageSource
from shelfscan.adapters.tts.player_local import LocalPlayerTTS

load_dotenv(dotenv_path="shelfscan/.env", override=False)

status = StatusStore()

# Vision adapter: controlled by VISION_ADAPTER env var
# Values: claude | mock  (default: claude)
_vision_adapter = os.getenv("VISION_ADAPTER", "claude").lower()
if _vision_adapter == "claude":
    from shelfscan.adapters.vision.claude_vision import ClaudeVision
    vision = ClaudeVision(status)
    if not vision.is_ready():
        status.log("vision: ClaudeVision not ready, falling back to mock")
        vision = MockVision(status)
else:
    vision = MockVision(status)
status.log(f"vision adapter: {type(vision).__name__}")

gateway = DetectorGateway(detector=vision, recognizer=vision, status_store=status)

# Camera: CAMERA_ADAPTER=cv2 (default) | mock
camera_adapter = os.getenv("CAMERA_ADAPTER", "cv2").lower()
if camera_adapter == "cv2":
    from shelfscan.adapters.camera.cv2_camera import CV2Camera
    camera = CV2Camera(status)
else:
    from shelfscan.adapters.camera.mock_camera import MockCamera
    camera = MockCamera(status)
status.log(f"camera adapter: {type(camera).__name__}")

tts = LocalPlayerTTS(status, voice=os.getenv("TTS_VOICE", "default"))

# History: HISTORY_ADAPTER=local (in-process store, routes mounted here) | http
history_adapter = os.getenv("HISTORY_ADAPTER", "local").lower()
if history_adapter == "http":
    from shelfscan.adapters.history.http_history import HttpHistory
    history_url = os.getenv("HISTORY_URL", "http://127.0.0.1:5000")
    history = HttpHistory(status, base_url=history_url)
    status.log(f"history adapter: http -> {history_url}")
else:
    from shelfscan.adapters.history.local_history import LocalHistory
    from shelfscan.services.history_api import store as history_store
    history = LocalHistory(history_store)
    status.log("history adapter: local")

controller = ScanController(
    gateway=gateway,
    speech=tts,
    history=history,
    status_store=status,
    live_source=camera,
    interval_ms=int(os.getenv("POLL_INTERVAL_MS", str(DEFAULT_INTERVAL_MS))),
    threshold=float(os.getenv("CONFIDENCE_THRESHOLD", str(CONFIDENCE_THRESHOLD))),
    first_line_only=os.getenv("READ_FIRST_LINE_ONLY", "1") in ("1", "true", "True"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    status.log("SHUTDOWN")
    await controller.shutdown()


app = FastAPI(title="shelfscan", lifespan=lifespan)

if history_adapter != "http":
    from shelfscan.services.history_api import router as history_router
    app.include_router(history_router)


def _op(ok: bool = True, error: str | None = None) -> ScanOpResponse:
    return ScanOpResponse(
        ok=ok,
        mode=controller.mode.value,
        label=controller.label,
        upload_label=controller.upload_label,
        error=error,
    )


@app.get("/status", response_model=StatusResponse)
def get_status():
    snap = controller.snapshot()
    return StatusResponse(
        mode=snap.mode.value,
        label=snap.label,
        upload_label=snap.upload_label,
        epoch=snap.epoch,
        polling=snap.polling,
        last_error=status.last_error,
        logs=snap.logs,
    )


@app.post("/scan/start", response_model=ScanOpResponse)
async def scan_start():
    status.log("SCAN_START")
    await controller.start_live_scan()
    return _op()


@app.post("/scan/toggle", response_model=ScanOpResponse)
async def scan_toggle():
    status.log("SCAN_TOGGLE")
    await controller.toggle_live_scan()
    return _op()


@app.post("/scan/stop", response_model=ScanOpResponse)
async def scan_stop():
    status.log("SCAN_STOP")
    await controller.stop()
    return _op()


@app.post("/read_text", response_model=ScanOpResponse)
async def read_text():
    """Runs one text recognition on the live frame; returns once it settles."""
    status.log("READ_TEXT")
    await controller.read_text_once()
    return _op()


@app.post("/upload", response_model=ScanOpResponse)
async def upload(req: UploadRequest):
    data = req.image
    # Accept data URLs straight from a file input
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        image_bytes = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        status.error(f"{errors.ERR_BAD_IMAGE}: {e}")
        return _op(ok=False, error="base64 decode failed")

    status.log(f"UPLOAD received {len(image_bytes)} bytes")
    source = await asyncio.to_thread(UploadedImageSource, status, image_bytes)
    await controller.load_image(UploadedImage(source=source, name=req.name))
    return _op()


@app.post("/upload/clear", response_model=ScanOpResponse)
async def upload_clear():
    status.log("UPLOAD_CLEAR")
    await controller.clear_image()
    return _op()


@app.get("/health")
def health():
    """Report which adapters are wired and whether they are usable."""
    checks = {
        "api": True,
        "vision_adapter": type(vision).__name__,
        "vision_ready": gateway.is_ready,
        "camera_adapter": type(camera).__name__,
        "history_adapter": history_adapter,
    }
    try:
        checks["camera_ready"] = camera.is_ready()
    except Exception as e:
        checks["camera_ready"] = False
        checks["camera_error"] = str(e)

    assets_path = os.path.join(os.path.dirname(__file__), "..", "adapters", "tts", "assets", tts.voice)
    checks["tts_assets"] = os.path.isdir(assets_path) and len(os.listdir(assets_path)) > 0

    checks["all_ok"] = checks["api"] and checks["vision_ready"] and checks["camera_ready"]
    return checks

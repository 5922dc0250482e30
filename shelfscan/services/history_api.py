"""
Scan-history backend.

Mounted into the scan API when HISTORY_ADAPTER=local, or served on its own
(port 5000) by scripts/history_server.py for HISTORY_ADAPTER=http.
"""
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from shelfscan.services.history_store import HistoryStore
from shelfscan.services.models import HistoryRequest, HistoryResponse

store = HistoryStore()

router = APIRouter()


@router.post("/api/history", response_model=HistoryResponse)
def add_history(req: HistoryRequest):
    store.add(req.item)
    return HistoryResponse(success=True, history=store.as_dicts())


@router.get("/api/history", response_model=HistoryResponse)
def list_history():
    return HistoryResponse(success=True, history=store.as_dicts())


app = FastAPI(title="shelfscan history")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)

from pydantic import BaseModel
from typing import Literal, Optional

ModeName = Literal["idle", "live_scanning", "reading_text", "reviewing_upload"]

class StatusResponse(BaseModel):
    mode: ModeName
    label: str = ""
    upload_label: str = ""
    epoch: int
    polling: bool
    last_error: Optional[str] = None
    logs: list[str]

class ScanOpResponse(BaseModel):
    ok: bool
    mode: ModeName
    label: str = ""
    upload_label: str = ""
    error: Optional[str] = None

class UploadRequest(BaseModel):
    image: str  # base64 JPEG/PNG
    name: Optional[str] = None

class HistoryRequest(BaseModel):
    item: str

class HistoryEntryOut(BaseModel):
    id: int
    item: str
    timestamp: str

class HistoryResponse(BaseModel):
    success: bool
    history: list[HistoryEntryOut]

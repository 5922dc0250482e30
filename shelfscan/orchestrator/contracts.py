from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List


class ScanMode(str, Enum):
    IDLE = "idle"
    LIVE_SCANNING = "live_scanning"
    READING_TEXT = "reading_text"
    REVIEWING_UPLOAD = "reviewing_upload"


@dataclass
class Detection:
    label: str                 # e.g. "apple" | "bottle"
    confidence: float          # 0..1


@dataclass
class UploadedImage:
    # Source handle for the selected file; released on clear or replacement
    source: object
    name: Optional[str] = None


@dataclass
class ScanStatus:
    mode: ScanMode
    label: str = ""            # live camera / read-text result
    upload_label: str = ""     # result for the uploaded image
    epoch: int = 0
    polling: bool = False
    logs: List[str] = field(default_factory=list)

from dataclasses import dataclass, field
from typing import Optional, List

MAX_LOGS = 200

@dataclass
class StatusStore:
    last_error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    def log(self, msg: str):
        self.logs.append(msg)
        if len(self.logs) > MAX_LOGS:
            self.logs = self.logs[-MAX_LOGS:]

    def error(self, msg: str):
        self.last_error = msg
        self.log(f"ERROR {msg}")

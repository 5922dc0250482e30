import time
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import List

HISTORY_LIMIT = 10


@dataclass
class HistoryEntry:
    id: int          # submission time in ms, strictly increasing
    item: str
    timestamp: str   # local wall-clock time, e.g. "03:04:05 PM"


class HistoryStore:
    """Most recent scans, newest first. In-memory only; lost on restart."""

    def __init__(self, limit: int = HISTORY_LIMIT):
        self.limit = limit
        self._entries: List[HistoryEntry] = []
        self._last_id = 0

    def add(self, item: str) -> HistoryEntry:
        # Two submissions in the same millisecond still get distinct ids
        entry_id = max(int(time.time() * 1000), self._last_id + 1)
        self._last_id = entry_id
        entry = HistoryEntry(id=entry_id, item=item, timestamp=datetime.now().strftime("%I:%M:%S %p"))
        self._entries.insert(0, entry)
        del self._entries[self.limit:]
        return entry

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def as_dicts(self) -> list[dict]:
        return [asdict(e) for e in self._entries]

    def clear(self):
        self._entries.clear()

from shelfscan.adapters.history.base import HistoryReporter


class LocalHistory(HistoryReporter):
    """Writes straight into an in-process HistoryStore."""

    def __init__(self, store):
        self.store = store

    async def submit(self, item: str) -> dict:
        self.store.add(item)
        return {"success": True, "history": self.store.as_dicts()}

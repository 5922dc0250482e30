class HistoryReporter:
    async def submit(self, item: str) -> dict:
        """Record a scanned label. Returns {"success": bool, "history": [...]}."""
        raise NotImplementedError

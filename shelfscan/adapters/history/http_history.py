"""
HTTP adapter for the scan-history backend.

Contract:
  Request:  POST /api/history  {"item": "apple"}
  Response: {"success": true, "history": [{"id": ..., "item": ..., "timestamp": ...}, ...]}
"""

import httpx
from shelfscan.adapters.history.base import HistoryReporter


class HttpHistory(HistoryReporter):
    def __init__(self, status_store, base_url: str = "http://127.0.0.1:5000", timeout: float = 10.0,
                 transport: httpx.AsyncBaseTransport | None = None):
        self.status = status_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def submit(self, item: str) -> dict:
        url = f"{self.base_url}/api/history"
        self.status.log(f"http_history: POST /api/history item={item}")
        async with self._client() as client:
            resp = await client.post(url, json={"item": item})
        resp.raise_for_status()
        data = resp.json()
        if not data.get("success", False):
            raise RuntimeError(f"history error: {data.get('error', 'unknown')}")
        return data

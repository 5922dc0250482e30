"""
Standalone scan-history backend on port 5000.

Pair with HISTORY_ADAPTER=http on the scan API:
    python -m shelfscan.scripts.history_server                    (terminal 1)
    HISTORY_ADAPTER=http python -m shelfscan.scripts.serve        (terminal 2)
"""

import uvicorn
from shelfscan.services.history_api import app


if __name__ == "__main__":
    print("History backend starting on http://localhost:5000")
    uvicorn.run(app, host="0.0.0.0", port=5000)

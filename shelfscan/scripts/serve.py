"""
Run the scan API.

Usage:
    python -m shelfscan.scripts.serve
    VISION_ADAPTER=mock CAMERA_ADAPTER=mock python -m shelfscan.scripts.serve
"""

import os
import uvicorn


if __name__ == "__main__":
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))
    print(f"shelfscan API starting on http://{host}:{port}")
    uvicorn.run("shelfscan.services.api:app", host=host, port=port)

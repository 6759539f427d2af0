"""
Run the API with uvicorn.

Usage:
    python scripts/serve.py

Environment:
    HOST (default 0.0.0.0), PORT (default 3000)
"""

import os
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn


if __name__ == "__main__":
    uvicorn.run(
        "api.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
        log_level="info",
    )

#!/usr/bin/env python3
"""Run the backend API server (FPL proxy routes + period standings)."""
import os
import sys
from pathlib import Path

backend = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend / "src"))
os.chdir(backend)

import uvicorn
from dotenv import load_dotenv

load_dotenv(backend / ".env")

from config import Config

if __name__ == "__main__":
    config = Config()
    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=config.api_port,
        reload=config.environment == "development",
    )

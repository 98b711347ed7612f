#!/usr/bin/env python3
"""
Entry point for the boat booking board.
"""

import logging
import os

import uvicorn

if __name__ == "__main__":
    log_level = os.getenv("LOG_LEVEL", "info").lower()
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    uvicorn.run(
        "boatboard.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        reload=os.getenv("API_RELOAD", "false").lower() == "true",
        log_level=log_level,
    )

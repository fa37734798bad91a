#!/usr/bin/env python3
"""Run the Prompt Studio API with auto-reload (development)."""
import uvicorn

from src.infrastructure.config import load_config

if __name__ == "__main__":
    config = load_config()
    uvicorn.run(
        "src.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.log_level.lower(),
        reload=True,
    )

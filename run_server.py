#!/usr/bin/env python3
"""Run the Seven Bridge Web API server."""

import logging
import os
from pathlib import Path

import uvicorn


def main():
    """Run the server."""
    # Load .env file if it exists
    env_file = Path(__file__).parent / ".env"
    if env_file.exists():
        from dotenv import load_dotenv
        load_dotenv(env_file)

    log_level = os.environ.get("SEVEN_BRIDGE_LOG_LEVEL", "info").lower()
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if env_file.exists():
        logging.getLogger(__name__).info(f"Loaded environment from {env_file}")

    uvicorn.run(
        "web.api:app",
        host=os.environ.get("SEVEN_BRIDGE_HOST", "127.0.0.1"),
        port=int(os.environ.get("SEVEN_BRIDGE_PORT", "8000")),
        reload=os.environ.get("SEVEN_BRIDGE_RELOAD", "").lower() == "true",
        log_level=log_level,
    )


if __name__ == "__main__":
    main()

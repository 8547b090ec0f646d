"""Serve the chat sync core's local HTTP API."""

import os

import uvicorn
from dotenv import load_dotenv

from chat_core.api import create_fastapi_app
from chat_core.config import PROJECT_ROOT
from chat_core.logging_config import get_logger, setup_logging

logger = get_logger("chat_core.main")


def main():
    """Load .env, configure logging and run uvicorn."""
    load_dotenv(PROJECT_ROOT / ".env")
    setup_logging()

    host = os.getenv("API_HOST", "localhost")
    port = int(os.getenv("API_PORT", "8000"))
    logger.info("Serving chat API on %s:%d", host, port)

    # log_config=None keeps the JSON handlers from setup_logging
    uvicorn.run(create_fastapi_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()

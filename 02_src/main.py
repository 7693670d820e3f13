"""Main entry point for the Brain assistant API."""

import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from brain.logging_config import setup_logging


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    setup_logging()

    # Imported after load_dotenv so Settings.from_env() sees the .env values
    from brain.api import create_fastapi_app

    api_host = os.getenv("API_HOST", "localhost")
    api_port = int(os.getenv("API_PORT", "8000"))

    app = create_fastapi_app()

    uvicorn.run(
        app,
        host=api_host,
        port=api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()

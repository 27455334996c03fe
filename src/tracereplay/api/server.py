"""
ASGI Entry Point for the Trace Viewer.

This module exposes the `app` object required by ASGI servers. It loads
environment variables from `.env` before the application factory reads the
settings.

Usage
-----
Run via the module entry point:
    $ python -m tracereplay.api.server

Or via uvicorn directly:
    $ uvicorn tracereplay.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from tracereplay.api.app import create_app
from tracereplay.core.settings import get_logger, load_settings

# Load .env BEFORE the factory runs so `load_settings()` sees it.
load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def main(host: str | None = None, port: int | None = None, reload: bool = False) -> None:
    """Run the viewer server, defaulting host and port to the settings."""
    settings = load_settings()
    host = host or settings.host
    port = port or settings.port
    get_logger(__name__).info("Serving traces on http://%s:%d", host, port)

    uvicorn.run(
        "tracereplay.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()

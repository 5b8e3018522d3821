#!/usr/bin/env python3
"""
USChika Server Startup Script

Starts uvicorn with host and port taken from the server configuration
(SERVER_HOST / SERVER_PORT, or .env).
"""

import os
import sys
from pathlib import Path

import uvicorn

from uschika.config import get_config


def main():
    """Start the USChika server with uvicorn."""

    # Set working directory to project root so .env and logs/ resolve there
    project_root = Path(__file__).parent
    os.chdir(project_root)

    config = get_config()
    host = config.server.host
    port = config.server.port
    app_module = "uschika.main:app"
    reload = config.logging.environment == "local"

    print(f"Starting USChika server on {host}:{port}")
    print(f"App module: {app_module}")

    try:
        uvicorn.run(
            app_module,
            host=host,
            port=port,
            reload=reload,
            reload_excludes=["uschika/tests/*"] if reload else None,
            log_level=config.logging.level.lower(),
            access_log=True,
        )
    except KeyboardInterrupt:
        print("\nServer shutdown requested by user")
        sys.exit(0)


if __name__ == "__main__":
    main()

"""Arcade Duels - Entry point for the HTTP server."""

import sys
import traceback

from arcade.config import ArcadeConfig
from arcade.main import start_server

if __name__ == "__main__":
    config = ArcadeConfig.from_env()
    print(f"=== main.py starting Arcade Duels on {config.host}:{config.port} ===", file=sys.stderr)
    try:
        start_server(host=config.host, port=config.port)
        print("=== main.py server finished normally ===", file=sys.stderr)
    except Exception as e:
        print(f"=== main.py server crashed with error: {e} ===", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)
        sys.exit(1)

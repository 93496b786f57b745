"""Serve the API with uvicorn: ``python -m teamhub`` or the ``teamhub`` script."""
from __future__ import annotations

import argparse
import os

import uvicorn


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the TeamHub reporting API")
    parser.add_argument("--host", default=os.getenv("TEAMHUB_HOST", "127.0.0.1"))
    parser.add_argument("--port", type=int, default=int(os.getenv("TEAMHUB_PORT", "8000")))
    parser.add_argument("--reload", action="store_true", help="Restart on code changes")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    uvicorn.run("teamhub.app:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()

from __future__ import annotations

import argparse
import sys

import uvicorn

from backend.app.core.config import get_settings

FACTORIES = {
    "api": "backend.app.main:build_app",
    "web": "frontend.app:build_app",
}


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run one of the listen-feed services.")
    parser.add_argument("service", choices=sorted(FACTORIES), help="Service to start")
    parser.add_argument("--host", default="0.0.0.0", help="Interface to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (default: API_PORT or WEB_PORT)")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    return parser.parse_args(argv)


def main() -> int:
    args = parse_args(sys.argv[1:])
    settings = get_settings()
    port = args.port or (settings.api_port if args.service == "api" else settings.web_port)
    print(f"{args.service} listening on http://localhost:{port}, press ctrl+c to stop")
    uvicorn.run(
        FACTORIES[args.service],
        factory=True,
        host=args.host,
        port=port,
        reload=args.reload,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())

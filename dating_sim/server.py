"""Single entry point for every deployment target (local, Render, Railway)."""

import argparse
import logging

import uvicorn

from dating_sim.core.config import Settings
from dating_sim.main import create_app

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Multiverse Dating Sim server")
    parser.add_argument("--host", default=None, help="Listen address (default: HOST env or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Listen port (default: PORT env or 5000)")
    parser.add_argument("--static-dir", default=None, help="Built frontend to serve (default: STATIC_DIR env)")
    args = parser.parse_args()

    overrides = {}
    if args.host:
        overrides["HOST"] = args.host
    if args.port:
        overrides["PORT"] = args.port
    if args.static_dir:
        overrides["STATIC_DIR"] = args.static_dir
    app_settings = Settings(**overrides)

    app = create_app(app_settings)
    logger.info(f"Starting server on http://{app_settings.HOST}:{app_settings.PORT}")
    uvicorn.run(app, host=app_settings.HOST, port=app_settings.PORT)


if __name__ == "__main__":
    main()

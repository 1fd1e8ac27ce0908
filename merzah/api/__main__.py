"""
merzah.api.__main__ — HTTP API server (``python -m merzah.api``)
=================================================================

Serves :data:`merzah.api.main:app` with uvicorn on the ``api_port`` from
config.yaml.  The app is passed by import string so the JWT secret is only
checked once uvicorn loads it, after .env has been read.
"""

from __future__ import annotations

import argparse
import logging

import uvicorn
from dotenv import load_dotenv

from merzah.config import load_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("merzah")


def main() -> None:
    parser = argparse.ArgumentParser(prog="merzah-api", description="Merzah HTTP API")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes")
    args = parser.parse_args()

    load_dotenv()
    cfg = load_config(args.config)

    logger.info("Starting %s API on %s:%d", cfg.platform_name, args.host, cfg.api_port)
    uvicorn.run(
        "merzah.api.main:app",
        host=args.host,
        port=cfg.api_port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()

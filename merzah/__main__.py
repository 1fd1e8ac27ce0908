"""
merzah.__main__ — Rotation worker (``python -m merzah``)
=========================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (rotation cadence, default timezone).
3. Create the SQLAlchemy engine and ensure tables exist.
4. Start the :class:`RotationScheduler` and run until SIGINT/SIGTERM.

``python -m merzah --once`` runs a single batch, prints the report as JSON
and exits; use it from cron if you prefer an external scheduler.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal

from dotenv import load_dotenv

from merzah.config import load_config
from merzah.database.engine import create_db_engine, init_db
from merzah.engine.clock import SystemClock
from merzah.services.rotation_scheduler import RotationScheduler
from merzah.services.rotation_service import run_rotation

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("merzah")


async def _serve(scheduler: RotationScheduler) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:  # Windows
            pass

    scheduler.start()
    try:
        await stop.wait()
    finally:
        logger.info("Shutting down gracefully…")
        await scheduler.stop()


def main() -> None:
    """Bootstrap and run the rotation worker."""
    parser = argparse.ArgumentParser(prog="merzah", description="Recurring event rotation worker")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument("--once", action="store_true", help="Run one rotation and exit")
    args = parser.parse_args()

    # 1. Environment variables (secrets).
    load_dotenv()

    # 2. Soft configuration.
    cfg = load_config(args.config)
    logger.info("Config loaded — %s", cfg.platform_name)

    # 3. Database.
    engine = create_db_engine()
    init_db(engine)

    if args.once:
        report = run_rotation(
            engine, SystemClock().now(), max_iterations=cfg.rotation_max_iterations,
        )
        print(json.dumps(report.to_dict(), indent=2))
        return

    # 4. Scheduler (blocks until Ctrl+C or SIGTERM).
    scheduler = RotationScheduler(
        engine,
        interval=cfg.rotation_interval_minutes * 60,
        max_iterations=cfg.rotation_max_iterations,
        run_immediately=cfg.rotation_on_startup,
    )
    logger.info("Starting rotation worker…")
    asyncio.run(_serve(scheduler))


if __name__ == "__main__":
    main()

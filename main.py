"""
Entry point for the TrendSage market insights pipeline.

Usage:
  # One full pipeline pass (what cron / the scheduler calls):
  python main.py

  # Same pass with sample data for every source, no network collection:
  python main.py demo

  # Run daily at SCHEDULE_HOUR:SCHEDULE_MINUTE (SCHEDULE_TIMEZONE):
  python main.py schedule

  # Start the FastAPI server:
  python main.py api
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from config.settings import Settings, configure_logging
from utils.pipeline import run_once

logger = logging.getLogger("main")


def start_scheduler(config: Settings, scheduler=None) -> None:
    """Run the pipeline once a day. Blocks until interrupted."""
    from apscheduler.schedulers.blocking import BlockingScheduler
    from apscheduler.triggers.cron import CronTrigger

    scheduler = scheduler or BlockingScheduler(timezone=config.SCHEDULE_TIMEZONE)
    scheduler.add_job(
        run_once,
        trigger=CronTrigger(
            hour=config.SCHEDULE_HOUR,
            minute=config.SCHEDULE_MINUTE,
            timezone=config.SCHEDULE_TIMEZONE,
        ),
        args=[config],
        id="trendsage_daily",
        name="TrendSage daily market insights",
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(
        f"🕘 Scheduler starting - pipeline runs daily at "
        f"{config.SCHEDULE_HOUR:02d}:{config.SCHEDULE_MINUTE:02d} {config.SCHEDULE_TIMEZONE}"
    )

    if config.SCHEDULE_RUN_ON_START:
        logger.info("🧪 Running initial pass...")
        run_once(config)

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("👋 Shutting down TrendSage scheduler...")


def start_api(config: Settings) -> None:
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("api.main:app", host=config.API_HOST, port=config.API_PORT, reload=config.DEBUG)


def main(argv: Optional[list] = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    command = argv[0] if argv else "run"

    config = Settings.from_env()
    configure_logging(config)

    if command == "run":
        return 0 if run_once(config) else 1
    if command == "demo":
        return 0 if run_once(config, demo=True) else 1
    if command == "schedule":
        start_scheduler(config)
        return 0
    if command == "api":
        start_api(config)
        return 0

    print(f"Unknown command: {command}")
    print("Usage: python main.py [run|demo|schedule|api]")
    return 1


if __name__ == "__main__":
    sys.exit(main())

"""Headless scheduler: run the refresh cycle on a timer without the HTTP API."""

import asyncio
import logging
import os

from app.core.config import settings
from app.core.log import configure_logging
from app.services.scheduler import CycleScheduler
from refresher.config import ConfigError, load_config
from refresher.cycle import CycleDriver

logger = logging.getLogger("scheduler")


async def serve(scheduler: CycleScheduler) -> None:
    task = scheduler.start()
    try:
        await task
    finally:
        await scheduler.stop()


def main() -> int:
    configure_logging(settings.log_level, settings.log_file)
    try:
        config = load_config()
        driver = CycleDriver.from_config(config)
    except ConfigError as exc:
        logger.critical("Invalid configuration: %s", exc)
        return 2

    scheduler = CycleScheduler(driver.run, config.cycle_interval_seconds, config.warmup_delay_seconds)
    if os.getenv("RUN_ONCE", "0") == "1":
        report = asyncio.run(scheduler.trigger())
        return 0 if report and report.ok else 1

    try:
        asyncio.run(serve(scheduler))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

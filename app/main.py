"""HTTP surface for the content refresh service.

- Health check for process liveness
- On-demand cycle triggers for one or all configured pages
- Scheduler status

The cycle driver and scheduler are built once at startup from environment
configuration and kept on ``app.state``.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI

from app.core.config import settings
from app.core.log import configure_logging
from app.routes import cycle, health
from app.services.scheduler import CycleScheduler
from refresher.config import (
    DEFAULT_CYCLE_INTERVAL_SECONDS,
    DEFAULT_WARMUP_DELAY_SECONDS,
    ConfigError,
    load_config,
)
from refresher.cycle import CycleDriver


configure_logging(settings.log_level, settings.log_file)
logger = logging.getLogger('api')


def build_scheduler(driver: CycleDriver, interval_seconds: float, warmup_seconds: float) -> CycleScheduler:
    return CycleScheduler(driver.run, interval_seconds=interval_seconds, warmup_seconds=warmup_seconds)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    if getattr(app.state, 'driver', None) is None:
        try:
            config = load_config()
            app.state.driver = CycleDriver.from_config(config)
        except ConfigError as exc:
            logger.critical('Startup aborted, invalid configuration: %s', exc)
            raise
        app.state.scheduler = build_scheduler(app.state.driver, config.cycle_interval_seconds, config.warmup_delay_seconds)

    scheduler: CycleScheduler = app.state.scheduler
    if app.state.enable_scheduler:
        scheduler.start()
    logger.info(
        'Service ready targets=%s scheduler=%s',
        ','.join(str(t.page_id) for t in app.state.driver.targets),
        'on' if app.state.enable_scheduler else 'off',
    )
    try:
        yield
    finally:
        await scheduler.stop()


def create_app(
    driver: CycleDriver | None = None,
    scheduler: CycleScheduler | None = None,
    enable_scheduler: bool | None = None,
    interval_seconds: float = DEFAULT_CYCLE_INTERVAL_SECONDS,
    warmup_seconds: float = DEFAULT_WARMUP_DELAY_SECONDS,
) -> FastAPI:
    """Build the app; pass ``driver`` (and optionally ``scheduler``) to skip env loading.

    ``interval_seconds`` and ``warmup_seconds`` only apply when a driver is
    injected without a scheduler.
    """
    app = FastAPI(title=settings.app_name, version='1.0.0', lifespan=lifespan)
    app.state.driver = driver
    app.state.scheduler = scheduler
    if driver is not None and scheduler is None:
        app.state.scheduler = build_scheduler(driver, interval_seconds, warmup_seconds)
    app.state.enable_scheduler = settings.enable_scheduler if enable_scheduler is None else enable_scheduler

    app.include_router(health.router)
    app.include_router(cycle.router)
    return app


app = create_app()


def main() -> None:
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == '__main__':
    main()

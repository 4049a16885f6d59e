from fastapi import HTTPException, Request, status

from app.services.scheduler import CycleScheduler
from refresher.cycle import CycleDriver


def get_driver(request: Request) -> CycleDriver:
    driver = getattr(request.app.state, 'driver', None)
    if driver is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail='Cycle driver not configured')
    return driver


def get_scheduler(request: Request) -> CycleScheduler:
    scheduler = getattr(request.app.state, 'scheduler', None)
    if scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail='Scheduler not configured')
    return scheduler

from fastapi import APIRouter, Request

from app.core.config import settings

router = APIRouter(tags=['health'])


@router.get('/')
def root():
    return {"message": f"{settings.app_name} running"}


@router.get('/healthz')
def healthz(request: Request):
    scheduler = getattr(request.app.state, 'scheduler', None)
    data = {
        "status": "ok",
        "app": settings.app_name,
        "environment": settings.environment,
        "scheduler_running": bool(scheduler and scheduler.running),
        "cycle_in_flight": bool(scheduler and scheduler.in_flight),
    }
    if scheduler and scheduler.last_error:
        data["last_error"] = scheduler.last_error
    return data

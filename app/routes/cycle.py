from fastapi import APIRouter, Depends, HTTPException

from app.deps import get_driver, get_scheduler
from app.schemas import CycleRunResponse, RunRequest, SchedulerStateResponse, TargetResponse
from app.services.scheduler import CycleScheduler
from refresher.cycle import CycleDriver
from refresher.models import Mode, Target


router = APIRouter(prefix='/cycle', tags=['cycle'])


async def _run(scheduler: CycleScheduler, targets: list[Target] | None, payload: RunRequest | None) -> dict:
    overrides = payload.model_dump(exclude_none=True) if payload else {}
    if 'mode' in overrides:
        overrides['mode'] = Mode(overrides['mode'])
    report = await scheduler.trigger(targets, **overrides)
    if report is None:
        raise HTTPException(status_code=409, detail='A cycle is already running')
    return report.to_dict()


@router.get('/targets', response_model=list[TargetResponse])
def list_targets(driver: CycleDriver = Depends(get_driver)):
    return [{'page_id': t.page_id, 'name': t.name} for t in driver.targets]


@router.get('/status', response_model=SchedulerStateResponse)
def cycle_status(scheduler: CycleScheduler = Depends(get_scheduler)):
    return scheduler.state()


@router.post('/run', response_model=CycleRunResponse)
async def run_all(payload: RunRequest | None = None, scheduler: CycleScheduler = Depends(get_scheduler)):
    return await _run(scheduler, None, payload)


@router.post('/run/{page_id}', response_model=CycleRunResponse)
async def run_one(
    page_id: int,
    payload: RunRequest | None = None,
    driver: CycleDriver = Depends(get_driver),
    scheduler: CycleScheduler = Depends(get_scheduler),
):
    target = driver.find_target(page_id)
    if not target:
        raise HTTPException(status_code=404, detail='Page is not a configured target')
    return await _run(scheduler, [target], payload)

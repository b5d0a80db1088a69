from fastapi import APIRouter, HTTPException

from backend.app.core.config import settings
from backend.app.schemas.sync import PassResultResponse, SyncRunResponse, SyncStatusResponse
from backend.app.services.sync_scheduler import SchedulerState
from backend.app.services.sync_scheduler import scheduler as sync_scheduler

router = APIRouter(prefix="/sync", tags=["sync"])


@router.get("/status", response_model=SyncStatusResponse)
async def get_sync_status():
    """Scheduler state and the outcome of the most recent pass."""
    last = sync_scheduler.last_result
    return SyncStatusResponse(
        enabled=settings.sync_enabled,
        state=sync_scheduler.state.value,
        interval_seconds=sync_scheduler.interval,
        passes_run=sync_scheduler.passes_run,
        next_run_at=sync_scheduler.next_run_at,
        last_result=PassResultResponse.model_validate(last) if last else None,
    )


@router.post("/run", response_model=SyncRunResponse, status_code=202)
async def trigger_sync():
    """Ask the scheduler to start a pass now instead of waiting for the interval."""
    if not sync_scheduler.request_run():
        raise HTTPException(409, "Sync scheduler is not running")

    if sync_scheduler.state is SchedulerState.RUNNING:
        message = "A pass is in progress; another will start when it finishes"
    else:
        message = "Sync pass requested"
    return SyncRunResponse(status="accepted", message=message)

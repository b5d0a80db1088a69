from datetime import datetime

from pydantic import BaseModel


class PassResultResponse(BaseModel):
    success: bool
    records_processed: int
    records_skipped: int
    pages_fetched: int
    entities_created: int
    error: str | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    class Config:
        from_attributes = True


class SyncStatusResponse(BaseModel):
    enabled: bool
    state: str  # idle, running, stopped
    interval_seconds: float
    passes_run: int
    next_run_at: datetime | None = None
    last_result: PassResultResponse | None = None


class SyncRunResponse(BaseModel):
    status: str
    message: str

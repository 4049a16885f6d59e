from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class RunRequest(BaseModel):
    mode: Literal['html', 'css', 'advisory-json'] | None = None
    language: str | None = Field(default=None, min_length=1, max_length=32)
    tone: str | None = Field(default=None, max_length=200)
    dry_run: bool | None = None


class TargetResponse(BaseModel):
    page_id: int
    name: str


class TargetOutcomeResponse(BaseModel):
    page_id: int
    name: str
    status: str
    stage: str
    error: str | None
    link: str | None
    summary: str
    seo_suggestions: list[str]
    ux_suggestions: list[str]
    content_changes: list[str]
    preview: str | None
    raw_response: str
    elapsed_seconds: float


class CycleRunResponse(BaseModel):
    started_at: datetime
    finished_at: datetime | None
    ok: bool
    counts: dict[str, int]
    outcomes: list[TargetOutcomeResponse]


class SchedulerStateResponse(BaseModel):
    running: bool
    in_flight: bool
    interval_seconds: float
    warmup_seconds: float
    cycles_started: int
    cycles_failed: int
    ticks_skipped: int
    last_started_at: datetime | None
    last_finished_at: datetime | None
    last_counts: dict[str, int] | None
    last_error: str | None

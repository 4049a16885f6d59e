from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class Mode(str, Enum):
    HTML = "html"
    CSS = "css"
    ADVISORY_JSON = "advisory-json"

    @property
    def expects_json(self) -> bool:
        return self is Mode.ADVISORY_JSON


class Stage(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    REWRITING = "rewriting"
    VALIDATING = "validating"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    DRY_RUN = "dry-run"
    FAILED_FETCH = "failed-fetch"
    FAILED_REWRITE = "failed-rewrite"
    FAILED_VALIDATION = "failed-validation"
    FAILED_PUBLISH = "failed-publish"


@dataclass(frozen=True)
class Target:
    page_id: int
    name: str


@dataclass(frozen=True)
class RewriteRequest:
    mode: Mode
    instructions: str
    user_content: str
    language: str = "en"
    tone: str = ""


@dataclass
class RewriteResult:
    mode: Mode
    content: str
    raw: str = ""
    summary: str = ""
    seo_suggestions: List[str] = field(default_factory=list)
    ux_suggestions: List[str] = field(default_factory=list)
    content_changes: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class CycleOptions:
    mode: Mode = Mode.ADVISORY_JSON
    language: str = "en"
    tone: str = ""
    dry_run: bool = False
    fetch_timeout: float = 30
    rewrite_timeout: float = 120
    publish_timeout: float = 30


@dataclass
class TargetOutcome:
    target: Target
    status: OutcomeStatus
    stage: Stage
    error: Optional[str] = None
    link: Optional[str] = None
    summary: str = ""
    seo_suggestions: List[str] = field(default_factory=list)
    ux_suggestions: List[str] = field(default_factory=list)
    content_changes: List[str] = field(default_factory=list)
    preview: Optional[str] = None
    raw_response: str = ""
    elapsed_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.SUCCESS, OutcomeStatus.DRY_RUN)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_id": self.target.page_id,
            "name": self.target.name,
            "status": self.status.value,
            "stage": self.stage.value,
            "error": self.error,
            "link": self.link,
            "summary": self.summary,
            "seo_suggestions": list(self.seo_suggestions),
            "ux_suggestions": list(self.ux_suggestions),
            "content_changes": list(self.content_changes),
            "preview": self.preview,
            "raw_response": self.raw_response,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass
class CycleReport:
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None
    outcomes: List[TargetOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    def counts(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for outcome in self.outcomes:
            totals[outcome.status.value] = totals.get(outcome.status.value, 0) + 1
        return totals

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "ok": self.ok,
            "counts": self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }

"""Content refresh cycle: fetch, rewrite, validate and publish each target in turn.

A failure at any stage is recorded as that target's outcome and the cycle
moves on to the next target. Nothing is retried inside a cycle.
"""

import logging
import re
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from refresher.ai import RewriteEngine
from refresher.config import Config
from refresher.errors import FetchError, PublishError, RefreshError, RewriteError, ValidationError
from refresher.models import (
    CycleOptions,
    CycleReport,
    Mode,
    OutcomeStatus,
    RewriteResult,
    Stage,
    Target,
    TargetOutcome,
)
from refresher.prompt_framework import PromptTemplate, build_rewrite_request, load_templates
from refresher.storage import save_snapshot
from refresher.wp_client import WordPressClient

logger = logging.getLogger("cycle")

STYLE_ID = "content-refresh-css"
_STYLE_BLOCK = re.compile(r'<style id="' + STYLE_ID + r'">.*?</style>\s*', re.DOTALL | re.IGNORECASE)

FAILURE_STATUS = (
    (FetchError, OutcomeStatus.FAILED_FETCH),
    (RewriteError, OutcomeStatus.FAILED_REWRITE),
    (ValidationError, OutcomeStatus.FAILED_VALIDATION),
    (PublishError, OutcomeStatus.FAILED_PUBLISH),
)

STAGE_STATUS = {
    Stage.IDLE: OutcomeStatus.FAILED_FETCH,
    Stage.FETCHING: OutcomeStatus.FAILED_FETCH,
    Stage.REWRITING: OutcomeStatus.FAILED_REWRITE,
    Stage.VALIDATING: OutcomeStatus.FAILED_VALIDATION,
    Stage.PUBLISHING: OutcomeStatus.FAILED_PUBLISH,
}


def validate_result(result: RewriteResult) -> None:
    if not result.content.strip():
        raise ValidationError(f"rewritten {result.mode.value} payload is empty")
    if result.mode is Mode.CSS and "</style" in result.content.lower():
        raise ValidationError("CSS payload contains a closing </style> tag")


def apply_css(html: str, css: str) -> str:
    """Prepend the managed style block, replacing any earlier one."""
    block = f'<style id="{STYLE_ID}">\n{css.strip()}\n</style>\n'
    return block + _STYLE_BLOCK.sub("", html)


def compose_content(snapshot: str, result: RewriteResult) -> str:
    if result.mode is Mode.CSS:
        return apply_css(snapshot, result.content)
    return result.content


def _advice(result: RewriteResult) -> Dict[str, Any]:
    return {
        "summary": result.summary,
        "seo_suggestions": list(result.seo_suggestions),
        "ux_suggestions": list(result.ux_suggestions),
        "content_changes": list(result.content_changes),
    }


def _failure_status(exc: RefreshError, stage: Stage) -> OutcomeStatus:
    for kind, status in FAILURE_STATUS:
        if isinstance(exc, kind):
            return status
    return STAGE_STATUS.get(stage, OutcomeStatus.FAILED_FETCH)


def refresh_target(
    target: Target,
    options: CycleOptions,
    source: Any,
    engine: Any,
    templates: Dict[Mode, PromptTemplate],
    backup_dir: Optional[str] = None,
) -> TargetOutcome:
    started = time.monotonic()
    stage = Stage.IDLE

    def enter(next_stage: Stage) -> None:
        nonlocal stage
        stage = next_stage
        logger.info("page=%s (%s) stage=%s", target.page_id, target.name, stage.value)

    def finish(status: OutcomeStatus, final: Stage, **fields: Any) -> TargetOutcome:
        return TargetOutcome(
            target=target,
            status=status,
            stage=final,
            elapsed_seconds=time.monotonic() - started,
            **fields,
        )

    try:
        enter(Stage.FETCHING)
        snapshot = source.get_page_html(target.page_id, timeout=options.fetch_timeout)

        enter(Stage.REWRITING)
        request = build_rewrite_request(
            snapshot,
            options.mode,
            templates,
            language=options.language,
            tone=options.tone,
            page_name=target.name,
        )
        result = engine.complete(request, timeout=options.rewrite_timeout)

        enter(Stage.VALIDATING)
        validate_result(result)
        if result.mode.expects_json:
            logger.info(
                "page=%s advice seo=%d ux=%d changes=%d",
                target.page_id,
                len(result.seo_suggestions),
                len(result.ux_suggestions),
                len(result.content_changes),
            )
        new_content = compose_content(snapshot, result)

        if options.dry_run:
            if backup_dir:
                try:
                    path = save_snapshot(backup_dir, target, "rewritten_preview", new_content)
                    logger.info("page=%s dry-run preview saved: %s", target.page_id, path)
                except OSError as exc:
                    logger.warning("page=%s could not save dry-run preview: %s", target.page_id, exc)
            logger.info("page=%s dry-run, not publishing", target.page_id)
            return finish(OutcomeStatus.DRY_RUN, Stage.DONE, preview=new_content, **_advice(result))

        enter(Stage.PUBLISHING)
        if backup_dir:
            try:
                save_snapshot(backup_dir, target, "original", snapshot)
            except OSError as exc:
                raise PublishError(f"could not back up original content: {exc}") from exc
        updated = source.update_page(target.page_id, new_content, timeout=options.publish_timeout)
    except RefreshError as exc:
        status = _failure_status(exc, stage)
        logger.warning("page=%s (%s) %s at stage=%s: %s", target.page_id, target.name, status.value, stage.value, exc)
        return finish(status, Stage.FAILED, error=str(exc), raw_response=getattr(exc, "raw", ""))
    except Exception as exc:
        status = STAGE_STATUS.get(stage, OutcomeStatus.FAILED_FETCH)
        logger.exception("page=%s (%s) unexpected error at stage=%s", target.page_id, target.name, stage.value)
        return finish(status, Stage.FAILED, error=f"{type(exc).__name__}: {exc}")

    enter(Stage.DONE)
    link = updated.get("link")
    logger.info("page=%s updated %s", target.page_id, link or "")
    return finish(OutcomeStatus.SUCCESS, Stage.DONE, link=link, **_advice(result))


def run_cycle(
    targets: Sequence[Target],
    options: CycleOptions,
    *,
    source: Any,
    engine: Any,
    templates: Dict[Mode, PromptTemplate],
    backup_dir: Optional[str] = None,
) -> CycleReport:
    if not targets:
        raise ValueError("run_cycle needs at least one target")

    report = CycleReport()
    logger.info(
        "Cycle started targets=%s mode=%s language=%s dry_run=%s",
        ",".join(str(t.page_id) for t in targets),
        options.mode.value,
        options.language,
        options.dry_run,
    )
    for target in targets:
        report.outcomes.append(refresh_target(target, options, source, engine, templates, backup_dir))
    report.finished_at = datetime.now(timezone.utc)
    logger.info("Cycle finished %s", report.counts())
    return report


class CycleDriver:
    """Binds the collaborators and defaults so callers only pick targets."""

    def __init__(
        self,
        targets: Sequence[Target],
        options: CycleOptions,
        source: Any,
        engine: Any,
        templates: Dict[Mode, PromptTemplate],
        backup_dir: Optional[str] = None,
    ) -> None:
        self.targets = list(targets)
        self.options = options
        self.source = source
        self.engine = engine
        self.templates = templates
        self.backup_dir = backup_dir

    @classmethod
    def from_config(cls, config: Config) -> "CycleDriver":
        return cls(
            targets=config.targets,
            options=config.cycle_options(),
            source=WordPressClient(config.wp_url, config.wp_user, config.wp_app_password),
            engine=RewriteEngine(
                api_key=config.openai_api_key,
                model=config.openai_model,
                api_style=config.openai_api_style,
                temperature=config.openai_temperature,
                max_tokens=config.openai_max_tokens,
            ),
            templates=load_templates(config.prompts_file),
            backup_dir=config.backup_dir,
        )

    def find_target(self, page_id: int) -> Optional[Target]:
        for target in self.targets:
            if target.page_id == page_id:
                return target
        return None

    def run(self, targets: Optional[Sequence[Target]] = None, **overrides: Any) -> CycleReport:
        """Run one cycle; ``overrides`` replace fields of the default options."""
        options = replace(self.options, **{k: v for k, v in overrides.items() if v is not None})
        return run_cycle(
            self.targets if targets is None else targets,
            options,
            source=self.source,
            engine=self.engine,
            templates=self.templates,
            backup_dir=self.backup_dir,
        )

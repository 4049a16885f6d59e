import os
from dataclasses import dataclass
from typing import List, Optional

from refresher.models import CycleOptions, Mode, Target


class ConfigError(Exception):
    pass


API_STYLES = ("chat", "responses")
DEFAULT_CYCLE_INTERVAL_SECONDS = 600
DEFAULT_WARMUP_DELAY_SECONDS = 5


def env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


def require_env(*names: str) -> str:
    for name in names:
        value = os.getenv(name, "").strip()
        if value:
            return value
    raise ConfigError(f"Missing required environment variable: {' or '.join(names)}")


def env_number(name: str, default: str, cast=float, minimum: Optional[float] = None):
    raw = os.getenv(name, default).strip() or default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


def parse_mode(raw: str) -> Mode:
    try:
        return Mode(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in Mode)
        raise ConfigError(f"Unknown refresh mode {raw!r} (expected one of: {allowed})") from None


def parse_targets(raw: str) -> List[Target]:
    """Parse ``"195:Homepage,210:About us"``; a bare id gets a generated name."""
    targets: List[Target] = []
    seen = set()
    for chunk in raw.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        page_id_raw, _, name = chunk.partition(":")
        try:
            page_id = int(page_id_raw.strip())
        except ValueError:
            raise ConfigError(f"Invalid page id in WP_TARGETS: {page_id_raw.strip()!r}") from None
        if page_id <= 0:
            raise ConfigError(f"Page ids must be positive, got {page_id}")
        if page_id in seen:
            raise ConfigError(f"Duplicate page id in WP_TARGETS: {page_id}")
        seen.add(page_id)
        targets.append(Target(page_id=page_id, name=name.strip() or f"Page {page_id}"))
    if not targets:
        raise ConfigError("WP_TARGETS did not contain any page ids")
    return targets


@dataclass
class Config:
    wp_url: str
    wp_user: str
    wp_app_password: str
    openai_api_key: str
    openai_model: str
    openai_api_style: str
    openai_temperature: float
    openai_max_tokens: int
    targets: List[Target]
    mode: Mode
    language: str
    tone: str
    request_timeout: float
    rewrite_timeout: float
    cycle_interval_seconds: float
    warmup_delay_seconds: float
    dry_run: bool
    prompts_file: Optional[str]
    backup_dir: Optional[str]

    def cycle_options(self) -> CycleOptions:
        return CycleOptions(
            mode=self.mode,
            language=self.language,
            tone=self.tone,
            dry_run=self.dry_run,
            fetch_timeout=self.request_timeout,
            rewrite_timeout=self.rewrite_timeout,
            publish_timeout=self.request_timeout,
        )


def _load_targets() -> List[Target]:
    raw = os.getenv("WP_TARGETS", "").strip()
    if raw:
        return parse_targets(raw)
    homepage = os.getenv("WP_HOMEPAGE_ID", "").strip()
    if homepage:
        return parse_targets(f"{homepage}:Homepage")
    raise ConfigError("Missing required environment variable: WP_TARGETS or WP_HOMEPAGE_ID")


def load_config() -> Config:
    api_style = os.getenv("OPENAI_API_STYLE", "chat").strip().lower()
    if api_style not in API_STYLES:
        raise ConfigError(f"OPENAI_API_STYLE must be one of {API_STYLES}, got {api_style!r}")

    return Config(
        wp_url=require_env("WP_BASE_URL", "WP_URL").rstrip("/"),
        wp_user=require_env("WP_USERNAME", "WP_USER"),
        wp_app_password=require_env("WP_APP_PASSWORD"),
        openai_api_key=require_env("OPENAI_API_KEY"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4.1-mini").strip() or "gpt-4.1-mini",
        openai_api_style=api_style,
        openai_temperature=env_number("OPENAI_TEMPERATURE", "0", minimum=0),
        openai_max_tokens=env_number("OPENAI_MAX_TOKENS", "4096", cast=int, minimum=1),
        targets=_load_targets(),
        mode=parse_mode(os.getenv("REFRESH_MODE", Mode.ADVISORY_JSON.value)),
        language=os.getenv("REFRESH_LANGUAGE", "en").strip() or "en",
        tone=os.getenv("REFRESH_TONE", "").strip(),
        request_timeout=env_number("REQUEST_TIMEOUT", "30", minimum=1),
        rewrite_timeout=env_number("REWRITE_TIMEOUT", "120", minimum=1),
        cycle_interval_seconds=env_number("CYCLE_INTERVAL_SECONDS", str(DEFAULT_CYCLE_INTERVAL_SECONDS), minimum=1),
        warmup_delay_seconds=env_number("WARMUP_DELAY_SECONDS", str(DEFAULT_WARMUP_DELAY_SECONDS), minimum=0),
        dry_run=env_bool("DRY_RUN"),
        prompts_file=os.getenv("PROMPTS_FILE", "").strip() or None,
        backup_dir=os.getenv("BACKUP_DIR", "").strip() or None,
    )

import re
from datetime import datetime, timezone
from pathlib import Path

from refresher.models import Target


def slugify(text: str) -> str:
    return re.sub(r"[^a-zA-Z0-9\-]+", "-", text).strip("-")[:80].lower() or "page"


def save_snapshot(directory: str, target: Target, kind: str, content: str, suffix: str = "html") -> Path:
    """Write ``content`` as ``<ts>_<id>_<slug>_<KIND>.<suffix>`` under ``directory``."""
    out_dir = Path(directory)
    out_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S_%f")
    stem = f"{ts}_{target.page_id}_{slugify(target.name)}_{kind.upper()}"
    out = out_dir / f"{stem}.{suffix}"
    n = 1
    while out.exists():
        out = out_dir / f"{stem}_{n}.{suffix}"
        n += 1
    out.write_text(content, encoding="utf-8")
    return out

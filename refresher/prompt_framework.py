import json
from dataclasses import dataclass
from pathlib import Path
from string import Template
from typing import Dict, Optional

from refresher.config import ConfigError, parse_mode
from refresher.models import Mode, RewriteRequest


@dataclass(frozen=True)
class PromptTemplate:
    instructions: str
    user: str


HTML_INSTRUCTIONS = """
You are the website content editor for this site.

Your job:
- Rewrite the page HTML in a modern, professional layout.
- Improve structure, readability, headings and flow.
- Keep every fact, phone number, address and link that is already on the page.
- Write in language=$language. Tone: $tone.
- Use only clean HTML (no CSS, no JS, no <html>/<body> wrapper).
- Output ONLY the HTML. No markdown, no backticks, no commentary.
""".strip()

CSS_INSTRUCTIONS = """
You are the visual designer for this site.

Your job:
- Read the page HTML and write a stylesheet that gives it a modern, accessible design.
- Target the elements and classes that already exist; do not require HTML changes.
- Keep contrast readable and layouts responsive.
- Output ONLY CSS. No <style> tags, no markdown, no commentary.
""".strip()

ADVISORY_INSTRUCTIONS = """
You are the website intelligence agent for this site.

Your job:
- Rewrite the page HTML in a modern, professional layout.
- Improve UI/UX, structure, readability and flow.
- Add relevant SEO keywords without keyword stuffing.
- Write in language=$language. Tone: $tone.
- Use only clean HTML (no CSS, no JS).
- Produce ONLY JSON in this structure:

{
  "html": "<full rewritten HTML>",
  "summary": "short explanation of improvements",
  "seo_suggestions": ["..."],
  "ux_suggestions": ["..."],
  "content_changes": ["..."]
}
""".strip()

DEFAULT_TEMPLATES: Dict[Mode, PromptTemplate] = {
    Mode.HTML: PromptTemplate(HTML_INSTRUCTIONS, "Page: $page_name\n\nRewrite this page HTML:\n\n$content"),
    Mode.CSS: PromptTemplate(CSS_INSTRUCTIONS, "Page: $page_name\n\nDesign CSS for this page HTML:\n\n$content"),
    Mode.ADVISORY_JSON: PromptTemplate(ADVISORY_INSTRUCTIONS, "Page: $page_name\n\nRewrite this page HTML:\n\n$content"),
}


def load_templates(path: Optional[str] = None) -> Dict[Mode, PromptTemplate]:
    """Return the built-in templates, overridden per mode by a JSON file.

    The file maps a mode name to ``{"instructions": ..., "user": ...}``.
    """
    templates = dict(DEFAULT_TEMPLATES)
    if not path:
        return templates

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigError(f"PROMPTS_FILE not found: {path}")
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"PROMPTS_FILE is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError("PROMPTS_FILE must contain a JSON object keyed by mode")

    for mode_name, entry in data.items():
        mode = parse_mode(mode_name)
        if not isinstance(entry, dict) or not all(isinstance(entry.get(k), str) for k in ("instructions", "user")):
            raise ConfigError(f"PROMPTS_FILE entry {mode_name!r} needs string 'instructions' and 'user'")
        if "$content" not in entry["user"] and "${content}" not in entry["user"]:
            raise ConfigError(f"PROMPTS_FILE entry {mode_name!r}: 'user' must contain $content")
        templates[mode] = PromptTemplate(entry["instructions"], entry["user"])
    return templates


def build_rewrite_request(
    snapshot: str,
    mode: Mode,
    templates: Dict[Mode, PromptTemplate],
    language: str = "en",
    tone: str = "",
    page_name: str = "",
) -> RewriteRequest:
    template = templates[mode]
    values = {
        "language": language,
        "tone": tone or "clear, trustworthy and professional",
        "page_name": page_name or "untitled",
    }
    return RewriteRequest(
        mode=mode,
        instructions=Template(template.instructions).safe_substitute(values),
        user_content=Template(template.user).safe_substitute(values, content=snapshot),
        language=language,
        tone=values["tone"],
    )

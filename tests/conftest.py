"""Shared fakes for the refresh cycle tests.

No network calls are made: WordPress is replaced either by ``FakeSource``
(cycle-level tests) or by ``FakeSession`` underneath the real
``WordPressClient``; the OpenAI SDK is replaced by ``fake_openai_client``.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any

import pytest

from refresher.models import CycleOptions, Mode, RewriteResult, Target
from refresher.prompt_framework import DEFAULT_TEMPLATES


# ---------------------------------------------------------------------------
# Cycle-level collaborators
# ---------------------------------------------------------------------------

class FakeSource:
    def __init__(self, pages: dict[int, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.fetch_errors: dict[int, Exception] = {}
        self.publish_errors: dict[int, Exception] = {}
        self.fetch_calls: list[int] = []
        self.update_calls: list[tuple[int, str]] = []

    def get_page_html(self, page_id: int, timeout: float) -> str:
        self.fetch_calls.append(page_id)
        if page_id in self.fetch_errors:
            raise self.fetch_errors[page_id]
        return self.pages[page_id]

    def update_page(self, page_id: int, html: str, timeout: float) -> dict[str, Any]:
        self.update_calls.append((page_id, html))
        if page_id in self.publish_errors:
            raise self.publish_errors[page_id]
        self.pages[page_id] = html
        return {"id": page_id, "link": f"https://example.com/?page_id={page_id}"}


class FakeEngine:
    """Returns queued results (or raises queued errors) in call order."""

    def __init__(self, *responses: RewriteResult | Exception) -> None:
        self.responses = list(responses)
        self.requests = []

    def complete(self, request, timeout: float) -> RewriteResult:
        self.requests.append(request)
        item = self.responses.pop(0) if self.responses else RewriteResult(mode=request.mode, content="<p>default</p>")
        if isinstance(item, Exception):
            raise item
        return item


# ---------------------------------------------------------------------------
# HTTP-level fakes
# ---------------------------------------------------------------------------

class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str | None = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload)

    def json(self) -> Any:
        if self._payload is None:
            return json.loads(self.text)
        return self._payload


class FakeSession:
    """In-memory stand-in for the WordPress pages endpoint."""

    def __init__(self, pages: dict[int, str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.calls: list[dict[str, Any]] = []
        self.next_response: FakeResponse | Exception | None = None

    def request(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.next_response is not None:
            response, self.next_response = self.next_response, None
            if isinstance(response, Exception):
                raise response
            return response

        page_id = int(url.rstrip("/").rsplit("/", 1)[-1])
        if page_id not in self.pages:
            return FakeResponse(404, {"code": "rest_post_invalid_id"})
        if method == "POST":
            self.pages[page_id] = kwargs["json"]["content"]
        return FakeResponse(
            200,
            {"id": page_id, "link": f"https://example.com/?page_id={page_id}", "content": {"rendered": self.pages[page_id]}},
        )


def fake_openai_client(chat_content: str | None = None, output_text: str | None = None, error: Exception | None = None):
    calls: list[dict[str, Any]] = []

    def create_chat(**kwargs):
        calls.append(kwargs)
        if error:
            raise error
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=chat_content))])

    def create_response(**kwargs):
        calls.append(kwargs)
        if error:
            raise error
        return SimpleNamespace(output_text=output_text, output=[])

    client = SimpleNamespace(
        chat=SimpleNamespace(completions=SimpleNamespace(create=create_chat)),
        responses=SimpleNamespace(create=create_response),
    )
    client.calls = calls
    return client


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def homepage() -> Target:
    return Target(page_id=195, name="Homepage")


@pytest.fixture()
def templates():
    return dict(DEFAULT_TEMPLATES)


@pytest.fixture()
def html_options() -> CycleOptions:
    return CycleOptions(mode=Mode.HTML, fetch_timeout=1, rewrite_timeout=1, publish_timeout=1)


@pytest.fixture()
def wp_env(monkeypatch):
    """Minimal valid environment for ``load_config``."""
    for name in ("WP_URL", "WP_USER", "WP_TARGETS", "WP_HOMEPAGE_ID", "REFRESH_MODE", "OPENAI_API_STYLE",
                 "PROMPTS_FILE", "BACKUP_DIR", "DRY_RUN", "CYCLE_INTERVAL_SECONDS", "REQUEST_TIMEOUT",
                 "REWRITE_TIMEOUT", "WARMUP_DELAY_SECONDS", "OPENAI_MODEL", "OPENAI_TEMPERATURE",
                 "OPENAI_MAX_TOKENS", "REFRESH_LANGUAGE", "REFRESH_TONE"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("WP_BASE_URL", "https://kayan.example/")
    monkeypatch.setenv("WP_USERNAME", "editor")
    monkeypatch.setenv("WP_APP_PASSWORD", "abcd efgh")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("WP_HOMEPAGE_ID", "195")
    return monkeypatch

"""Tests for the HTTP surface.

The app is built with an injected ``CycleDriver`` over in-memory fakes, and
the timer is disabled so only on-demand triggers run.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.services.scheduler import CycleScheduler
from conftest import FakeEngine, FakeSource
from refresher.config import ConfigError
from refresher.cycle import CycleDriver
from refresher.errors import FetchError
from refresher.models import CycleOptions, Mode, RewriteResult, Target


@pytest.fixture()
def source() -> FakeSource:
    return FakeSource({195: "<p>old</p>", 210: "<p>about</p>"})


@pytest.fixture()
def driver(source, templates) -> CycleDriver:
    engine = FakeEngine(
        RewriteResult(mode=Mode.HTML, content="<section><h1>new</h1></section>"),
        RewriteResult(mode=Mode.HTML, content="<p>about v2</p>"),
    )
    return CycleDriver(
        [Target(195, "Homepage"), Target(210, "About")],
        CycleOptions(mode=Mode.HTML),
        source,
        engine,
        templates,
    )


@pytest.fixture()
def scheduler(driver) -> CycleScheduler:
    return CycleScheduler(driver.run, interval_seconds=600, warmup_seconds=5)


@pytest.fixture()
def client(driver, scheduler):
    app = create_app(driver=driver, scheduler=scheduler, enable_scheduler=False)
    with TestClient(app) as c:
        yield c


class TestHealth:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["scheduler_running"] is False
        assert data["cycle_in_flight"] is False

    def test_root_banner(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["message"].endswith("running")


class TestTargetsAndStatus:
    def test_targets(self, client):
        resp = client.get("/cycle/targets")
        assert resp.json() == [{"page_id": 195, "name": "Homepage"}, {"page_id": 210, "name": "About"}]

    def test_status_before_any_run(self, client):
        data = client.get("/cycle/status").json()
        assert data["cycles_started"] == 0
        assert data["last_counts"] is None
        assert data["interval_seconds"] == 600


class TestRun:
    def test_run_all(self, client, source):
        resp = client.post("/cycle/run")
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is True
        assert data["counts"] == {"success": 2}
        assert [o["page_id"] for o in data["outcomes"]] == [195, 210]
        assert source.pages[195] == "<section><h1>new</h1></section>"
        assert data["outcomes"][0]["seo_suggestions"] == []
        assert data["outcomes"][0]["preview"] is None
        assert client.get("/cycle/status").json()["cycles_started"] == 1

    def test_run_single_target(self, client, source):
        resp = client.post("/cycle/run/210")
        assert resp.status_code == 200
        outcomes = resp.json()["outcomes"]
        assert len(outcomes) == 1
        assert outcomes[0]["name"] == "About"
        assert source.fetch_calls == [210]

    def test_unknown_target(self, client):
        resp = client.post("/cycle/run/999")
        assert resp.status_code == 404

    def test_dry_run_override(self, client, source):
        resp = client.post("/cycle/run/195", json={"dry_run": True})
        assert resp.json()["outcomes"][0]["status"] == "dry-run"
        assert resp.json()["outcomes"][0]["preview"] == "<section><h1>new</h1></section>"
        assert source.update_calls == []

    def test_invalid_mode_rejected(self, client):
        resp = client.post("/cycle/run", json={"mode": "markdown"})
        assert resp.status_code == 422

    def test_failure_is_reported_not_raised(self, client, source):
        source.fetch_errors[195] = FetchError("page 195: WP GET failed: 500 boom")
        resp = client.post("/cycle/run")
        assert resp.status_code == 200
        data = resp.json()
        assert data["ok"] is False
        assert data["outcomes"][0]["status"] == "failed-fetch"
        assert data["outcomes"][0]["error"].endswith("500 boom")
        assert data["outcomes"][1]["status"] == "success"

    def test_conflict_while_cycle_in_flight(self, client, scheduler):
        scheduler._in_flight = True
        try:
            resp = client.post("/cycle/run")
        finally:
            scheduler._in_flight = False
        assert resp.status_code == 409


def test_startup_fails_without_configuration(monkeypatch):
    for name in ("WP_BASE_URL", "WP_URL", "WP_USERNAME", "WP_USER", "WP_APP_PASSWORD", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    app = create_app(enable_scheduler=False)
    with pytest.raises(ConfigError):
        with TestClient(app):
            pass


def test_injected_driver_uses_given_timings(driver):
    app = create_app(driver=driver, enable_scheduler=False, interval_seconds=30, warmup_seconds=1)
    with TestClient(app) as c:
        data = c.get("/cycle/status").json()
    assert data["interval_seconds"] == 30
    assert data["warmup_seconds"] == 1

"""Tests for the FastAPI / Starlette integration."""

from __future__ import annotations

import asyncio

import pytest
from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.testclient import TestClient
from starlette.requests import Request

from split_analytics import ConfigurationError, CrawlerTracker, TrackerConfig
from split_analytics.middleware import (
    CrawlerTrackingMiddleware,
    add_split_middleware,
    track_crawler_visit,
)

from conftest import CHROME_UA, ENDPOINT, GPTBOT_UA


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

@pytest.fixture()
def side_effects() -> list[str]:
    return []


@pytest.fixture()
def build_app(collector, errors, side_effects):
    """Return (client, middleware) for a small app with the tracker installed."""

    def factory(**options):
        tracker = CrawlerTracker(
            TrackerConfig(
                api_key="split_test_abc123",
                api_endpoint=ENDPOINT,
                batch_size=1,
                on_error=errors.append,
            ),
            client=collector.client(),
        )
        app = FastAPI()

        @app.get("/blog/{slug}")
        async def blog(slug: str):
            return {"slug": slug}

        @app.get("/health")
        async def health():
            return {"ok": True}

        @app.get("/missing")
        async def missing():
            raise HTTPException(status_code=404)

        @app.get("/with-task")
        async def with_task(background_tasks: BackgroundTasks):
            background_tasks.add_task(side_effects.append, "app task")
            return {"ok": True}

        middleware = add_split_middleware(app, tracker=tracker, **options)
        return TestClient(app), middleware

    return factory


# ===================================================================
# Request handling
# ===================================================================

class TestMiddleware:

    def test_crawler_visit_is_tracked(self, build_app, collector):
        client, _ = build_app()
        resp = client.get(
            "/blog/hello",
            headers={"user-agent": GPTBOT_UA, "accept": "text/html", "accept-language": "en-US"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"slug": "hello"}
        assert len(collector.posts) == 1

        event = collector.batches[0][0]
        assert event["domain"] == "testserver"
        assert event["path"] == "/blog/hello"
        assert event["crawlerName"] == "GPTBot"
        assert event["crawlerCompany"] == "OpenAI"
        assert event["userAgent"] == GPTBOT_UA
        assert event["statusCode"] == 200
        assert event["responseTimeMs"] >= 0
        assert event["metadata"]["accept"] == "text/html"
        assert event["metadata"]["acceptLanguage"] == "en-US"

    def test_error_status_is_recorded(self, build_app, collector):
        client, _ = build_app()
        resp = client.get("/missing", headers={"user-agent": "ClaudeBot/1.0"})
        assert resp.status_code == 404
        assert collector.batches[0][0]["statusCode"] == 404

    def test_browser_is_ignored(self, build_app, collector):
        client, _ = build_app()
        resp = client.get("/blog/hello", headers={"user-agent": CHROME_UA})
        assert resp.status_code == 200
        assert collector.requests == []

    def test_missing_user_agent_is_ignored(self, build_app, collector):
        client, _ = build_app()
        client.get("/blog/hello", headers={"user-agent": ""})
        assert collector.requests == []

    def test_excluded_path(self, build_app, collector):
        client, _ = build_app(exclude=[r"^/health"])
        client.get("/health", headers={"user-agent": GPTBOT_UA})
        assert collector.requests == []
        client.get("/blog/a", headers={"user-agent": GPTBOT_UA})
        assert len(collector.posts) == 1

    def test_include_restricts_paths(self, build_app, collector):
        client, _ = build_app(include=[r"^/blog/"])
        client.get("/health", headers={"user-agent": GPTBOT_UA})
        client.get("/blog/a", headers={"user-agent": GPTBOT_UA})
        assert [batch[0]["path"] for batch in collector.batches] == ["/blog/a"]

    def test_exclude_beats_include(self, build_app, collector):
        client, _ = build_app(include=[r"^/blog/"], exclude=[r"/private$"])
        client.get("/blog/private", headers={"user-agent": GPTBOT_UA})
        assert collector.requests == []

    def test_skip_tracking(self, build_app, collector):
        client, _ = build_app(skip_tracking=True)
        resp = client.get("/blog/a", headers={"user-agent": GPTBOT_UA})
        assert resp.status_code == 200
        assert collector.requests == []

    def test_invalid_pattern_is_ignored(self, build_app, collector):
        client, middleware = build_app(exclude=["(unclosed"])
        assert middleware.exclude == []
        client.get("/blog/a", headers={"user-agent": GPTBOT_UA})
        assert len(collector.posts) == 1

    def test_delivery_failure_does_not_affect_response(self, build_app, collector, errors):
        collector.default_status = 401
        client, _ = build_app()
        resp = client.get("/blog/a", headers={"user-agent": GPTBOT_UA})
        assert resp.status_code == 200
        assert resp.json() == {"slug": "a"}
        assert errors[0].status_code == 401

    def test_existing_background_tasks_still_run(self, build_app, collector, side_effects):
        client, _ = build_app()
        client.get("/with-task", headers={"user-agent": GPTBOT_UA})
        assert side_effects == ["app task"]
        assert len(collector.posts) == 1


class TestMiddlewareConstruction:

    def test_requires_config_or_tracker(self):
        with pytest.raises(ConfigurationError):
            CrawlerTrackingMiddleware()

    def test_builds_tracker_from_mapping(self):
        middleware = CrawlerTrackingMiddleware({"api_key": "k", "batch_size": 4})
        assert middleware.tracker.config.batch_size == 4

    def test_should_track_path(self):
        middleware = CrawlerTrackingMiddleware({"api_key": "k"}, include=[r"^/docs"], exclude=[r"\.json$"])
        assert middleware.should_track_path("/docs/intro")
        assert not middleware.should_track_path("/docs/data.json")
        assert not middleware.should_track_path("/blog")

    def test_destroy_marks_tracker(self):
        middleware = CrawlerTrackingMiddleware({"api_key": "k"})
        assert middleware.destroy() is None
        assert middleware.tracker.is_destroyed


# ===================================================================
# track_crawler_visit()
# ===================================================================

def _request(user_agent: str, path: str = "/docs") -> Request:
    return Request({
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "server": ("example.com", 443),
        "path": path,
        "query_string": b"",
        "headers": [
            (b"host", b"example.com"),
            (b"user-agent", user_agent.encode()),
            (b"referer", b"https://search.test/"),
        ],
    })


class TestTrackCrawlerVisit:

    def test_tracks_crawler(self, collector):
        config = TrackerConfig(api_key="k", api_endpoint=ENDPOINT)
        tracked = asyncio.run(
            track_crawler_visit(_request("ClaudeBot/1.0"), config, client=collector.client())
        )
        assert tracked is True

        event = collector.batches[0][0]
        assert event["domain"] == "example.com"
        assert event["path"] == "/docs"
        assert event["crawlerName"] == "ClaudeBot"
        assert event["metadata"] == {"referer": "https://search.test/"}

    def test_ignores_browser(self, collector):
        config = TrackerConfig(api_key="k", api_endpoint=ENDPOINT)
        tracked = asyncio.run(
            track_crawler_visit(_request(CHROME_UA), config, client=collector.client())
        )
        assert tracked is False
        assert collector.requests == []

    def test_never_raises(self, collector):
        tracked = asyncio.run(
            track_crawler_visit(_request("ClaudeBot/1.0"), {"api_key": ""}, client=collector.client())
        )
        assert tracked is False

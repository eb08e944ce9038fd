"""Fixtures for split_analytics tests."""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from split_analytics import CrawlerTracker, TrackerConfig

ENDPOINT = "https://collector.test/api/crawler-events"

GPTBOT_UA = "Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0; +https://openai.com/gptbot)"
CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


# ---------------------------------------------------------------------------
# Fake collector
# ---------------------------------------------------------------------------

class FakeCollector:
    """
    httpx MockTransport handler standing in for the Split collector.

    POSTs are answered from ``statuses`` in order (200 once exhausted, or
    ``default_status``); an Exception in the list is raised instead.
    Set ``gate`` to an asyncio.Event to hold every request until it is set.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.statuses: list = []
        self.default_status = 200
        self.ping_status = 200
        self.ping_body: object = {
            "status": "ok",
            "connection": {
                "authenticated": True,
                "keyName": "Production",
                "workspace": "Acme",
                "domain": "acme.test",
                "plan": "pro",
            },
            "timestamp": "2025-01-15T12:00:00.000Z",
        }
        self.gate: asyncio.Event | None = None

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()

        if request.url.path.endswith("/ping"):
            if isinstance(self.ping_body, (dict, list)):
                return httpx.Response(self.ping_status, json=self.ping_body)
            return httpx.Response(self.ping_status, text=str(self.ping_body or ""))

        status = self.statuses.pop(0) if self.statuses else self.default_status
        if isinstance(status, Exception):
            raise status
        return httpx.Response(status, json={"received": True})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def posts(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "POST"]

    @property
    def batches(self) -> list[list[dict]]:
        return [json.loads(r.content)["events"] for r in self.posts]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def collector() -> FakeCollector:
    return FakeCollector()


@pytest.fixture()
def errors() -> list[Exception]:
    """Sink for on_error callbacks."""
    return []


@pytest.fixture()
def make_tracker(collector: FakeCollector, errors: list[Exception]):
    """Factory for trackers wired to the fake collector."""

    def factory(**overrides) -> CrawlerTracker:
        values = {
            "api_key": "split_test_abc123",
            "api_endpoint": ENDPOINT,
            "batch_size": 10,
            "batch_interval_ms": 50_000,
            "on_error": errors.append,
        }
        values.update(overrides)
        return CrawlerTracker(TrackerConfig(**values), client=collector.client())

    return factory


@pytest.fixture()
def sleeps(monkeypatch) -> list[float]:
    """Record backoff delays instead of sleeping through them."""
    delays: list[float] = []
    real_sleep = asyncio.sleep

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("split_analytics.tracker.asyncio.sleep", fake_sleep)
    return delays


def make_event(path: str = "/blog", **overrides) -> dict:
    """Wire-format (camelCase) unstamped event."""
    event = {
        "domain": "example.com",
        "path": path,
        "crawlerName": "GPTBot",
        "crawlerCompany": "OpenAI",
        "crawlerCategory": "ai-training",
        "userAgent": GPTBOT_UA,
    }
    event.update(overrides)
    return event

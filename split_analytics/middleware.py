"""
Split Analytics — FastAPI / Starlette integration.

Usage:
    from contextlib import asynccontextmanager
    from fastapi import FastAPI
    from split_analytics import TrackerConfig
    from split_analytics.middleware import CrawlerTrackingMiddleware

    split = CrawlerTrackingMiddleware(TrackerConfig.from_env(), exclude=[r"^/health"])

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await split.aclose()

    app = FastAPI(lifespan=lifespan)
    app.middleware("http")(split)

The middleware owns its tracker. Detection runs before the app handles the
request; the visit is tracked in a background task attached to the finished
response, so the status code and response time are known and the client is
not kept waiting. No tracking failure ever reaches the app.
"""

from __future__ import annotations

import logging
import re
import time
from typing import Any, Awaitable, Callable, Iterable, Mapping, Optional, Union

import httpx
from starlette.background import BackgroundTasks
from starlette.requests import Request
from starlette.responses import Response

from .client import track_crawler
from .config import TrackerConfig
from .crawlers import CrawlerInfo
from .detector import classify
from .errors import ConfigurationError
from .events import extract_metadata
from .models import RequestInfo, TrackingEvent
from .tracker import CrawlerTracker

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


def _compile_patterns(patterns: Optional[Iterable[str]], kind: str) -> list[re.Pattern]:
    compiled: list[re.Pattern] = []
    for pattern in patterns or ():
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            logger.warning("Ignoring invalid %s pattern %r: %s", kind, pattern, exc)
    return compiled


class CrawlerTrackingMiddleware:
    """``http`` middleware that reports AI crawler visits to Split."""

    def __init__(
        self,
        config: Union[TrackerConfig, Mapping[str, Any], None] = None,
        *,
        tracker: Optional[CrawlerTracker] = None,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
        skip_tracking: bool = False,
    ) -> None:
        if tracker is None:
            if config is None:
                raise ConfigurationError("[split-analytics] middleware requires a config or a tracker")
            tracker = CrawlerTracker(config)
        self.tracker = tracker
        self.debug = tracker.config.debug

        include = list(include or ())
        self._restrict_to_include = bool(include)
        self.include = _compile_patterns(include, "include")
        self.exclude = _compile_patterns(exclude, "exclude")
        self.skip_tracking = skip_tracking

        if self.debug:
            logger.info(
                "Middleware initialised: include=%d exclude=%d skip_tracking=%s",
                len(self.include), len(self.exclude), skip_tracking,
            )

    def should_track_path(self, path: str) -> bool:
        for pattern in self.exclude:
            if pattern.search(path):
                if self.debug:
                    logger.info("Path %s excluded by %r", path, pattern.pattern)
                return False
        if self._restrict_to_include:
            return any(pattern.search(path) for pattern in self.include)
        return True

    def detect(self, request: Request) -> Optional[CrawlerInfo]:
        """Return the crawler behind *request*, or None if it shouldn't be tracked."""
        if self.skip_tracking or not self.should_track_path(request.url.path):
            return None
        result = classify(request.headers.get("user-agent"))
        if self.debug:
            logger.info(
                "%s %s: %s", request.method, request.url.path,
                result.crawler.bot if result.crawler else "not an AI crawler",
            )
        return result.crawler

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        started = time.perf_counter()
        crawler = None
        try:
            crawler = self.detect(request)
        except Exception:
            logger.exception("Crawler detection failed")

        response = await call_next(request)

        if crawler is not None:
            try:
                info = RequestInfo(
                    url=str(request.url),
                    headers=request.headers,
                    status_code=response.status_code,
                    response_time_ms=round((time.perf_counter() - started) * 1000),
                )
                self._track_after_response(response, crawler, info)
            except Exception:
                logger.exception("Could not record crawler visit")

        return response

    def _track_after_response(self, response: Response, crawler: CrawlerInfo, info: RequestInfo) -> None:
        event = self.tracker.create_event(crawler, info, extract_metadata(info.headers))
        tasks = BackgroundTasks()
        if response.background is not None:
            tasks.add_task(response.background)
        tasks.add_task(self._track_safely, event)
        response.background = tasks

    async def _track_safely(self, event: TrackingEvent) -> None:
        try:
            await self.tracker.track(event)
        except Exception as exc:
            logger.warning("Failed to track crawler visit: %s", exc)

    def destroy(self):
        """Stop the tracker; see CrawlerTracker.destroy()."""
        return self.tracker.destroy()

    async def aclose(self) -> None:
        await self.tracker.aclose()


def add_split_middleware(
    app,
    config: Union[TrackerConfig, Mapping[str, Any], None] = None,
    **options,
) -> CrawlerTrackingMiddleware:
    """
    Create a CrawlerTrackingMiddleware and register it on *app*.

    Returns the middleware so the caller can ``await mw.aclose()`` from the
    app's lifespan on shutdown.
    """
    middleware = CrawlerTrackingMiddleware(config, **options)
    app.middleware("http")(middleware)
    return middleware


async def track_crawler_visit(
    request: Request,
    config: Union[TrackerConfig, Mapping[str, Any]],
    *,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Track *request* from inside an existing middleware or endpoint.

    Returns True if a crawler was detected and tracked. Never raises.
    """
    try:
        return await track_crawler(
            config,
            url=str(request.url),
            user_agent=request.headers.get("user-agent"),
            headers=request.headers,
            client=client,
        )
    except Exception as exc:
        logger.warning("track_crawler_visit failed: %s", exc)
        return False

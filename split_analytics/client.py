"""
Split Analytics — one-shot helpers.

For callers that don't want to keep a tracker around: classify + track a
single request, ping the API, or run the installation self-test.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal, Mapping, Optional, Union

import httpx

from .config import TrackerConfig
from .detector import classify
from .events import extract_metadata
from .models import PingResponse, RequestInfo
from .tracker import CrawlerTracker

logger = logging.getLogger(__name__)

SAMPLE_CRAWLER_UA = "Mozilla/5.0 (compatible; GPTBot/1.0; +https://openai.com/gptbot)"

ConfigLike = Union[TrackerConfig, Mapping[str, Any]]


def _as_config(config: ConfigLike) -> TrackerConfig:
    return config if isinstance(config, TrackerConfig) else TrackerConfig(**config)


def key_type(api_key: str) -> Literal["live", "test", "unknown"]:
    """Tell live keys from test keys by prefix (informational only)."""
    if api_key.startswith("split_live_"):
        return "live"
    if api_key.startswith("split_test_"):
        return "test"
    return "unknown"


async def track_crawler(
    config: ConfigLike,
    *,
    url: str,
    user_agent: Optional[str],
    headers: Optional[Mapping[str, Any]] = None,
    status_code: Optional[int] = None,
    response_time_ms: Optional[float] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> bool:
    """
    Classify one request and, if it came from a crawler, deliver it.

    Uses a single-use tracker and waits for its final flush, so the event
    is sent (or reported through ``on_error``) before this returns. Pass
    *client* to reuse an existing httpx.AsyncClient; it is left open.

    Returns:
        True if a crawler was detected and tracked, False otherwise.

    Raises:
        InvalidUrlError: if *url* is not absolute.
    """
    detection = classify(user_agent)
    if not detection.is_ai_crawler or detection.crawler is None:
        return False

    tracker = CrawlerTracker(_as_config(config), client=client)
    request = RequestInfo(
        url=url,
        headers={"user-agent": user_agent or "", **(headers or {})},
        status_code=status_code,
        response_time_ms=response_time_ms,
    )
    metadata = extract_metadata(headers) if headers else None
    try:
        event = tracker.create_event(detection.crawler, request, metadata)
        await tracker.track(event)
    finally:
        await tracker.aclose()
    return True


async def ping(config: ConfigLike, *, client: Optional[httpx.AsyncClient] = None) -> PingResponse:
    """Ping the collector with a throwaway tracker."""
    tracker = CrawlerTracker(_as_config(config), client=client)
    try:
        return await tracker.ping()
    finally:
        await tracker.aclose()


@dataclass
class InstallationReport:
    package_import: bool = True
    crawler_detection: bool = False
    api_connection: bool = False
    api_connection_details: Optional[PingResponse] = None

    @property
    def ok(self) -> bool:
        if self.api_connection_details is not None:
            return self.package_import and self.crawler_detection and self.api_connection
        return self.package_import and self.crawler_detection


async def test_installation(
    api_key: Optional[str] = None,
    api_endpoint: Optional[str] = None,
    debug: bool = False,
) -> InstallationReport:
    """Check detection works and, given a key, that the API answers. Never raises."""
    report = InstallationReport()
    try:
        detection = classify(SAMPLE_CRAWLER_UA)
        report.crawler_detection = (
            detection.is_ai_crawler
            and detection.crawler is not None
            and detection.crawler.bot == "GPTBot"
        )
    except Exception as exc:
        logger.debug("Crawler detection check failed: %s", exc)

    if api_key is None:
        return report

    try:
        config = TrackerConfig(api_key=api_key, api_endpoint=api_endpoint or "", debug=debug)
        result = await ping(config)
    except Exception as exc:
        logger.debug("API connection check failed: %s", exc)
        result = PingResponse(status="error", message=str(exc) or type(exc).__name__)
    report.api_connection = result.ok
    report.api_connection_details = result
    return report


# Keep pytest from collecting the helper above when it is imported into a test module
test_installation.__test__ = False

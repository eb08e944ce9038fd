"""
Split Analytics

AI crawler attribution for Python web apps: recognises AI and search
crawlers from the User-Agent header, batches their visits, and ships them
to the Split collector without ever failing the request being served.

Usage:
    from split_analytics import CrawlerTracker, TrackerConfig, classify

    tracker = CrawlerTracker(TrackerConfig(api_key="split_live_..."))

    result = classify(request.headers.get("user-agent"))
    if result.is_ai_crawler:
        event = tracker.create_event(result.crawler, {"url": url, "headers": headers})
        await tracker.track(event)

FastAPI / Starlette:
    from split_analytics.middleware import add_split_middleware

    split = add_split_middleware(app, TrackerConfig.from_env())
"""

from .client import InstallationReport, key_type, ping, test_installation, track_crawler
from .config import DEFAULT_API_ENDPOINT, TrackerConfig
from .crawlers import (
    AI_CRAWLERS,
    CrawlerCategory,
    CrawlerInfo,
    get_crawlers_by_category,
    get_crawlers_by_company,
    get_supported_crawlers,
)
from .detector import DetectionResult, classify, get_crawler_info, is_ai_crawler
from .errors import APIError, ConfigurationError, InvalidUrlError, SplitAnalyticsError
from .events import build_event, extract_metadata
from .models import CrawlerEvent, PingResponse, RequestInfo, TrackingEvent
from .tracker import CrawlerTracker

__all__ = [
    "AI_CRAWLERS",
    "APIError",
    "ConfigurationError",
    "CrawlerCategory",
    "CrawlerEvent",
    "CrawlerInfo",
    "CrawlerTracker",
    "DEFAULT_API_ENDPOINT",
    "DetectionResult",
    "InstallationReport",
    "InvalidUrlError",
    "PingResponse",
    "RequestInfo",
    "SplitAnalyticsError",
    "TrackerConfig",
    "TrackingEvent",
    "build_event",
    "classify",
    "extract_metadata",
    "get_crawler_info",
    "get_crawlers_by_category",
    "get_crawlers_by_company",
    "get_supported_crawlers",
    "is_ai_crawler",
    "key_type",
    "ping",
    "test_installation",
    "track_crawler",
]
__version__ = "0.1.0"

"""
Split Analytics — visit event construction.

Turns a detected crawler plus the request it made into a TrackingEvent,
and pulls a few descriptive headers into the event metadata.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

from .crawlers import CrawlerCategory, CrawlerInfo
from .errors import InvalidUrlError
from .models import RequestInfo, TrackingEvent


def header_values(headers: Optional[Mapping[str, Any]], name: str) -> list[str]:
    """
    Return every non-empty value of header *name*.

    Accepts plain mappings (name matched case-insensitively, value either a
    string or a list of strings) and multi-dicts exposing ``getlist`` such
    as Starlette's Headers.
    """
    if headers is None:
        return []

    getlist = getattr(headers, "getlist", None)
    if callable(getlist):
        return [v for v in getlist(name) if v]

    name = name.lower()
    value = None
    for key, candidate in headers.items():
        if key.lower() == name:
            value = candidate
            break

    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)] if value else []


def extract_metadata(headers: Optional[Mapping[str, Any]]) -> dict[str, str]:
    """Collect referer / accept headers; absent headers are left out."""
    metadata: dict[str, str] = {}

    referer = header_values(headers, "referer") or header_values(headers, "referrer")
    if referer:
        metadata["referer"] = referer[0]

    accept = header_values(headers, "accept")
    if accept:
        metadata["accept"] = ", ".join(accept)

    encoding = header_values(headers, "accept-encoding")
    if encoding:
        metadata["acceptEncoding"] = ", ".join(encoding)

    language = header_values(headers, "accept-language")
    if language:
        metadata["acceptLanguage"] = language[0]

    return metadata


def parse_request_url(url: str) -> tuple[str, str]:
    """Split an absolute URL into (hostname, path). Relative URLs are rejected."""
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidUrlError(str(url), str(exc)) from exc

    if not parts.scheme or not hostname:
        raise InvalidUrlError(url, "expected an absolute URL with scheme and host")

    return hostname, parts.path or "/"


def build_event(
    crawler: CrawlerInfo,
    request: RequestInfo,
    metadata: Optional[dict[str, Any]] = None,
) -> TrackingEvent:
    """
    Build the unstamped event for one crawler visit.

    ``userAgent`` comes from the request's own headers, not from the
    crawler match, so it records exactly what the client sent.

    Raises:
        InvalidUrlError: if ``request.url`` has no scheme or host.
    """
    domain, path = parse_request_url(request.url)
    user_agent = header_values(request.headers, "user-agent")

    return TrackingEvent(
        domain=domain,
        path=path,
        crawler_name=crawler.bot,
        crawler_company=crawler.company,
        crawler_category=CrawlerCategory(crawler.category).value,
        user_agent=user_agent[0] if user_agent else "",
        status_code=request.status_code,
        response_time_ms=request.response_time_ms,
        metadata=metadata,
    )

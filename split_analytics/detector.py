"""
Split Analytics — User-Agent classification.

Two tiers: an exact scan of the known crawler registry, then a lowercase
scan for generic bot-ish tokens. The second tier exists to surface new,
unregistered AI bots in telemetry and will flag any UA that happens to
contain one of those tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .crawlers import CrawlerCategory, CrawlerInfo, lookup

HEURISTIC_PATTERNS = (
    "ai-crawler",
    "ai-bot",
    "llm-crawler",
    "training-bot",
    "ml-bot",
)


@dataclass(frozen=True)
class DetectionResult:
    is_ai_crawler: bool
    user_agent: str
    crawler: Optional[CrawlerInfo] = None


def classify(user_agent: str | None) -> DetectionResult:
    """
    Decide whether *user_agent* belongs to an AI or search crawler.

    Returns a DetectionResult; ``crawler`` is set only when
    ``is_ai_crawler`` is true. Heuristic matches get company "Unknown",
    the matched token as bot name, and the "unknown" category.

    Examples:
        >>> classify("Mozilla/5.0 (compatible; GPTBot/1.0)").crawler.company
        'OpenAI'
        >>> classify(None)
        DetectionResult(is_ai_crawler=False, user_agent='', crawler=None)
    """
    if not user_agent:
        return DetectionResult(is_ai_crawler=False, user_agent="")

    known = lookup(user_agent)
    if known is not None:
        return DetectionResult(is_ai_crawler=True, user_agent=user_agent, crawler=known)

    ua_lower = user_agent.lower()
    for pattern in HEURISTIC_PATTERNS:
        if pattern in ua_lower:
            guess = CrawlerInfo(company="Unknown", bot=pattern, category=CrawlerCategory.UNKNOWN)
            return DetectionResult(is_ai_crawler=True, user_agent=user_agent, crawler=guess)

    return DetectionResult(is_ai_crawler=False, user_agent=user_agent)


def is_ai_crawler(user_agent: str | None) -> bool:
    return classify(user_agent).is_ai_crawler


def get_crawler_info(user_agent: str | None) -> CrawlerInfo | None:
    return classify(user_agent).crawler

"""
Split Analytics — known AI crawler registry.

Maps the identifying token a crawler puts in its User-Agent to the company
that runs it and what it is used for. Matching is a case-sensitive substring
test in table order; the first hit wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class CrawlerCategory(str, Enum):
    AI_TRAINING = "ai-training"
    AI_ASSISTANT = "ai-assistant"
    AI_SEARCH = "ai-search"
    SEARCH_AI = "search-ai"
    SOCIAL_AI = "social-ai"
    AI_EXTRACTION = "ai-extraction"
    ARCHIVAL = "archival"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class CrawlerInfo:
    """Who runs a crawler and what it is for."""
    company: str
    bot: str
    category: CrawlerCategory

    def to_dict(self) -> dict[str, str]:
        return {
            "company": self.company,
            "bot": self.bot,
            "category": self.category.value,
        }


def _entry(company: str, bot: str, category: CrawlerCategory) -> CrawlerInfo:
    return CrawlerInfo(company=company, bot=bot, category=category)


_C = CrawlerCategory

# Order matters: "Googlebot" shadows "Googlebot-Image", "Applebot" shadows
# "Applebot-Extended".
AI_CRAWLERS: dict[str, CrawlerInfo] = {
    # OpenAI
    "GPTBot": _entry("OpenAI", "GPTBot", _C.AI_TRAINING),
    "ChatGPT-User": _entry("OpenAI", "ChatGPT-User", _C.AI_ASSISTANT),
    "OAI-SearchBot": _entry("OpenAI", "OAI-SearchBot", _C.AI_SEARCH),
    # Anthropic
    "Claude-Web": _entry("Anthropic", "Claude-Web", _C.AI_ASSISTANT),
    "ClaudeBot": _entry("Anthropic", "ClaudeBot", _C.AI_TRAINING),
    "anthropic-ai": _entry("Anthropic", "anthropic-ai", _C.AI_TRAINING),
    # Google
    "Google-Extended": _entry("Google", "Google-Extended", _C.AI_TRAINING),
    "Googlebot": _entry("Google", "Googlebot", _C.SEARCH_AI),
    "Googlebot-Image": _entry("Google", "Googlebot-Image", _C.SEARCH_AI),
    "Googlebot-News": _entry("Google", "Googlebot-News", _C.SEARCH_AI),
    "Google-InspectionTool": _entry("Google", "Google-InspectionTool", _C.SEARCH_AI),
    # Microsoft
    "Bingbot": _entry("Microsoft", "Bingbot", _C.SEARCH_AI),
    "msnbot": _entry("Microsoft", "msnbot", _C.SEARCH_AI),
    "BingPreview": _entry("Microsoft", "BingPreview", _C.SEARCH_AI),
    # Perplexity
    "PerplexityBot": _entry("Perplexity", "PerplexityBot", _C.AI_SEARCH),
    # Meta
    "FacebookBot": _entry("Meta", "FacebookBot", _C.SOCIAL_AI),
    "facebookexternalhit": _entry("Meta", "facebookexternalhit", _C.SOCIAL_AI),
    "Meta-ExternalAgent": _entry("Meta", "Meta-ExternalAgent", _C.AI_TRAINING),
    # Other AI search engines
    "YouBot": _entry("You.com", "YouBot", _C.AI_SEARCH),
    "Neeva": _entry("Neeva", "Neeva", _C.AI_SEARCH),
    "Phind": _entry("Phind", "Phind", _C.AI_SEARCH),
    # China
    "Bytespider": _entry("ByteDance", "Bytespider", _C.AI_TRAINING),
    "Baiduspider": _entry("Baidu", "Baiduspider", _C.SEARCH_AI),
    "Sogou": _entry("Sogou", "Sogou", _C.SEARCH_AI),
    # E-commerce & social
    "Amazonbot": _entry("Amazon", "Amazonbot", _C.AI_ASSISTANT),
    "LinkedInBot": _entry("LinkedIn", "LinkedInBot", _C.SOCIAL_AI),
    "Twitterbot": _entry("Twitter", "Twitterbot", _C.SOCIAL_AI),
    # Apple
    "Applebot": _entry("Apple", "Applebot", _C.SEARCH_AI),
    "Applebot-Extended": _entry("Apple", "Applebot-Extended", _C.AI_TRAINING),
    # Data extraction & SEO
    "Diffbot": _entry("Diffbot", "Diffbot", _C.AI_EXTRACTION),
    "DataForSeoBot": _entry("DataForSEO", "DataForSeoBot", _C.AI_EXTRACTION),
    "SemrushBot": _entry("Semrush", "SemrushBot", _C.AI_EXTRACTION),
    "AhrefsBot": _entry("Ahrefs", "AhrefsBot", _C.AI_EXTRACTION),
    # Research & archives
    "CCBot": _entry("Common Crawl", "CCBot", _C.AI_TRAINING),
    "ia_archiver": _entry("Internet Archive", "ia_archiver", _C.ARCHIVAL),
    # Other search engines
    "PetalBot": _entry("Petal Search", "PetalBot", _C.SEARCH_AI),
    "SeznamBot": _entry("Seznam", "SeznamBot", _C.SEARCH_AI),
    "Yandex": _entry("Yandex", "YandexBot", _C.SEARCH_AI),
    "DuckDuckBot": _entry("DuckDuckGo", "DuckDuckBot", _C.SEARCH_AI),
    "Qwantify": _entry("Qwant", "Qwantify", _C.SEARCH_AI),
}


def lookup(user_agent: str) -> CrawlerInfo | None:
    """Return the first registry entry whose token appears in *user_agent*."""
    for token, info in AI_CRAWLERS.items():
        if token in user_agent:
            return info
    return None


def get_supported_crawlers() -> list[CrawlerInfo]:
    return list(AI_CRAWLERS.values())


def get_crawlers_by_category(category: CrawlerCategory | str) -> list[CrawlerInfo]:
    wanted = CrawlerCategory(category)
    return [info for info in AI_CRAWLERS.values() if info.category == wanted]


def get_crawlers_by_company(company: str) -> list[CrawlerInfo]:
    return [info for info in AI_CRAWLERS.values() if info.company == company]

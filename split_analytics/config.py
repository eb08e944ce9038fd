"""
Split Analytics — tracker configuration.

Environment variables read by TrackerConfig.from_env():
    SPLIT_API_KEY            — Required. Bearer token for the collector.
    SPLIT_API_ENDPOINT       — Collector URL (default: https://split.dev/api/crawler-events).
    SPLIT_BATCH_SIZE         — Events per batch before an immediate flush (default: 10).
    SPLIT_BATCH_INTERVAL_MS  — Max time an event waits in the queue (default: 5000).
    SPLIT_DEBUG              — "1"/"true"/"yes" to log every queue and send step.
    SPLIT_MAX_QUEUE_SIZE     — Queue cap; oldest events are dropped past it (default: 1000).
    SPLIT_REQUEST_TIMEOUT    — Seconds allowed per HTTP call to the collector (default: 10).
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import ConfigurationError

DEFAULT_API_ENDPOINT = "https://split.dev/api/crawler-events"
BATCH_SIZE = 10
BATCH_INTERVAL_MS = 5000
MAX_RETRY_ATTEMPTS = 3
RETRY_DELAY_MS = 1000
MAX_QUEUE_SIZE = 1000
REQUEST_TIMEOUT = 10.0

# Wire protocol version sent as X-Split-Version
PROTOCOL_VERSION = "0.1.0"

_EVENTS_SUFFIX = re.compile(r"/crawler-events$")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"[split-analytics] {name} must be an integer, got {raw!r}") from None


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"[split-analytics] {name} must be a number, got {raw!r}") from None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class TrackerConfig:
    """Delivery settings, fixed for the lifetime of a tracker."""

    api_key: str
    api_endpoint: str = DEFAULT_API_ENDPOINT
    batch_size: int = BATCH_SIZE
    batch_interval_ms: int = BATCH_INTERVAL_MS
    debug: bool = False
    on_error: Optional[Callable[[Exception], None]] = None
    max_queue_size: int = MAX_QUEUE_SIZE
    request_timeout: float = REQUEST_TIMEOUT

    def __post_init__(self) -> None:
        if not isinstance(self.api_key, str) or not self.api_key.strip():
            raise ConfigurationError("[split-analytics] API key is required")
        if not self.api_endpoint:
            object.__setattr__(self, "api_endpoint", DEFAULT_API_ENDPOINT)
        if self.batch_size < 1:
            raise ConfigurationError(f"[split-analytics] batch_size must be >= 1, got {self.batch_size}")
        if self.batch_interval_ms <= 0:
            raise ConfigurationError(
                f"[split-analytics] batch_interval_ms must be > 0, got {self.batch_interval_ms}"
            )
        if self.max_queue_size < self.batch_size:
            raise ConfigurationError(
                f"[split-analytics] max_queue_size ({self.max_queue_size}) "
                f"must be >= batch_size ({self.batch_size})"
            )
        if self.request_timeout <= 0:
            raise ConfigurationError(
                f"[split-analytics] request_timeout must be > 0, got {self.request_timeout}"
            )
        if self.on_error is not None and not callable(self.on_error):
            raise ConfigurationError("[split-analytics] on_error must be callable")

    @property
    def ping_endpoint(self) -> str:
        """Sibling /ping URL of the events endpoint."""
        return _EVENTS_SUFFIX.sub("", self.api_endpoint) + "/ping"

    @property
    def batch_interval(self) -> float:
        """Batch window in seconds."""
        return self.batch_interval_ms / 1000

    @classmethod
    def from_env(cls, **overrides) -> "TrackerConfig":
        """Build a config from SPLIT_* environment variables; keyword args win."""
        values = {
            "api_key": os.environ.get("SPLIT_API_KEY", ""),
            "api_endpoint": os.environ.get("SPLIT_API_ENDPOINT", DEFAULT_API_ENDPOINT),
            "batch_size": _env_int("SPLIT_BATCH_SIZE", BATCH_SIZE),
            "batch_interval_ms": _env_int("SPLIT_BATCH_INTERVAL_MS", BATCH_INTERVAL_MS),
            "debug": _env_flag("SPLIT_DEBUG"),
            "max_queue_size": _env_int("SPLIT_MAX_QUEUE_SIZE", MAX_QUEUE_SIZE),
            "request_timeout": _env_float("SPLIT_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
        }
        values.update(overrides)
        return cls(**values)

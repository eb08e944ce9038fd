"""
Split Analytics — batched crawler event delivery.

CrawlerTracker owns an in-memory queue of visits. A batch goes out when the
queue reaches ``batch_size`` or when the batch window expires, whichever is
first. At most one send runs at a time per tracker; a batch that still fails
after retries is put back at the head of the queue and reported through
``on_error``. Nothing here ever raises into the code that calls ``track()``
except a malformed event.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

import httpx
from pydantic import ValidationError

from .config import (
    MAX_RETRY_ATTEMPTS,
    PROTOCOL_VERSION,
    RETRY_DELAY_MS,
    TrackerConfig,
)
from .crawlers import CrawlerInfo
from .errors import APIError
from .events import build_event
from .models import CrawlerEvent, PingResponse, RequestInfo, TrackingEvent

logger = logging.getLogger(__name__)

USER_AGENT = f"split-analytics-python/{PROTOCOL_VERSION}"

PING_STATUS_MESSAGES = {
    401: "Invalid API key. Check your key in the Split Analytics dashboard.",
    403: "API key access denied. Verify your key has the correct permissions.",
    404: "API endpoint not found. This might be a temporary issue with the Split Analytics service.",
    429: "Rate limit exceeded. Please wait a moment and try again.",
}


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _log_delivery_error(error: Exception) -> None:
    logger.error("[split-analytics] %s", error)


def _ping_status_message(response: httpx.Response) -> str:
    if response.status_code in PING_STATUS_MESSAGES:
        return PING_STATUS_MESSAGES[response.status_code]
    if response.status_code >= 500:
        return "Split Analytics server error. Please try again later."
    return f"HTTP {response.status_code}: {response.reason_phrase}"


class CrawlerTracker:
    """Queue, batch and ship crawler visits to the Split collector."""

    def __init__(
        self,
        config: Union[TrackerConfig, Mapping[str, Any]],
        *,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not isinstance(config, TrackerConfig):
            config = TrackerConfig(**config)
        self.config = config
        self._on_error = config.on_error or _log_delivery_error

        self._queue: list[CrawlerEvent] = []
        self._batch_timer: Optional[asyncio.TimerHandle] = None
        self._is_sending = False
        self._idle = asyncio.Event()
        self._idle.set()
        self._destroyed = False
        self._tasks: set[asyncio.Task] = set()

        self._client = client
        self._owns_client = client is None

        if config.debug:
            logger.info(
                "Tracker initialised: endpoint=%s batch_size=%d batch_interval_ms=%d",
                config.api_endpoint, config.batch_size, config.batch_interval_ms,
            )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def pending_events(self) -> tuple[CrawlerEvent, ...]:
        """Snapshot of the queue, oldest first."""
        return tuple(self._queue)

    @property
    def is_sending(self) -> bool:
        return self._is_sending

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    # ------------------------------------------------------------------
    # Enqueue
    # ------------------------------------------------------------------

    def create_event(
        self,
        crawler: CrawlerInfo,
        request: Union[RequestInfo, Mapping[str, Any]],
        metadata: Optional[dict[str, Any]] = None,
    ) -> TrackingEvent:
        """Build an unstamped event for *crawler* visiting *request*."""
        if not isinstance(request, RequestInfo):
            request = RequestInfo(**request)
        return build_event(crawler, request, metadata)

    async def track(self, event: Union[TrackingEvent, Mapping[str, Any]]) -> None:
        """
        Stamp *event* with the current time and queue it.

        Flushes before returning when the queue reaches ``batch_size``;
        otherwise makes sure a batch timer is pending. Delivery failures
        never surface here.
        """
        if not isinstance(event, TrackingEvent):
            event = TrackingEvent.model_validate(event)

        fields = event.model_dump(exclude={"timestamp"})
        stamped = CrawlerEvent(**fields, timestamp=utc_timestamp())

        self._queue.append(stamped)
        self._enforce_queue_limit()

        if self.config.debug:
            logger.info("Event queued: %s", stamped.to_wire())

        if len(self._queue) >= self.config.batch_size:
            await self.flush()
        else:
            self._schedule_batch()

    def _enforce_queue_limit(self) -> None:
        overflow = len(self._queue) - self.config.max_queue_size
        if overflow > 0:
            del self._queue[:overflow]
            logger.warning(
                "Event queue reached %d, dropped %d oldest event(s)",
                self.config.max_queue_size, overflow,
            )

    def _schedule_batch(self) -> None:
        if self._batch_timer is not None:
            return
        loop = asyncio.get_running_loop()
        self._batch_timer = loop.call_later(self.config.batch_interval, self._on_batch_timer)

    def _on_batch_timer(self) -> None:
        self._batch_timer = None
        if self._queue:
            self._spawn(self.flush())

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    async def flush(self) -> None:
        """
        Send everything queued as one batch.

        No-op while another send is in flight or when the queue is empty.
        On final failure the batch goes back to the head of the queue and
        ``on_error`` is called; nothing is raised. Whatever is left queued
        afterwards gets a fresh batch timer.
        """
        if self._is_sending or not self._queue:
            return

        self._is_sending = True
        self._idle.clear()
        batch = self._queue
        self._queue = []

        try:
            await self._send_batch(batch)
        except asyncio.CancelledError:
            self._queue[:0] = batch
            raise
        except Exception as exc:
            self._queue[:0] = batch
            self._enforce_queue_limit()
            self._report_error(exc)
        finally:
            self._is_sending = False
            self._idle.set()
            # requeued or newly queued events still go out within one window
            if self._queue and not self._destroyed:
                self._schedule_batch()

    def _report_error(self, error: Exception) -> None:
        try:
            self._on_error(error)
        except Exception:
            logger.exception("on_error handler raised")

    async def _send_batch(self, events: list[CrawlerEvent]) -> None:
        payload = {"events": [event.to_wire() for event in events]}
        attempt = 1

        while True:
            try:
                await self._post(payload)
            except Exception as exc:
                retryable = exc.retryable if isinstance(exc, APIError) else True
                if not retryable or attempt >= MAX_RETRY_ATTEMPTS:
                    raise
                delay_ms = RETRY_DELAY_MS * 2 ** (attempt - 1)
                if self.config.debug:
                    logger.info("Retry attempt %d after %dms (%s)", attempt, delay_ms, exc)
                await asyncio.sleep(delay_ms / 1000)
                attempt += 1
            else:
                if self.config.debug:
                    logger.info("Sent %d events", len(events))
                return

    async def _post(self, payload: dict) -> None:
        response = await self._get_client().post(
            self.config.api_endpoint,
            json=payload,
            headers=self._headers(content_type="application/json"),
            timeout=self.config.request_timeout,
        )
        if not response.is_success:
            raise APIError(response.status_code, response.reason_phrase)

    def _headers(self, content_type: str = "") -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "X-Split-Version": PROTOCOL_VERSION,
            "User-Agent": USER_AGENT,
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(timeout=self.config.request_timeout)
        return self._client

    # ------------------------------------------------------------------
    # Health check
    # ------------------------------------------------------------------

    async def ping(self) -> PingResponse:
        """Check connectivity and key validity. Never raises."""
        url = self.config.ping_endpoint
        try:
            response = await self._get_client().get(
                url, headers=self._headers(), timeout=self.config.request_timeout,
            )
        except Exception as exc:
            if self.config.debug:
                logger.info("Ping to %s failed: %r", url, exc)
            return PingResponse(
                status="error",
                message=f"Connection error: {exc or type(exc).__name__}",
                timestamp=utc_timestamp(),
            )

        try:
            data = response.json()
        except ValueError:
            data = None

        if not response.is_success:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("error")
            if self.config.debug:
                logger.info("Ping failed: HTTP %d from %s", response.status_code, url)
            return PingResponse(status="error", message=message or _ping_status_message(response))

        try:
            result = PingResponse.model_validate(data)
        except ValidationError as exc:
            return PingResponse(
                status="error",
                message=f"Unexpected ping response ({exc.error_count()} invalid field(s))",
            )

        if self.config.debug:
            logger.info("Ping successful: %s", result.to_wire())
        return result

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def destroy(self) -> Optional[asyncio.Task]:
        """
        Cancel the batch timer and start a best-effort final flush.

        Returns the flush task so shutdown hooks can await it, or None when
        called without a running event loop (queued events are then lost).
        """
        if self._batch_timer is not None:
            self._batch_timer.cancel()
            self._batch_timer = None
        self._destroyed = True

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            if self._queue:
                logger.warning("destroy() outside an event loop, %d queued event(s) not sent", len(self._queue))
            return None
        return self._spawn(self._final_flush())

    async def _final_flush(self) -> None:
        try:
            await self._idle.wait()
            await self.flush()
        except Exception as exc:
            logger.debug("Final flush failed: %s", exc)
        finally:
            if self._owns_client and self._client is not None:
                await self._client.aclose()

    async def aclose(self) -> None:
        """destroy() and wait for the final flush."""
        task = self.destroy()
        if task is not None:
            await task

    async def __aenter__(self) -> "CrawlerTracker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

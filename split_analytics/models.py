"""
Split Analytics — wire models.

Python attributes are snake_case; the collector speaks camelCase JSON, so
every multi-word field carries an alias and payloads are dumped by alias
with unset optionals left out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Visit events
# ---------------------------------------------------------------------------

class TrackingEvent(BaseModel):
    """A crawler visit before the tracker stamps it."""

    model_config = ConfigDict(populate_by_name=True)

    domain: str
    path: str
    crawler_name: str = Field(alias="crawlerName")
    crawler_company: str = Field(alias="crawlerCompany")
    crawler_category: str = Field(alias="crawlerCategory")
    user_agent: str = Field(alias="userAgent")
    status_code: Optional[int] = Field(default=None, alias="statusCode")
    response_time_ms: Optional[Union[int, float]] = Field(default=None, alias="responseTimeMs")
    country: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CrawlerEvent(TrackingEvent):
    """A queued visit. ``timestamp`` is ISO-8601 UTC, set at enqueue time."""

    timestamp: str


# ---------------------------------------------------------------------------
# Ping
# ---------------------------------------------------------------------------

class PingConnection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    authenticated: bool
    key_name: str = Field(alias="keyName")
    workspace: str
    domain: Optional[str] = None
    plan: Optional[str] = None


class PingResponse(BaseModel):
    status: Literal["ok", "error"]
    connection: Optional[PingConnection] = None
    message: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Inbound request descriptor
# ---------------------------------------------------------------------------

@dataclass
class RequestInfo:
    """What the host adapter knows about a request it served."""
    url: str
    headers: Mapping[str, Any] = field(default_factory=dict)
    status_code: Optional[int] = None
    response_time_ms: Optional[Union[int, float]] = None

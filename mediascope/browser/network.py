"""
Network event recorder.

Listeners are attached once per page and stay attached for the page's
lifetime; the `recording` flag decides whether an event is kept. The
buffer only grows while recording is on and is reset by start/clear.

Usage:
    recorder = NetworkRecorder()
    recorder.attach(page)
    recorder.start()
    ...
    recorder.get(url_pattern=r"\\.m3u8")
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional

logger = logging.getLogger(__name__)


@dataclass
class NetworkRecord:
    direction: str  # "request" | "response"
    url: str
    method: Optional[str] = None
    status: Optional[int] = None
    resource_type: Optional[str] = None
    headers: dict[str, str] = field(default_factory=dict)
    timestamp: str = ""

    def to_dict(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "type": self.direction,
            "url": self.url,
            "resourceType": self.resource_type,
            "headers": self.headers,
            "timestamp": self.timestamp,
        }
        if self.direction == "request":
            record["method"] = self.method
        else:
            record["status"] = self.status
        return record


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class NetworkRecorder:
    """
    Append-only capture buffer for request/response events.

    Args:
        limit: Most recent records returned by `get`.
    """

    def __init__(self, limit: int = 100) -> None:
        self.limit = limit
        self.recording = False
        self._records: list[NetworkRecord] = []

    # ─── Lifecycle ───────────────────────────────────────────────────

    def attach(self, page: Any) -> None:
        """Subscribe to the page's request/response events."""
        page.on("request", self.on_request)
        page.on("response", self.on_response)

    def start(self) -> None:
        self._records = []
        self.recording = True
        logger.info("network_recording_started")

    def stop(self) -> int:
        self.recording = False
        logger.info("network_recording_stopped", extra={"count": len(self._records)})
        return len(self._records)

    def clear(self) -> None:
        self._records = []

    # ─── Event Handlers ──────────────────────────────────────────────

    def on_request(self, request: Any) -> None:
        if not self.recording:
            return
        try:
            record = NetworkRecord(
                direction="request",
                url=request.url,
                method=request.method,
                resource_type=request.resource_type,
                headers=dict(request.headers),
                timestamp=_now(),
            )
        except Exception as e:
            logger.debug("network_request_skipped", extra={"error": str(e)})
            return
        self._records.append(record)

    def on_response(self, response: Any) -> None:
        if not self.recording:
            return
        try:
            record = NetworkRecord(
                direction="response",
                url=response.url,
                status=response.status,
                method=response.request.method,
                resource_type=response.request.resource_type,
                headers=dict(response.headers),
                timestamp=_now(),
            )
        except Exception as e:
            # Header reads fail for redirects and aborted responses.
            logger.debug("network_response_skipped", extra={"error": str(e)})
            return
        self._records.append(record)

    # ─── Queries ─────────────────────────────────────────────────────

    @property
    def records(self) -> list[NetworkRecord]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def filter(
        self,
        url_pattern: Optional[str] = None,
        method: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> list[NetworkRecord]:
        records: Iterable[NetworkRecord] = self._records
        if url_pattern:
            regex = re.compile(url_pattern)
            records = [r for r in records if regex.search(r.url)]
        if method:
            records = [r for r in records if r.method == method]
        if resource_type:
            records = [r for r in records if r.resource_type == resource_type]
        return list(records)

    def get(
        self,
        url_pattern: Optional[str] = None,
        method: Optional[str] = None,
        resource_type: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Query recorded events.

        Returns:
            Dict with the recording flag, the filtered count, and at most
            `limit` of the most recent matching records.
        """
        matched = self.filter(url_pattern, method, resource_type)
        return {
            "recording": self.recording,
            "count": len(matched),
            "records": [r.to_dict() for r in matched[-self.limit:]],
        }

    def request_urls(self) -> list[str]:
        """URLs of every captured request, in capture order."""
        return [r.url for r in self._records if r.direction == "request"]

    def json_responses(self) -> list[dict[str, Any]]:
        found = []
        for r in self._records:
            if r.direction != "response":
                continue
            content_type = r.headers.get("content-type", "")
            if "json" in content_type:
                found.append({"url": r.url, "timestamp": r.timestamp})
        return found

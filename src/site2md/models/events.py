"""Event types emitted while fetching and searching."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """Types of events emitted during fetch operations."""

    # Fetch phase
    FETCH_STARTED = "fetch_started"
    FETCH_RETRYING = "fetch_retrying"
    FETCH_COMPLETED = "fetch_completed"
    FETCH_FAILED = "fetch_failed"

    # Processing phase
    OPENAPI_DETECTED = "openapi_detected"
    CONTENT_EXTRACTED = "content_extracted"
    PAGE_CONVERTED = "page_converted"
    PAGE_ANALYZED = "page_analyzed"

    # Search
    SEARCH_STARTED = "search_started"
    SITE_SCORED = "site_scored"
    SEARCH_COMPLETED = "search_completed"


@dataclass
class FetchEvent:
    """
    Event emitted during fetch operations.

    Example:
        def on_event(event: FetchEvent) -> None:
            if event.type == EventType.FETCH_RETRYING:
                print(f"Retry {event.retry_attempt}: {event.url}")
            elif event.is_error:
                print(f"Error: {event.url} - {event.error}")
    """

    type: EventType

    # Timestamp (always UTC)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    url: Optional[str] = None
    message: Optional[str] = None
    error: Optional[str] = None

    bytes_downloaded: Optional[int] = None
    status_code: Optional[int] = None
    content_type: Optional[str] = None
    retry_attempt: Optional[int] = None
    site: Optional[str] = None  # configured site name, when known
    relevance: Optional[float] = None

    @property
    def is_error(self) -> bool:
        """Check if this is an error event."""
        return self.type == EventType.FETCH_FAILED


@dataclass
class FetchStats:
    """
    Cumulative statistics for one WebsiteFetcher session.

    Updated from the event stream: a page counts as fetched once it has been
    analyzed (or recognized as an API document) and as failed when the
    pipeline reports a failure.
    """

    pages_fetched: int = 0
    pages_failed: int = 0
    api_documents: int = 0
    bytes_downloaded: int = 0

    def record(self, event: FetchEvent) -> None:
        if event.type == EventType.FETCH_COMPLETED:
            self.bytes_downloaded += event.bytes_downloaded or 0
        elif event.type == EventType.OPENAPI_DETECTED:
            self.pages_fetched += 1
            self.api_documents += 1
        elif event.type == EventType.PAGE_ANALYZED:
            self.pages_fetched += 1
        elif event.is_error:
            self.pages_failed += 1

    @property
    def success_rate(self) -> float:
        """Percentage of finished fetches that succeeded."""
        finished = self.pages_fetched + self.pages_failed
        return self.pages_fetched / finished * 100 if finished else 0.0

    def to_dict(self) -> dict:
        return {
            "pages_fetched": self.pages_fetched,
            "pages_failed": self.pages_failed,
            "api_documents": self.api_documents,
            "bytes_downloaded": self.bytes_downloaded,
            "success_rate": round(self.success_rate, 1),
        }

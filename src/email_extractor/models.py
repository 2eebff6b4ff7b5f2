"""Protocols and lightweight model types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class Fetcher(Protocol):
    """Contract for page fetchers."""

    def fetch(self, url: str) -> str:
        """Return page content for a URL or raise FetchError."""


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of one extraction request."""

    success: bool
    url: str
    emails: tuple[str, ...] = ()
    error: str | None = None
    error_kind: str | None = None
    status_code: int | None = None
    time_taken_ms: int = 0
    method: str = "simple"
    timestamp: str = ""
    note: str | None = None

    @property
    def count(self) -> int:
        return len(self.emails)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public JSON shape."""
        if not self.success:
            return {"success": False, "url": self.url, "error": self.error}
        payload: dict[str, Any] = {
            "success": True,
            "url": self.url,
            "count": self.count,
            "emails": list(self.emails),
            "timeTaken": self.time_taken_ms,
            "method": self.method,
            "timestamp": self.timestamp,
        }
        if self.note:
            payload["note"] = self.note
        return payload


@dataclass(frozen=True)
class RateLimitDecision:
    """Result of counting one request against a client's window."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float
    retry_after: int = 0

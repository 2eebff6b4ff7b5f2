"""Core extraction pipeline: validate, fetch, extract, report."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from tqdm import tqdm

from .config import FetchConfig
from .errors import FetchError, HTTPStatusError, InvalidURLError
from .extraction import extract_emails_from_html
from .fetchers import RequestsFetcher, make_session
from .models import ExtractionResult, Fetcher
from .validation import is_supported_url

ERROR_MESSAGES = {
    "invalid_url": "Invalid URL format",
    "not_found": "Website not found. Please check the URL.",
    "connection_refused": "Cannot connect to the website. It might be blocking requests.",
    "timeout": "The website took too long to respond.",
    "size_exceeded": "The website response is too large to process.",
    "network": "Failed to extract emails",
}

Clock = Callable[[], float]


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def describe_error(exc: FetchError) -> str:
    """Human-readable message for a fetch failure."""
    if isinstance(exc, HTTPStatusError):
        return f"The website responded with HTTP {exc.status_code}."
    return ERROR_MESSAGES.get(exc.kind, ERROR_MESSAGES["network"])


def build_fetcher(config: FetchConfig, *, logger: logging.Logger) -> RequestsFetcher:
    """Build the default requests-backed fetcher."""
    return RequestsFetcher(session=make_session(config.user_agent), config=config, logger=logger)


def extract(
    url: str,
    *,
    fetcher: Fetcher,
    logger: logging.Logger,
    method: str = "simple",
    note: str | None = None,
    clock: Clock = time.monotonic,
) -> ExtractionResult:
    """Extract emails from one URL; fetch failures become failed results."""
    started = clock()
    try:
        if not is_supported_url(url):
            raise InvalidURLError(f"Unsupported URL: {url}")
        html = fetcher.fetch(url)
    except FetchError as exc:
        logger.warning("Extraction failed for %s (%s): %s", url, exc.kind, exc)
        return ExtractionResult(
            success=False,
            url=url,
            error=describe_error(exc),
            error_kind=exc.kind,
            status_code=exc.status_code if isinstance(exc, HTTPStatusError) else None,
            method=method,
            timestamp=_utc_timestamp(),
        )

    emails = extract_emails_from_html(html, logger)
    elapsed_ms = int((clock() - started) * 1000)
    logger.info("Extracted %d emails from %s in %dms", len(emails), url, elapsed_ms)
    return ExtractionResult(
        success=True,
        url=url,
        emails=tuple(emails),
        time_taken_ms=elapsed_ms,
        method=method,
        timestamp=_utc_timestamp(),
        note=note,
    )


def extract_many(
    urls: Sequence[str],
    *,
    fetcher: Fetcher,
    logger: logging.Logger,
    show_progress: bool = True,
) -> list[ExtractionResult]:
    """Run independent extractions in input order."""
    iterator = tqdm(urls, desc="extracting pages") if show_progress else urls
    return [extract(url, fetcher=fetcher, logger=logger) for url in iterator]

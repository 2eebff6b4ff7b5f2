"""HTTP fetcher with a hard timeout and body size cap."""

from __future__ import annotations

import logging
import socket
import time
from collections.abc import Callable

from requests import Response, Session
from requests.adapters import HTTPAdapter
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import (
    InvalidSchema,
    InvalidURL,
    MissingSchema,
    RequestException,
    Timeout,
)
from urllib3.exceptions import NameResolutionError, NewConnectionError
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError

from .config import FetchConfig, browser_headers
from .errors import (
    ConnectionRefusedFetchError,
    DNSError,
    FetchError,
    FetchTimeoutError,
    HTTPStatusError,
    InvalidURLError,
    NetworkError,
    SizeExceededError,
)
from .validation import is_supported_url

DNS_FAILURE_MARKERS = (
    "NameResolutionError",
    "getaddrinfo",
    "Name or service not known",
    "nodename nor servname",
    "No address associated with hostname",
    "Temporary failure in name resolution",
)
REFUSED_MARKERS = ("Connection refused", "ConnectionRefusedError", "actively refused")


def make_session(user_agent: str) -> Session:
    """Create a requests session with browser headers and retries disabled."""
    session = Session()
    session.headers.update(browser_headers(user_agent))
    adapter = HTTPAdapter(max_retries=0)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


def _exception_chain(exc: BaseException) -> list[BaseException]:
    chain: list[BaseException] = []
    pending: list[BaseException] = [exc]
    while pending:
        current = pending.pop()
        if current in chain:
            continue
        chain.append(current)
        for arg in current.args:
            if isinstance(arg, BaseException):
                pending.append(arg)
        for linked in (current.__cause__, current.__context__, getattr(current, "reason", None)):
            if isinstance(linked, BaseException):
                pending.append(linked)
    return chain


def classify_connection_error(exc: RequestsConnectionError) -> FetchError:
    """Map a requests connection failure onto the timeout/DNS/refused/network taxonomy."""
    chain = _exception_chain(exc)
    text = " ".join(f"{type(item).__name__}: {item}" for item in chain)
    if any(isinstance(item, (NameResolutionError, socket.gaierror)) for item in chain) or any(
        marker in text for marker in DNS_FAILURE_MARKERS
    ):
        return DNSError(str(exc))
    if any(isinstance(item, ConnectionRefusedError) for item in chain) or any(
        marker in text for marker in REFUSED_MARKERS
    ):
        return ConnectionRefusedFetchError(str(exc))
    # urllib3 derives connection failures from its TimeoutError; only real timeouts count.
    if any(
        isinstance(item, (Urllib3TimeoutError, TimeoutError))
        and not isinstance(item, NewConnectionError)
        for item in chain
    ):
        return FetchTimeoutError("Request timeout")
    return NetworkError(str(exc))


class RequestsFetcher:
    """Requests-based fetcher: one GET, no retries, bounded time and size."""

    def __init__(
        self,
        *,
        session: Session,
        config: FetchConfig,
        logger: logging.Logger,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._config = config
        self._logger = logger
        self._clock = clock

    def fetch(self, url: str) -> str:
        if not is_supported_url(url):
            raise InvalidURLError(f"Unsupported URL: {url}")
        deadline = self._clock() + self._config.timeout
        try:
            response = self._session.get(url, timeout=self._config.timeout, stream=True)
        except Timeout as exc:
            raise FetchTimeoutError("Request timeout") from exc
        except RequestsConnectionError as exc:
            error = classify_connection_error(exc)
            self._logger.debug("Connection to %s failed (%s): %s", url, error.kind, exc)
            raise error from exc
        except (InvalidURL, InvalidSchema, MissingSchema) as exc:
            raise InvalidURLError(str(exc)) from exc
        except RequestException as exc:
            raise FetchError(str(exc)) from exc

        try:
            if not 200 <= response.status_code < 300:
                raise HTTPStatusError(response.status_code, str(response.reason or ""))
            body = self._read_body(response, deadline)
        finally:
            response.close()

        self._logger.debug("Fetched %s (%d bytes)", url, len(body))
        return body.decode("utf-8", errors="replace")

    def _read_body(self, response: Response, deadline: float) -> bytes:
        limit = self._config.max_bytes
        declared = response.headers.get("Content-Length", "")
        if declared.isdigit() and int(declared) > limit:
            raise SizeExceededError(limit)

        chunks: list[bytes] = []
        total = 0
        try:
            for chunk in response.iter_content(self._config.chunk_size):
                if not chunk:
                    continue
                total += len(chunk)
                if total > limit:
                    raise SizeExceededError(limit)
                if self._clock() > deadline:
                    raise FetchTimeoutError("Request timeout")
                chunks.append(chunk)
        except Timeout as exc:
            raise FetchTimeoutError("Request timeout") from exc
        except RequestsConnectionError as exc:
            raise classify_connection_error(exc) from exc
        except RequestException as exc:
            raise FetchError(str(exc)) from exc
        return b"".join(chunks)

import logging
import socket
from collections.abc import Iterator
from typing import Any

import pytest
import requests
from urllib3.exceptions import (
    MaxRetryError,
    NameResolutionError,
    NewConnectionError,
    ReadTimeoutError,
)

from email_extractor.config import DEFAULT_MAX_BYTES, FetchConfig
from email_extractor.errors import (
    ConnectionRefusedFetchError,
    DNSError,
    FetchTimeoutError,
    HTTPStatusError,
    InvalidURLError,
    NetworkError,
    SizeExceededError,
)
from email_extractor.fetchers import RequestsFetcher, classify_connection_error, make_session

NO_CONN: Any = None


class FakeResponse:
    def __init__(
        self,
        *,
        status_code: int = 200,
        chunks: list[bytes] | None = None,
        headers: dict[str, str] | None = None,
        reason: str = "OK",
        error: Exception | None = None,
    ) -> None:
        self.status_code = status_code
        self.headers = headers or {}
        self.reason = reason
        self._chunks = chunks or []
        self._error = error
        self.consumed = 0
        self.closed = False

    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        _ = chunk_size
        for chunk in self._chunks:
            self.consumed += 1
            yield chunk
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


class FakeSession:
    def __init__(
        self, response: FakeResponse | None = None, error: Exception | None = None
    ) -> None:
        self._response = response
        self._error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        if self._error is not None:
            raise self._error
        assert self._response is not None
        return self._response


def _fetcher(session: FakeSession, **config: Any) -> RequestsFetcher:
    return RequestsFetcher(
        session=session,  # type: ignore[arg-type]
        config=FetchConfig(**config),
        logger=logging.getLogger("test"),
    )


def test_fetch_returns_decoded_body() -> None:
    response = FakeResponse(chunks=[b"<p>Hi ", "café a@b.io</p>".encode()])
    session = FakeSession(response)
    assert _fetcher(session).fetch("https://shop.io") == "<p>Hi café a@b.io</p>"
    url, kwargs = session.calls[0]
    assert url == "https://shop.io"
    assert kwargs == {"timeout": 10.0, "stream": True}
    assert response.closed is True


def test_fetch_rejects_unsupported_urls_without_request() -> None:
    session = FakeSession(FakeResponse())
    with pytest.raises(InvalidURLError):
        _fetcher(session).fetch("file:///etc/passwd")
    assert session.calls == []


def test_non_2xx_status_raises_http_error() -> None:
    response = FakeResponse(status_code=404, reason="Not Found", chunks=[b"missing"])
    with pytest.raises(HTTPStatusError) as excinfo:
        _fetcher(FakeSession(response)).fetch("https://example.test/404")
    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == "HTTP 404: Not Found"
    assert response.consumed == 0
    assert response.closed is True


def test_streamed_body_over_cap_aborts() -> None:
    response = FakeResponse(chunks=[b"12345", b"67890", b"x", b"never read"])
    with pytest.raises(SizeExceededError):
        _fetcher(FakeSession(response), max_bytes=10, chunk_size=5).fetch("https://shop.io")
    assert response.consumed == 3
    assert response.closed is True


def test_body_exactly_at_cap_is_accepted() -> None:
    response = FakeResponse(chunks=[b"12345", b"67890"])
    assert _fetcher(FakeSession(response), max_bytes=10).fetch("https://shop.io") == "1234567890"


def test_declared_length_over_cap_fails_before_reading() -> None:
    response = FakeResponse(chunks=[b"tiny"], headers={"Content-Length": "11"})
    with pytest.raises(SizeExceededError):
        _fetcher(FakeSession(response), max_bytes=10).fetch("https://shop.io")
    assert response.consumed == 0


def test_default_cap_is_ten_mebibytes() -> None:
    assert FetchConfig().max_bytes == DEFAULT_MAX_BYTES == 10 * 1024 * 1024
    assert FetchConfig().timeout == 10.0


def test_connect_timeout_maps_to_timeout() -> None:
    session = FakeSession(error=requests.exceptions.ConnectTimeout("timed out"))
    with pytest.raises(FetchTimeoutError):
        _fetcher(session).fetch("https://slow.io")


def test_read_timeout_while_streaming_maps_to_timeout() -> None:
    stalled = requests.exceptions.ConnectionError(
        ReadTimeoutError(None, "https://slow.io", "Read timed out.")  # type: ignore[arg-type]
    )
    response = FakeResponse(chunks=[b"partial"], error=stalled)
    with pytest.raises(FetchTimeoutError):
        _fetcher(FakeSession(response)).fetch("https://slow.io")


def test_total_deadline_is_enforced_while_streaming() -> None:
    ticks = iter([0.0, 5.0, 11.0])
    fetcher = RequestsFetcher(
        session=FakeSession(FakeResponse(chunks=[b"a", b"b"])),  # type: ignore[arg-type]
        config=FetchConfig(timeout=10.0),
        logger=logging.getLogger("test"),
        clock=lambda: next(ticks),
    )
    with pytest.raises(FetchTimeoutError):
        fetcher.fetch("https://slow.io")


def test_dns_failure_maps_to_dns_error() -> None:
    error = requests.exceptions.ConnectionError(socket.gaierror(-2, "Name or service not known"))
    with pytest.raises(DNSError) as excinfo:
        _fetcher(FakeSession(error=error)).fetch("https://missing.invalid")
    assert excinfo.value.kind == "not_found"


def test_refused_connection_maps_to_refused_error() -> None:
    error = requests.exceptions.ConnectionError(ConnectionRefusedError(111, "Connection refused"))
    with pytest.raises(ConnectionRefusedFetchError) as excinfo:
        _fetcher(FakeSession(error=error)).fetch("https://closed.io")
    assert excinfo.value.kind == "connection_refused"


def test_urllib3_name_resolution_chain_maps_to_dns_error() -> None:
    reason = NameResolutionError(
        "no-such-host.invalid", NO_CONN, socket.gaierror(-2, "Name or service not known")
    )
    error = requests.exceptions.ConnectionError(
        MaxRetryError(None, "/", reason=reason)  # type: ignore[arg-type]
    )
    assert type(classify_connection_error(error)) is DNSError


def test_urllib3_refused_chain_maps_to_refused_error() -> None:
    reason = NewConnectionError(
        NO_CONN, "Failed to establish a new connection: [Errno 111] Connection refused"
    )
    reason.__cause__ = ConnectionRefusedError(111, "Connection refused")
    error = requests.exceptions.ConnectionError(
        MaxRetryError(None, "/", reason=reason)  # type: ignore[arg-type]
    )
    assert type(classify_connection_error(error)) is ConnectionRefusedFetchError


def test_unexplained_new_connection_error_is_not_a_timeout() -> None:
    reason = NewConnectionError(NO_CONN, "Failed to establish a new connection: unreachable")
    error = requests.exceptions.ConnectionError(
        MaxRetryError(None, "/", reason=reason)  # type: ignore[arg-type]
    )
    assert type(classify_connection_error(error)) is NetworkError


def test_classify_connection_error_by_message() -> None:
    dns = requests.exceptions.ConnectionError("Failed to resolve: NameResolutionError(...)")
    assert isinstance(classify_connection_error(dns), DNSError)
    other = classify_connection_error(requests.exceptions.ConnectionError("reset by peer"))
    assert type(other) is NetworkError


def test_make_session_sets_browser_headers_and_no_retries() -> None:
    session = make_session("my-agent")
    assert session.headers["User-Agent"] == "my-agent"
    assert session.headers["Accept-Language"] == "en-US,en;q=0.9"
    assert session.get_adapter("https://shop.io").max_retries.total == 0

"""Custom exceptions for the extractor domain."""


class ExtractorError(Exception):
    """Base exception for this project."""


class ConfigError(ExtractorError):
    """Raised when runtime configuration is invalid."""


class FetchError(ExtractorError):
    """Raised when fetching a URL fails."""

    kind = "network"


class InvalidURLError(FetchError):
    """Raised when the target is not an absolute HTTP(S) URL."""

    kind = "invalid_url"


class NetworkError(FetchError):
    """Raised on connection-level failures."""

    kind = "network"


class DNSError(NetworkError):
    """Raised when the target host cannot be resolved."""

    kind = "not_found"


class ConnectionRefusedFetchError(NetworkError):
    """Raised when the target host refuses the connection."""

    kind = "connection_refused"


class FetchTimeoutError(FetchError):
    """Raised when the request does not complete in time."""

    kind = "timeout"


class SizeExceededError(FetchError):
    """Raised when the response body grows past the size cap."""

    kind = "size_exceeded"

    def __init__(self, limit: int) -> None:
        super().__init__(f"Response too large (limit {limit} bytes)")
        self.limit = limit


class HTTPStatusError(FetchError):
    """Raised when the response status is outside the 2xx range."""

    kind = "http_error"

    def __init__(self, status_code: int, reason: str = "") -> None:
        message = f"HTTP {status_code}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason

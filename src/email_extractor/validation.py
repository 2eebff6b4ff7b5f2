"""Validation, false-positive filtering and runtime guardrails."""

from __future__ import annotations

import ipaddress
import re
import socket
from pathlib import Path
from urllib.parse import urlparse

from .errors import ConfigError

EMAIL_PATTERN = r"[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}(?:\.[a-zA-Z]{2,})?"
STRICT_EMAIL_REGEX = re.compile(rf"^{EMAIL_PATTERN}$")

MIN_EMAIL_LENGTH = 6
IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".svg")
FALSE_POSITIVES = (
    "example.com",
    "example.org",
    "domain.com",
    "email.com",
    "test.com",
    "yourdomain.com",
    "yoursite.com",
    "sentry.io",
    "wixpress.com",
    "example@example",
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".css",
    ".js",
    ".webp",
    "email@email",
    "your@email",
    "you@example",
)

INTERNAL_HOSTNAMES = {"localhost"}
INTERNAL_LABELS = {"local", "internal", "localhost"}


def is_supported_url(url: str) -> bool:
    """Allow only absolute HTTP(S) URLs with a hostname."""
    try:
        parsed = urlparse(url)
        hostname = parsed.hostname
    except ValueError:
        return False
    if any(char.isspace() for char in parsed.netloc):
        return False
    return parsed.scheme in {"http", "https"} and bool(hostname)


def normalize_target_url(raw: str) -> str:
    """Trim input and assume https:// when no scheme is given."""
    value = raw.strip()
    if not value.startswith(("http://", "https://")):
        value = f"https://{value}"
    return value


def host_address(hostname: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    """Parse an IP literal, including the short, decimal and hex IPv4 forms resolvers accept."""
    try:
        return ipaddress.ip_address(hostname)
    except ValueError:
        pass
    try:
        return ipaddress.IPv4Address(socket.inet_aton(hostname))
    except OSError:
        return None


def is_internal_host(url: str) -> bool:
    """Return True for loopback, private and intranet-style hosts."""
    hostname = (urlparse(url).hostname or "").lower().rstrip(".")
    if not hostname or hostname in INTERNAL_HOSTNAMES:
        return True
    address = host_address(hostname)
    if address is None:
        return any(label in INTERNAL_LABELS for label in hostname.split("."))
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
    )


def is_valid_email(value: str) -> bool:
    """Strict format check: the whole string must be one email-shaped token."""
    return bool(STRICT_EMAIL_REGEX.match(value))


def is_false_positive(value: str) -> bool:
    """Return True when the address looks like a placeholder or asset name."""
    lowered = value.lower()
    return any(marker in lowered for marker in FALSE_POSITIVES)


def keep_email(candidate: str) -> bool:
    """Apply every validity and false-positive rule to one candidate."""
    if not is_valid_email(candidate) or len(candidate) < MIN_EMAIL_LENGTH:
        return False
    _, sep, domain = candidate.partition("@")
    if not sep or "." not in domain:
        return False
    if candidate.endswith(IMAGE_SUFFIXES):
        return False
    return not is_false_positive(candidate)


def filter_emails(candidates: list[str]) -> list[str]:
    """Keep only candidates passing keep_email, preserving input order."""
    return [item for item in candidates if keep_email(item)]


def load_lines_from_file(path: str) -> list[str]:
    """Load non-empty lines from a UTF-8 text file."""
    content = Path(path).read_text(encoding="utf-8")
    return [line.strip() for line in content.splitlines() if line.strip()]


def validate_fetch_constraints(*, timeout: float, max_bytes: int, chunk_size: int) -> None:
    """Validate fetch limits and raise ConfigError on invalid values."""
    if timeout <= 0:
        raise ConfigError("--timeout must be > 0.")
    if max_bytes < 1:
        raise ConfigError("max_bytes must be >= 1.")
    if chunk_size < 1:
        raise ConfigError("chunk_size must be >= 1.")


def validate_server_constraints(
    *,
    port: int,
    rate_limit_points: int,
    rate_limit_duration: float,
    sweep_interval: float,
) -> None:
    """Validate API settings and raise ConfigError on invalid values."""
    if not 0 < port < 65536:
        raise ConfigError("PORT must be between 1 and 65535.")
    if rate_limit_points < 1:
        raise ConfigError("RATE_LIMIT_POINTS must be >= 1.")
    if rate_limit_duration <= 0:
        raise ConfigError("RATE_LIMIT_DURATION must be > 0.")
    if sweep_interval <= 0:
        raise ConfigError("sweep interval must be > 0.")

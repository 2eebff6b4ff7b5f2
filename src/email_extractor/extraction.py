"""Pure extraction utilities: parse, scan, filter and sort."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from bs4 import BeautifulSoup
from bs4.element import CData, NavigableString, Script, Stylesheet, TemplateString

from .logging_utils import get_logger
from .validation import EMAIL_PATTERN, filter_emails, is_valid_email

EMAIL_REGEX = re.compile(EMAIL_PATTERN)
MAILTO_PREFIX = "mailto:"

# Script, style and template strings are page text too; comments are not.
TEXT_STRING_TYPES = (NavigableString, CData, Script, Stylesheet, TemplateString)
BLOCK_TAGS = [
    "address", "article", "aside", "blockquote", "br", "dd", "div", "dl", "dt",
    "figcaption", "figure", "footer", "form", "h1", "h2", "h3", "h4", "h5", "h6",
    "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section", "table",
    "td", "th", "tr", "ul",
]

# Root collation order: whitespace and punctuation, then digits, then letters.
PUNCTUATION_ORDER = "\t\n\r _-,;:!?.'\"()[]{}@*/\\&#%`^+<=>|~$"
_DIGIT_BASE = len(PUNCTUATION_ORDER)
_LETTER_BASE = _DIGIT_BASE + 10
_OTHER_BASE = _LETTER_BASE + 26


def parse_document(html: str) -> BeautifulSoup:
    """Parse page markup into a navigable tree."""
    return BeautifulSoup(html or "", "html.parser")


def visible_text(soup: BeautifulSoup) -> str:
    """Concatenate every text node under <body>, or the whole document when there is none.

    Inline markup is joined without a separator, so ``<span>info</span>@acme.io``
    still reads as one address. Block-level elements are padded with a space
    so text from neighbouring paragraphs or cells does not run together.
    """
    root = soup.body or soup
    for tag in root.find_all(BLOCK_TAGS):
        tag.insert_before(" ")
        tag.insert_after(" ")
    return root.get_text("", types=TEXT_STRING_TYPES)


def mailto_address(href: str) -> str:
    """Strip the mailto: scheme and any query string from an href."""
    address = href.strip()[len(MAILTO_PREFIX) :]
    return address.split("?", maxsplit=1)[0].strip()


def mailto_addresses(soup: BeautifulSoup) -> list[str]:
    """Collect valid addresses from mailto: anchors in document order."""
    addresses: list[str] = []
    for anchor in soup.find_all("a", href=True):
        href = str(anchor["href"]).strip()
        if not href.lower().startswith(MAILTO_PREFIX):
            continue
        address = mailto_address(href)
        if address and is_valid_email(address):
            addresses.append(address)
    return addresses


def scan_text(text: str) -> list[str]:
    """Return every non-overlapping email-shaped match in text."""
    return [match.group(0) for match in EMAIL_REGEX.finditer(text or "")]


def extract_candidates(html: str) -> list[str]:
    """Union of text matches and mailto addresses, first-seen order, exact dedupe."""
    soup = parse_document(html)
    mailto = mailto_addresses(soup)
    matches = [item for item in scan_text(visible_text(soup)) if is_valid_email(item)]
    return list(dict.fromkeys(matches + mailto))


def _primary_weight(char: str) -> int:
    index = PUNCTUATION_ORDER.find(char)
    if index >= 0:
        return index
    if "0" <= char <= "9":
        return _DIGIT_BASE + ord(char) - ord("0")
    lowered = char.lower()
    if "a" <= lowered <= "z":
        return _LETTER_BASE + ord(lowered) - ord("a")
    return _OTHER_BASE + ord(lowered[0])


def sort_key(email: str) -> tuple[tuple[int, ...], tuple[int, ...], str]:
    # Case only breaks ties, lowercase first.
    primary = tuple(_primary_weight(char) for char in email)
    tertiary = tuple(1 if char.isupper() else 0 for char in email)
    return primary, tertiary, email


def sort_emails(emails: Iterable[str]) -> list[str]:
    """Deduplicate (case-sensitive) and sort in locale collation order."""
    return sorted(set(emails), key=sort_key)


def extract_emails_from_html(html: str, logger: logging.Logger | None = None) -> list[str]:
    """Full extraction pass over one page; malformed markup yields an empty list."""
    log = logger or get_logger()
    try:
        candidates = extract_candidates(html)
    except Exception as exc:  # noqa: BLE001 - malformed pages yield no emails
        log.debug("HTML parsing failed: %s", exc)
        return []
    return sort_emails(filter_emails(candidates))

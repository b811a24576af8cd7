from __future__ import annotations

"""Utility helpers for event scrapers."""

import re
import unicodedata
from typing import Iterable
from urllib.parse import urljoin, urlparse

BRACKETS_RE = re.compile(r"[【】「」『』［］\[\]（）()]")
WHITESPACE_RE = re.compile(r"\s+")

# Date phrases tried in order; the first pattern with any hit wins.
WHEN_PATTERNS = (
    re.compile(r"(?:20\d{2}年)?\s*\d{1,2}\s*月\s*\d{1,2}\s*日(?:\s*[（(][^）)]+[）)])?"),
    re.compile(r"\d{1,2}/\d{1,2}(?:\s*[-〜～]\s*\d{1,2}/\d{1,2})?"),
    re.compile(r"\d{1,2}\s*月(?:\s*\d{1,2}\s*日)?(?:\s*[-〜～]\s*\d{1,2}\s*月?\s*\d{0,2}\s*日?)?"),
)


def normalize_text(value: object) -> str:
    """Return ``value`` as NFKC-normalized lowercase text."""
    if value is None:
        return ""
    return unicodedata.normalize("NFKC", str(value)).lower()


def collapse_whitespace(value: str) -> str:
    return WHITESPACE_RE.sub(" ", value).strip()


def clean_title(label: str) -> str:
    """Drop bracket punctuation from an anchor label."""
    return collapse_whitespace(BRACKETS_RE.sub(" ", label or ""))


def has_any(text: str, words: Iterable[str]) -> bool:
    """Return True if any of ``words`` occurs in ``text`` after normalization."""
    normalized = normalize_text(text)
    return any(normalize_text(word) in normalized for word in words)


def extract_when(label: str) -> str:
    """Pull date-looking phrases out of a label.

    Japanese ``M月D日`` forms (with optional year and weekday) are preferred,
    then ``M/D`` ranges, then bare months. Multiple hits are joined with
    `` / ``. Returns ``""`` when nothing matches.
    """
    text = WHITESPACE_RE.sub(" ", label or "")
    for pattern in WHEN_PATTERNS:
        hits = [m.strip() for m in pattern.findall(text)]
        hits = [h for h in hits if h]
        if hits:
            return " / ".join(hits)
    return ""


def host_of(url: str) -> str | None:
    """Return the network location of ``url`` without a leading ``www.``.

    ``None`` means the URL could not be parsed into a scheme and host.
    """
    try:
        parsed = urlparse(url or "")
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    host = parsed.netloc.lower()
    if host.startswith("www."):
        host = host[4:]
    return host


def absolute_url(href: str, base_url: str) -> str:
    """Resolve ``href`` against ``base_url``; keep it unchanged if that fails."""
    try:
        return urljoin(base_url, href)
    except ValueError:
        return href

"""Fetch source pages and reduce them to plain text and anchor links."""
from __future__ import annotations

import logging
import os
from typing import Iterable, List

import requests
from bs4 import BeautifulSoup
from dotenv import load_dotenv

from ingest.schemas import Link, SourceSnapshot

from .utils import absolute_url, collapse_whitespace, host_of

load_dotenv()

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = float(os.getenv("FETCH_TIMEOUT", "20"))
PAGE_TEXT_LIMIT = 18000
MIN_LABEL_LENGTH = 4

HEADERS = {
    "User-Agent": "Mozilla/5.0",
    "Accept-Language": "ja-JP,ja;q=0.9",
}


def fetch_page(url: str) -> str:
    """Return the HTML body of ``url``; raises ``requests.RequestException`` on failure."""
    resp = requests.get(url, headers=HEADERS, timeout=FETCH_TIMEOUT)
    resp.raise_for_status()
    if resp.encoding is None or resp.encoding.lower() == "iso-8859-1":
        # Many Japanese municipal sites omit the charset header.
        resp.encoding = resp.apparent_encoding
    return resp.text


def extract_links(html: str, base_url: str) -> List[Link]:
    """Collect ``<a href>`` anchors with a usable label.

    Labels are the anchor text with markup removed and whitespace collapsed;
    anchors with labels shorter than four characters are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")
    links: List[Link] = []
    for a_tag in soup.find_all("a", href=True):
        href = a_tag["href"].strip()
        if not href or href.startswith(("#", "javascript:", "mailto:", "tel:")):
            continue
        label = collapse_whitespace(a_tag.get_text(" "))
        if len(label) < MIN_LABEL_LENGTH:
            continue
        url = absolute_url(href, base_url)
        links.append(Link(url=url, label=label, host=host_of(url) or ""))
    return links


def html_to_text(html: str, limit: int = PAGE_TEXT_LIMIT) -> str:
    """Return visible page text with scripts and styles removed."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return collapse_whitespace(soup.get_text(" "))[:limit]


def collect_sources(urls: Iterable[str]) -> SourceSnapshot:
    """Fetch every source in order and merge their text and links.

    A source that fails to download is logged, recorded in
    ``SourceSnapshot.errors`` and skipped.
    """
    snapshot = SourceSnapshot()
    texts: List[str] = []
    for url in urls:
        try:
            html = fetch_page(url)
        except requests.RequestException as exc:
            logger.warning("Failed to fetch %s: %s", url, exc)
            snapshot.errors.append(f"{url}: {exc}")
            continue

        links = extract_links(html, url)
        text = html_to_text(html)
        logger.info("Fetched %s: %d links, %d chars", url, len(links), len(text))
        snapshot.links.extend(links)
        texts.append(text)
        snapshot.fetched += 1

    snapshot.text = "\n\n".join(texts)
    return snapshot

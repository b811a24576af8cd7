"""Utilities for loading the catalog of scraped event sources."""
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

BASE_PATH = Path(__file__).resolve().parent.parent
DEFAULT_CATALOG = BASE_PATH / "sources" / "sagamihara.json"


@dataclass
class EventSource:
    """Represents a single event source."""
    name: str
    url: str
    type: str
    city: str


def load_sources(path: str | Path = DEFAULT_CATALOG) -> list[EventSource]:
    """Load event sources from a JSON catalog file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return [EventSource(**item) for item in data]


def source_urls(path: str | Path = DEFAULT_CATALOG) -> list[str]:
    """Return the catalog URLs in file order, without duplicates."""
    urls: list[str] = []
    for source in load_sources(path):
        if source.url not in urls:
            urls.append(source.url)
    return urls

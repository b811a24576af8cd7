"""End-to-end event search: collect sources, extract, normalize, filter and rank."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Callable, List, Sequence

from dotenv import load_dotenv

from scrapers.link_scraper import (
    events_from_keyword_links,
    events_from_listing,
    events_from_query_links,
    select_links,
)
from scrapers.llm_scraper import extract_events_via_llm, get_openai_api_key
from scrapers.page_scraper import collect_sources

from .cache import SnapshotCache
from .normalizer import normalize_events
from .ranking import filter_and_rank
from .schemas import EventCandidate, Link, SourceSnapshot
from .source_catalog import source_urls

load_dotenv()

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = float(os.getenv("EVENTS_CACHE_TTL", str(6 * 60 * 60)))

MOCK_LINKS = [
    Link(url="https://example.com/koke1", label="苔の観察ワークショップ（相模原市内）", host="example.com"),
    Link(url="https://example.com/koke2", label="川辺でコケ観察ミッション", host="example.com"),
    Link(url="https://example.com/tegei1", label="手芸（刺し子）はじめて教室", host="example.com"),
    Link(url="https://example.com/ami1", label="編み物ミニワークショップ in 橋本", host="example.com"),
    Link(url="https://example.com/mokko", label="木工フリーワーク", host="example.com"),
    Link(url="https://example.com/hanaya", label="花屋のミニブーケづくり体験（相模大野）", host="example.com"),
]


@dataclass
class ExtractionStrategy:
    """A named way of turning a snapshot into raw event dictionaries."""

    name: str
    extract: Callable[[SourceSnapshot, str], List[dict[str, Any]]]


@dataclass
class SearchResult:
    events: List[EventCandidate] = field(default_factory=list)
    strategy: str = "none"
    errors: List[str] = field(default_factory=list)


def _llm_strategy(snapshot: SourceSnapshot, query: str) -> List[dict[str, Any]]:
    if not get_openai_api_key():
        logger.info("No OpenAI key configured, skipping LLM extraction")
        return []
    return extract_events_via_llm(snapshot.text)


def _query_link_strategy(snapshot: SourceSnapshot, query: str) -> List[dict[str, Any]]:
    return events_from_query_links(snapshot.links, query)


def _keyword_link_strategy(snapshot: SourceSnapshot, query: str) -> List[dict[str, Any]]:
    return events_from_keyword_links(snapshot.links, query)


def _listing_strategy(snapshot: SourceSnapshot, query: str) -> List[dict[str, Any]]:
    return events_from_listing(snapshot.links, query)


STRATEGIES: Sequence[ExtractionStrategy] = (
    ExtractionStrategy("llm", _llm_strategy),
    ExtractionStrategy("links", _query_link_strategy),
    ExtractionStrategy("keywords", _keyword_link_strategy),
    ExtractionStrategy("listing", _listing_strategy),
)


def run_strategies(
    snapshot: SourceSnapshot,
    query: str,
    strategies: Sequence[ExtractionStrategy] = STRATEGIES,
    errors: List[str] | None = None,
) -> tuple[str, List[EventCandidate]]:
    """Try each strategy in order and return the first non-empty normalized result.

    A strategy that raises is logged, noted in ``errors`` and skipped.
    """
    for strategy in strategies:
        try:
            raw = strategy.extract(snapshot, query)
        except Exception as exc:
            logger.warning("Extraction strategy %s failed: %s", strategy.name, exc)
            if errors is not None:
                errors.append(f"{strategy.name}: {exc}")
            continue

        events = normalize_events(raw)
        logger.info("Strategy %s produced %d event(s)", strategy.name, len(events))
        if events:
            return strategy.name, events
    return "none", []


def _load_snapshot() -> SourceSnapshot:
    return collect_sources(source_urls())


snapshot_cache: SnapshotCache[SourceSnapshot] = SnapshotCache(
    loader=_load_snapshot,
    ttl_seconds=CACHE_TTL_SECONDS,
    should_cache=lambda snapshot: snapshot.fetched > 0,
)


def search_events(
    query: str,
    lat: float,
    lon: float,
    radius: float,
    *,
    fresh: bool = False,
) -> SearchResult:
    """Find events near ``(lat, lon)`` from the configured sources."""
    snapshot = snapshot_cache.get(fresh=fresh)
    errors = list(snapshot.errors)
    strategy, candidates = run_strategies(snapshot, query, errors=errors)
    ranked = filter_and_rank(candidates, query, lat, lon, radius)
    return SearchResult(events=ranked, strategy=strategy, errors=errors)


def search_mock_events(query: str, lat: float, lon: float, radius: float) -> SearchResult:
    """Run the link heuristics over built-in sample links, without network access."""
    snapshot = SourceSnapshot(links=list(MOCK_LINKS))
    strategy, candidates = run_strategies(snapshot, query, strategies=STRATEGIES[1:])
    ranked = filter_and_rank(candidates, query, lat, lon, radius)
    return SearchResult(events=ranked, strategy=f"mock:{strategy}")


def link_diagnostics(query: str, *, fresh: bool = False, sample_size: int = 12) -> dict[str, Any]:
    """Summarize how the collected links score for ``query``."""
    snapshot = snapshot_cache.get(fresh=fresh)
    kept = select_links(snapshot.links, query)
    return {
        "total_links": len(snapshot.links),
        "kept": len(kept),
        "sample": [{"url": s.url, "label": s.label, "score": s.score} for s in kept[:sample_size]],
        "errors": list(snapshot.errors),
    }

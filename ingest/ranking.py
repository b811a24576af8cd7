"""Deduplication, host capping, radius filtering and scoring of events."""
from __future__ import annotations

import math
import re
from typing import Iterable, List

from scrapers.utils import host_of, normalize_text

from .schemas import EventCandidate

EARTH_RADIUS_KM = 6371.0
MAX_RADIUS_KM = 30.0
DEFAULT_HOST_CAP = 3
RESULT_LIMIT = 20
QUERY_BONUS = 12
# Distance used for scoring when an event has no coordinates.
UNKNOWN_DISTANCE_KM = 99.0

_KEY_STRIP_RE = re.compile(r"[【】「」『』［］\[\]（）()\s]")


def dedupe_key(event: EventCandidate) -> str:
    """Composite identity: canonical title, place and date text."""
    title = _KEY_STRIP_RE.sub("", normalize_text(event.title))
    place = (event.place or "").strip().lower()
    when = (event.when or "").strip().lower()
    return f"{title}@{place}@{when}"


def dedupe_and_cap(events: Iterable[EventCandidate], cap: int = DEFAULT_HOST_CAP) -> List[EventCandidate]:
    """Drop duplicate events and keep at most ``cap`` per source host.

    Iteration order decides which duplicate survives. Events whose URL has no
    parseable host are never capped.
    """
    seen: set[str] = set()
    per_host: dict[str, int] = {}
    kept: List[EventCandidate] = []
    for event in events:
        key = dedupe_key(event)
        if key in seen:
            continue
        seen.add(key)

        host = host_of(event.url)
        if host is not None:
            if per_host.get(host, 0) >= cap:
                continue
            per_host[host] = per_host.get(host, 0) + 1
        kept.append(event)
    return kept


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def clamp_radius(radius: float) -> float:
    return max(0.0, min(float(radius), MAX_RADIUS_KM))


def distance_from(event: EventCandidate, lat: float, lon: float) -> float | None:
    if not event.has_coordinates:
        return None
    return haversine_km(lat, lon, event.lat, event.lon)


def within_radius(events: Iterable[EventCandidate], lat: float, lon: float, radius: float) -> List[EventCandidate]:
    """Keep events within ``radius`` km of the origin, plus any without coordinates."""
    limit = clamp_radius(radius)
    kept: List[EventCandidate] = []
    for event in events:
        distance = distance_from(event, lat, lon)
        if distance is None or distance <= limit:
            kept.append(event)
    return kept


def distance_bucket(distance_km: float) -> int:
    """Proximity points for a distance.

    The distance is rounded half-up to whole kilometres first, so an event
    3.4 km away still lands in the closest bucket.
    """
    km = math.floor(distance_km + 0.5)
    if km <= 3:
        return 15
    if km <= 5:
        return 10
    if km <= 10:
        return 6
    return 2


def matches_query(event: EventCandidate, query: str) -> bool:
    if not query:
        return False
    haystack = " ".join([event.title, " ".join(event.tags), event.description])
    return query in haystack


def score_event(event: EventCandidate, query: str, lat: float, lon: float) -> int:
    """Set and return ``event.score`` and ``event.distance_km``."""
    distance = distance_from(event, lat, lon)
    event.distance_km = distance
    score = distance_bucket(UNKNOWN_DISTANCE_KM if distance is None else distance)
    if matches_query(event, query):
        score += QUERY_BONUS
    event.score = score
    return score


def rank_events(
    events: Iterable[EventCandidate],
    query: str,
    lat: float,
    lon: float,
    limit: int = RESULT_LIMIT,
) -> List[EventCandidate]:
    """Score events, sort by descending score (ties keep input order) and truncate."""
    scored = list(events)
    for event in scored:
        score_event(event, query, lat, lon)
    scored.sort(key=lambda e: e.score, reverse=True)
    return scored[:limit]


def filter_and_rank(
    events: Iterable[EventCandidate],
    query: str,
    lat: float,
    lon: float,
    radius: float,
    cap: int = DEFAULT_HOST_CAP,
) -> List[EventCandidate]:
    """Full post-processing: dedupe, host cap, radius filter, rank."""
    unique = dedupe_and_cap(events, cap=cap)
    nearby = within_radius(unique, lat, lon, radius)
    return rank_events(nearby, query, lat, lon)

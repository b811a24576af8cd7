"""Coerce untrusted event dictionaries into :class:`EventCandidate` records."""
from __future__ import annotations

import math
from typing import Any, Optional

from .schemas import MAX_TAGS, EventCandidate


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value not in (None, ""):
            return value
    return None


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace(",", "").replace("円", "").strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _coordinates(raw: dict[str, Any]) -> tuple[Optional[float], Optional[float]]:
    lat = _first(raw, "lat", "latitude")
    lon = _first(raw, "lon", "lng", "longitude")

    coords = raw.get("coordinates")
    if lat is None and lon is None and coords is not None:
        if isinstance(coords, dict):
            lat = _first(coords, "lat", "latitude")
            lon = _first(coords, "lon", "lng", "longitude")
        elif isinstance(coords, (list, tuple)) and len(coords) == 2:
            lat, lon = coords

    lat_f, lon_f = _number(lat), _number(lon)
    if lat_f is None or lon_f is None:
        return None, None
    if not (-90.0 <= lat_f <= 90.0 and -180.0 <= lon_f <= 180.0):
        return None, None
    return lat_f, lon_f


def _price(value: Any) -> Optional[float]:
    if isinstance(value, str) and value.strip() in ("無料", "free", "Free"):
        return 0.0
    number = _number(value)
    if number is None or number < 0:
        return None
    return number


def _tags(value: Any) -> list[str]:
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return []
    tags = [_text(item) for item in items]
    return [tag for tag in tags if tag][:MAX_TAGS]


def normalize_event(raw: Any) -> Optional[EventCandidate]:
    """Return an :class:`EventCandidate` for ``raw`` or ``None`` if it is not a mapping.

    Missing or malformed fields fall back to empty defaults; coordinates are
    kept only when both parse as in-range numbers.
    """
    if isinstance(raw, EventCandidate):
        return raw
    if not isinstance(raw, dict):
        return None

    lat, lon = _coordinates(raw)
    return EventCandidate(
        title=_text(_first(raw, "title", "name")),
        description=_text(raw.get("description")),
        place=_text(_first(raw, "place", "location", "venue")),
        lat=lat,
        lon=lon,
        price=_price(raw.get("price")),
        when=_text(_first(raw, "when", "date", "datetime")),
        tags=_tags(raw.get("tags")),
        url=_text(_first(raw, "url", "link")),
    )


def normalize_events(items: Any) -> list[EventCandidate]:
    """Normalize a sequence of raw records, skipping anything unusable.

    A record with neither a title nor a url cannot be shown or deduplicated
    and is dropped.
    """
    if not isinstance(items, (list, tuple)):
        return []
    events: list[EventCandidate] = []
    for item in items:
        event = normalize_event(item)
        if event is None or not (event.title or event.url):
            continue
        events.append(event)
    return events

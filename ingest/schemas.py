"""Shared data models for the activity finder."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

MAX_TAGS = 8


@dataclass
class EventCandidate:
    """Normalized event record passed between pipeline stages."""

    title: str = ""
    description: str = ""
    place: str = ""
    lat: Optional[float] = None
    lon: Optional[float] = None
    price: Optional[float] = None
    when: str = ""
    tags: list[str] = field(default_factory=list)
    url: str = ""
    score: int = 0
    distance_km: Optional[float] = None

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON shape served by the API."""
        return {
            "title": self.title,
            "description": self.description,
            "place": self.place,
            "lat": self.lat,
            "lon": self.lon,
            "price": self.price,
            "when": self.when,
            "tags": list(self.tags),
            "url": self.url,
            "score": self.score,
            "distanceKm": self.distance_km,
        }


@dataclass
class Link:
    """An anchor found on a source page."""

    url: str
    label: str
    host: str = ""


@dataclass
class SourceSnapshot:
    """Everything collected from the source pages in one pass."""

    text: str = ""
    links: list[Link] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    fetched: int = 0

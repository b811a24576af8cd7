"""Run one event search against the live sources and print the results as JSON."""
from __future__ import annotations

import argparse
import json
import logging
import os

from ingest.pipeline import search_events, search_mock_events

logger = logging.getLogger(__name__)
if os.getenv("SCRAPER_DEBUG"):
    logging.basicConfig(level=logging.INFO, format="%(message)s")


def run(query: str, lat: float, lon: float, radius: float, mock: bool = False) -> list[dict]:
    """Search events and return them as API-shaped dictionaries."""
    if mock:
        result = search_mock_events(query, lat, lon, radius)
    else:
        result = search_events(query, lat, lon, radius, fresh=True)

    logger.info("Using %s extraction, %d event(s)", result.strategy, len(result.events))
    for error in result.errors:
        logger.info("  error: %s", error)
    return [event.to_dict() for event in result.events]


def main() -> None:
    parser = argparse.ArgumentParser(description="Search Sagamihara-area events once")
    parser.add_argument("--q", default="", help="Keyword, e.g. 苔 or 手芸")
    parser.add_argument("--lat", type=float, default=35.5710)
    parser.add_argument("--lon", type=float, default=139.3707)
    parser.add_argument("--radius", type=float, default=8.0, help="Search radius in km (max 30)")
    parser.add_argument("--mock", action="store_true", help="Use built-in sample links instead of fetching")
    args = parser.parse_args()

    events = run(args.q, args.lat, args.lon, args.radius, mock=args.mock)
    print(json.dumps(events, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""
Startup script for the Sagamihara Activity Finder API server.

Usage:
    python start_api.py                  # Development mode
    python start_api.py --prod           # Production mode
    python start_api.py --port 8080      # Custom port
    python start_api.py --cache-ttl 600  # Refresh sources every 10 minutes
"""

import argparse
import os
import uvicorn


def main():
    """Start the FastAPI server with configurable options."""
    os.environ.setdefault("WATCHFILES_FORCE_POLLING", "1")
    parser = argparse.ArgumentParser(description="Start Sagamihara Activity Finder API")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind to (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8001, help="Port to bind to (default: 8001)")
    parser.add_argument(
        "--prod",
        action="store_true",
        help="Run in production mode (no auto-reload, optimized)"
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes; each keeps its own source cache (default: 1)"
    )
    parser.add_argument(
        "--cache-ttl",
        type=float,
        default=None,
        help="Seconds to reuse scraped sources before refetching (default: 21600)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every fetch and extraction step"
    )

    args = parser.parse_args()

    # Read by the app modules at import time, so set before uvicorn loads them.
    if args.cache_ttl is not None:
        os.environ["EVENTS_CACHE_TTL"] = str(args.cache_ttl)
    if args.verbose:
        os.environ["SCRAPER_DEBUG"] = "1"

    if args.prod:
        print(f"🚀 Starting Sagamihara Activity Finder API in PRODUCTION mode")
        print(f"   📍 http://{args.host}:{args.port}")
        print(f"   👷 {args.workers} worker(s)")

        uvicorn.run(
            "api.main:app",
            host=args.host,
            port=args.port,
            workers=args.workers,
            log_level="info",
        )
        return

    print(f"🔧 Starting Sagamihara Activity Finder API in DEVELOPMENT mode")
    print(f"   📍 http://{args.host}:{args.port}")
    print(f"   📚 API docs: http://{args.host}:{args.port}/docs")
    print(f"   🗺️  Events: http://{args.host}:{args.port}/api/events?q=苔&debug=1")

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        log_level="debug",
        reload=True,
        reload_dirs=["api", "ingest", "scrapers"],
    )


if __name__ == "__main__":
    main()

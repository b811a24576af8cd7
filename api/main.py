"""FastAPI application for the Sagamihara activity finder."""
import asyncio
import logging
import math
import os
from datetime import datetime, timezone
from functools import partial
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ingest.pipeline import SearchResult, link_diagnostics, search_events, search_mock_events
from ingest.profile_extractor import QuotaExceededError, extract_profile
from ingest.ranking import clamp_radius
from scrapers.llm_scraper import get_openai_api_key

load_dotenv()

logger = logging.getLogger(__name__)
if os.getenv("SCRAPER_DEBUG"):
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

VERSION = "1.0.0"
DEFAULT_LAT = float(os.getenv("DEFAULT_LAT", "35.5710"))
DEFAULT_LON = float(os.getenv("DEFAULT_LON", "139.3707"))
DEFAULT_RADIUS_KM = 8.0
DEBUG_SAMPLE_SIZE = 8

app = FastAPI(
    title="Sagamihara Activity Finder API",
    description="Scrapes local event pages and returns nearby activities",
    version=VERSION,
)


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str


def _parse_float(value: Optional[str], default: float) -> float:
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except ValueError:
        return default
    return number if math.isfinite(number) else default


def _debug_body(result: SearchResult, q: str, ok: bool = True) -> dict:
    return {
        "ok": ok,
        "from": result.strategy,
        "q": q,
        "count": len(result.events),
        "sample": [event.to_dict() for event in result.events[:DEBUG_SAMPLE_SIZE]],
        "errors": result.errors,
    }


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION,
    )


@app.get("/live", response_model=HealthResponse)
async def liveness_check():
    """Liveness check endpoint for container orchestration."""
    return HealthResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION,
    )


@app.get("/ready", response_model=HealthResponse)
async def readiness_check():
    """Readiness check endpoint for container orchestration."""
    return HealthResponse(
        status="ready",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=VERSION,
    )


@app.get("/api/health")
async def api_health():
    """Report whether an LLM key is configured."""
    return {"ok": True, "hasKey": bool(get_openai_api_key())}


@app.get("/api/events")
def get_events(
    q: str = "",
    lat: Optional[str] = None,
    lon: Optional[str] = None,
    radius: Optional[str] = None,
    debug: Optional[str] = None,
    mode: str = "",
    fresh: Optional[str] = None,
):
    """
    Search nearby events.

    Always answers 200. Failures are logged and surface only as an empty
    list, or as ``ok: false`` with ``errors`` when ``debug=1``.
    """
    is_debug = debug == "1"
    origin_lat = _parse_float(lat, DEFAULT_LAT)
    origin_lon = _parse_float(lon, DEFAULT_LON)
    radius_km = clamp_radius(_parse_float(radius, DEFAULT_RADIUS_KM))
    force_refresh = fresh == "1"

    try:
        if mode == "links":
            diagnostics = link_diagnostics(q, fresh=force_refresh)
            body = {"ok": True, "mode": "links", "q": q, **diagnostics}
            if not is_debug:
                body.pop("errors")
            return JSONResponse(body)

        if mode == "mock":
            result = search_mock_events(q, origin_lat, origin_lon, radius_km)
        else:
            result = search_events(q, origin_lat, origin_lon, radius_km, fresh=force_refresh)
    except Exception as exc:
        logger.exception("Event search failed")
        if is_debug:
            return JSONResponse(_debug_body(SearchResult(errors=[str(exc)]), q, ok=False))
        return JSONResponse([])

    if is_debug:
        return JSONResponse(_debug_body(result, q))
    return JSONResponse([event.to_dict() for event in result.events])


@app.post("/api/profile-extract")
async def profile_extract(request: Request):
    """Extract a child profile from an interview transcript."""
    try:
        body = await request.json()
    except ValueError as exc:
        return JSONResponse({"error": f"invalid JSON body: {exc}"}, status_code=500)
    if not isinstance(body, dict):
        body = {}

    if not get_openai_api_key():
        return JSONResponse({"error": "OPENAI_API_KEY is not set"}, status_code=500)
    transcript = body.get("transcript")
    child_id = body.get("childId")
    if not transcript or child_id in (None, ""):
        return JSONResponse({"error": "transcript and childId are required"}, status_code=400)

    try:
        # The OpenAI SDK call blocks, so keep it off the event loop
        loop = asyncio.get_event_loop()
        profile = await loop.run_in_executor(
            None,
            partial(
                extract_profile,
                str(transcript),
                str(child_id),
                display_name=body.get("displayName"),
                age=body.get("age"),
            ),
        )
    except QuotaExceededError:
        return JSONResponse(
            {
                "error": "OpenAI quota exceeded. Check the model, key and input size.",
                "hint": "Set OPENAI_PROFILE_MODEL to a smaller model or enable billing.",
            },
            status_code=429,
        )
    except Exception as exc:
        logger.exception("Profile extraction failed")
        return JSONResponse({"error": str(exc)}, status_code=500)
    return JSONResponse(profile)


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Sagamihara Activity Finder API",
        "version": VERSION,
        "docs": "/docs",
        "health": "/health",
        "events": "/api/events",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)

"""Client utilities for the Google Places nearby-search API."""

import logging
import time
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"

# A next_page_token is rejected with INVALID_REQUEST until it becomes active.
PAGE_TOKEN_DELAY_SECONDS = 2.1


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def nearby_search(
    lat: float,
    lon: float,
    radius: int,
    api_key: str,
    pagetoken: Optional[str] = None,
) -> Dict[str, Any]:
    params = {"location": f"{lat},{lon}", "radius": radius, "key": api_key}
    if pagetoken:
        params["pagetoken"] = pagetoken
    response = _SESSION.get(f"{_BASE_URL}/nearbysearch/json", params=params, timeout=10)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("nearby_search failed: status=%s, error_message=%s", status, payload.get("error_message"))
        raise GooglePlacesError(f"Places API error: {status} - {payload.get('error_message') or ''}".strip(" -"))
    return payload


def fetch_nearby(lat: float, lon: float, radius: int, api_key: str, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
    """Collect every result page for one coordinate, waiting out token activation between pages."""
    if not api_key:
        raise GooglePlacesError("GOOGLE_PLACES_KEY is required")

    results: List[Dict[str, Any]] = []
    page_token = None
    pages = 0
    while True:
        payload = nearby_search(lat, lon, radius, api_key, pagetoken=page_token)
        results.extend(payload.get("results") or [])
        pages += 1
        page_token = payload.get("next_page_token")
        if not page_token or (max_pages is not None and pages >= max_pages):
            break
        time.sleep(PAGE_TOKEN_DELAY_SECONDS)

    logger.debug("Fetched %d raw results in %d page(s) at (%.6f, %.6f)", len(results), pages, lat, lon)
    return results

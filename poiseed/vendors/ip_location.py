"""Approximate current location from the caller's public IP address."""

import logging
from typing import Optional

import requests

from poiseed.models import Coordinate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_IPAPI_URL = "https://ipapi.co/json/"

FALLBACK_LOCATION = Coordinate(lat=40.727233, lon=-73.984592)


def get_current_location() -> Optional[Coordinate]:
    """Return the IP-based location, or None when the lookup fails. Accuracy is roughly 1-2km."""
    try:
        response = _SESSION.get(_IPAPI_URL, timeout=10)
        response.raise_for_status()
        data = response.json() or {}
        lat = float(data["latitude"])
        lon = float(data["longitude"])
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.error("Location detection failed: %s", exc)
        return None

    if not -90 <= lat <= 90 or not -180 <= lon <= 180:
        logger.error("Location service returned invalid coordinates: lat=%s, lon=%s", lat, lon)
        return None

    parts = [data.get(k) for k in ("city", "region", "postal", "country_name") if data.get(k)]
    logger.info("Found location: %s (%.6f, %.6f)", ", ".join(parts) or "unknown", lat, lon)
    return Coordinate(lat=lat, lon=lon)

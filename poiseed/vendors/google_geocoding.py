"""Locale lookup through the Google Geocoding API."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from poiseed.core.config import ConfigurationError
from poiseed.models import Bounds, Coordinate

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GeocodingError(ConfigurationError):
    """Raised when a locale cannot be resolved to a location."""


@dataclass(frozen=True)
class GeocodeResult:
    center: Coordinate
    bounds: Optional[Bounds]
    formatted_address: str


def _to_coordinate(point: Dict[str, Any]) -> Coordinate:
    return Coordinate(lat=float(point["lat"]), lon=float(point["lng"]))


def geocode_locale(locale: str, api_key: str) -> GeocodeResult:
    if not locale or not locale.strip():
        raise GeocodingError("Locale must be provided for geocoding")

    response = _SESSION.get(_GEOCODE_URL, params={"address": locale.strip(), "key": api_key}, timeout=10)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    results: List[Dict[str, Any]] = payload.get("results") or []
    if status != "OK" or not results:
        message = payload.get("error_message") or "No results found"
        logger.error("geocode failed for %r: status=%s, error_message=%s", locale, status, message)
        raise GeocodingError(f'Geocoding failed for "{locale}": {status} - {message}')

    result = results[0]
    geometry = result.get("geometry") or {}
    viewport = geometry.get("viewport")
    bounds = None
    if viewport:
        bounds = Bounds(
            northeast=_to_coordinate(viewport["northeast"]),
            southwest=_to_coordinate(viewport["southwest"]),
        )

    return GeocodeResult(
        center=_to_coordinate(geometry["location"]),
        bounds=bounds,
        formatted_address=result.get("formatted_address") or locale,
    )

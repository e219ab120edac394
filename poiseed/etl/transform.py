"""Utilities for transforming Places responses into pipeline records and ingest payloads."""

import logging
import math
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional

from poiseed.models import ClassifiedPlace, IngestPayload, RawPlace

logger = logging.getLogger(__name__)


def _strip_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    value_str = str(value).strip()
    return value_str or None


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None or isinstance(value, bool):
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _safe_int(value: Any) -> Optional[int]:
    number = _safe_float(value)
    return int(number) if number is not None else None


def to_raw_place(result: Dict[str, Any]) -> Optional[RawPlace]:
    """Normalize one nearby-search result; returns None when name or location is missing."""
    location = (result.get("geometry") or {}).get("location") or {}
    lat = _safe_float(location.get("lat"))
    lng = _safe_float(location.get("lng"))
    name = _strip_or_none(result.get("name"))
    if name is None or lat is None or lng is None:
        logger.debug("Skipping result without name or location: %s", result.get("place_id"))
        return None

    return RawPlace(
        name=name,
        latitude=lat,
        longitude=lng,
        types=[str(t) for t in result.get("types") or []],
        vicinity=_strip_or_none(result.get("vicinity")) or "",
        place_id=_strip_or_none(result.get("place_id")),
        rating=_safe_float(result.get("rating")),
        price_level=_safe_int(result.get("price_level")),
    )


def to_raw_places(results: Iterable[Dict[str, Any]]) -> List[RawPlace]:
    places = []
    for result in results or []:
        if not isinstance(result, dict):
            continue
        place = to_raw_place(result)
        if place is not None:
            places.append(place)
    return places


def to_ingest_payload(place: ClassifiedPlace) -> IngestPayload:
    return IngestPayload(
        name=(place.name or "").strip(),
        description=place.description or "",
        latitude=_safe_float(place.latitude),
        longitude=_safe_float(place.longitude),
        category=place.category or "misc",
        is_active=True,
    )


def _first_present(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def entry_to_payload(entry: Dict[str, Any]) -> IngestPayload:
    """Map a previously collected POI record (flat or raw Places shape) to an ingest payload."""
    location = (entry.get("geometry") or {}).get("location") or {}
    original = ((entry.get("_original") or {}).get("geometry") or {}).get("location") or {}
    lat = _first_present(entry.get("latitude"), entry.get("lat"), location.get("lat"), original.get("lat"))
    lon = _first_present(
        entry.get("longitude"), entry.get("lon"), entry.get("lng"), location.get("lng"), original.get("lng")
    )
    return IngestPayload(
        name=str(entry.get("name") or "").strip(),
        description=str(entry.get("description") or entry.get("vicinity") or ""),
        latitude=_safe_float(lat),
        longitude=_safe_float(lon),
        category=str(entry.get("category") or "misc"),
        is_active=True,
    )


def extract_entries(data: Any) -> List[Dict[str, Any]]:
    """Pull the POI list out of a JSON document: a bare array, ``results``/``data``, or any list values."""
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        if isinstance(data.get("results"), list):
            items = data["results"]
        elif isinstance(data.get("data"), list):
            items = data["data"]
        else:
            items = [item for value in data.values() if isinstance(value, list) for item in value]
    else:
        items = []
    return [item for item in items if isinstance(item, dict)]


def is_valid_payload(payload: IngestPayload) -> bool:
    return (
        bool(payload.name)
        and payload.latitude is not None
        and -90 <= payload.latitude <= 90
        and payload.longitude is not None
        and -180 <= payload.longitude <= 180
        and bool(payload.category)
    )


def payload_to_dict(payload: IngestPayload) -> Dict[str, Any]:
    return asdict(payload)

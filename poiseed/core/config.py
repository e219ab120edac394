"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional

from dotenv import load_dotenv

from poiseed.etl.rules import POI_CATEGORIES

logger = logging.getLogger(__name__)

MAX_RADIUS_METERS = 50000
MAX_GRID_POINTS = 1000


class ConfigurationError(RuntimeError):
    """Raised when mandatory configuration is missing or a run parameter is out of range."""


@dataclass(frozen=True)
class Settings:
    google_places_key: str
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    base_url: str = "http://localhost:3000"
    admin_token: str = ""
    batch_size: int = 100
    query_delay: float = 0.3
    worker_port: int = 9000
    max_pages: int = 3


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    google_places_key = os.getenv("GOOGLE_PLACES_KEY", "")
    openai_api_key = os.getenv("OPENAI_API_KEY", "")
    openai_model = os.getenv("OPENAI_MODEL") or "gpt-4o-mini"
    base_url = os.getenv("BASE_URL") or "http://localhost:3000"
    admin_token = os.getenv("ADMIN_TOKEN", "")
    batch_size = _int_env("POISEED_BATCH_SIZE", 100)
    query_delay = _float_env("POISEED_QUERY_DELAY", 0.3)
    worker_port = _int_env("WORKER_PORT", 9000)
    max_pages = _int_env("POISEED_MAX_PAGES", 3)

    if not google_places_key:
        logger.warning("GOOGLE_PLACES_KEY is not configured; Places requests will fail.")
    if not admin_token:
        logger.warning("ADMIN_TOKEN is not set; batches will be reported as skipped.")

    return Settings(
        google_places_key=google_places_key,
        openai_api_key=openai_api_key,
        openai_model=openai_model,
        base_url=base_url,
        admin_token=admin_token,
        batch_size=batch_size,
        query_delay=query_delay,
        worker_port=worker_port,
        max_pages=max_pages,
    )


def validate_radius(radius: int) -> int:
    if radius < 1 or radius > MAX_RADIUS_METERS:
        raise ConfigurationError(f"Radius must be between 1 and {MAX_RADIUS_METERS} meters")
    return radius


def validate_coordinates(lat: Optional[float], lon: Optional[float]) -> None:
    if (lat is None) != (lon is None):
        raise ConfigurationError("Both latitude and longitude must be provided together")
    if lat is not None and not -90 <= lat <= 90:
        raise ConfigurationError("Latitude must be between -90 and 90")
    if lon is not None and not -180 <= lon <= 180:
        raise ConfigurationError("Longitude must be between -180 and 180")


def validate_categories(categories: Optional[Iterable[str]]) -> List[str]:
    cleaned = [c.strip().lower() for c in categories or [] if c and c.strip()]
    unknown = [c for c in cleaned if c not in POI_CATEGORIES]
    if unknown:
        raise ConfigurationError(
            f"Unknown categories: {', '.join(unknown)} (available: {', '.join(POI_CATEGORIES)})"
        )
    return cleaned


def validate_positive(name: str, value: Optional[int], *, upper: Optional[int] = None) -> None:
    if value is None:
        return
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1")
    if upper is not None and value > upper:
        raise ConfigurationError(f"{name} must be between 1 and {upper}")

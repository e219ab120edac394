"""CLI jobs that collect POIs for an area and stream them to the ingestion API."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

from poiseed.core.config import (
    MAX_GRID_POINTS,
    ConfigurationError,
    Settings,
    get_settings,
    validate_categories,
    validate_coordinates,
    validate_positive,
    validate_radius,
)
from poiseed.core.ingester import StreamingIngester
from poiseed.core.orchestrator import Orchestrator, summarize
from poiseed.etl.classify import ClassificationPipeline
from poiseed.etl.transform import entry_to_payload, extract_entries, is_valid_payload
from poiseed.models import Coordinate, IngestPayload, IngestStats, RunSummary
from poiseed.sampling.grid import GridSampler
from poiseed.sampling.spiral import SpiralWalker
from poiseed.vendors import google_geocoding, ip_location, poi_api
from poiseed.vendors.openai_classifier import OpenAIClassifier

logger = logging.getLogger(__name__)

DEFAULT_FETCH_RADIUS = 500
DEFAULT_SEED_RADIUS = 400
DEFAULT_MAX_STEPS = 200
DEFAULT_MAX_POINTS = 200


def build_pipeline(settings: Settings, use_ai: bool) -> ClassificationPipeline:
    if not use_ai:
        return ClassificationPipeline()
    if not settings.openai_api_key:
        logger.warning("AI classification requested but OPENAI_API_KEY not found. Using rule-based classification.")
        return ClassificationPipeline()
    return ClassificationPipeline(OpenAIClassifier(settings.openai_api_key, settings.openai_model))


def _require_places_key(settings: Settings) -> str:
    if not settings.google_places_key:
        raise ConfigurationError("GOOGLE_PLACES_KEY is required")
    return settings.google_places_key


def _log_summary(summary: RunSummary) -> None:
    for line in summarize(summary):
        logger.info(line)


def run_seed_job(
    *,
    locale: str,
    radius: int = DEFAULT_SEED_RADIUS,
    categories: Optional[Sequence[str]] = None,
    use_ai: bool = False,
    batch_size: Optional[int] = None,
    dry_run: bool = False,
    max_points: int = DEFAULT_MAX_POINTS,
    target: Optional[int] = None,
    base_url: Optional[str] = None,
) -> RunSummary:
    """Geocode ``locale``, sample it with a ring grid and stream every unique POI to the API."""
    settings = get_settings()
    validate_radius(radius)
    validate_positive("max points", max_points, upper=MAX_GRID_POINTS)
    validate_positive("target", target)
    batch_size = batch_size if batch_size is not None else settings.batch_size
    validate_positive("batch size", batch_size)
    allowed = validate_categories(categories)
    if not locale or not locale.strip():
        raise ConfigurationError("locale is required for the seed command")
    api_key = _require_places_key(settings)

    geo = google_geocoding.geocode_locale(locale, api_key)
    logger.info("Found: %s, center %.6f, %.6f", geo.formatted_address, geo.center.lat, geo.center.lon)
    if geo.bounds is None:
        raise ConfigurationError("Geocoding did not return viewport bounds - cannot determine area coverage")

    sampler = GridSampler(geo.bounds, center_density=radius, edge_density=radius * 2, max_points=max_points)
    points = sampler.generate_points()
    logger.info("Generated %d query points (higher density in center)", len(points))

    with StreamingIngester(
        base_url=base_url or settings.base_url,
        admin_token=settings.admin_token,
        batch_size=batch_size,
        dry_run=dry_run,
    ) as ingester:
        orchestrator = Orchestrator(
            build_pipeline(settings, use_ai),
            api_key=api_key,
            radius=radius,
            categories=allowed,
            use_ai=use_ai,
            ingester=ingester,
            query_delay=settings.query_delay,
            max_pages=settings.max_pages,
        )
        summary = orchestrator.run_grid(points, target=target)

    logger.info("Seeding summary for %s", geo.formatted_address)
    _log_summary(summary)
    return summary


def _resolve_start(latitude: Optional[float], longitude: Optional[float]) -> Coordinate:
    if latitude is not None and longitude is not None:
        return Coordinate(lat=latitude, lon=longitude)
    location = ip_location.get_current_location()
    if location is None:
        fallback = ip_location.FALLBACK_LOCATION
        logger.warning("Unable to determine your location; using fallback %.6f, %.6f", fallback.lat, fallback.lon)
        return fallback
    return location


def run_fetch_job(
    *,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    radius: int = DEFAULT_FETCH_RADIUS,
    categories: Optional[Sequence[str]] = None,
    use_ai: bool = False,
    target: Optional[int] = None,
    step: Optional[int] = None,
    max_steps: int = DEFAULT_MAX_STEPS,
    ingest: bool = False,
    batch_size: Optional[int] = None,
    dry_run: bool = False,
    base_url: Optional[str] = None,
) -> RunSummary:
    """Search around one point, or walk a spiral outward from it until ``target`` POIs are found."""
    settings = get_settings()
    validate_coordinates(latitude, longitude)
    validate_radius(radius)
    validate_positive("target", target)
    validate_positive("step", step, upper=50000)
    validate_positive("max steps", max_steps)
    allowed = validate_categories(categories)
    if step is None:
        step = max(1, int(radius * 0.8))
    batch_size = batch_size if batch_size is not None else settings.batch_size
    validate_positive("batch size", batch_size)
    api_key = _require_places_key(settings)

    start = _resolve_start(latitude, longitude)
    ingester = None
    if ingest:
        ingester = StreamingIngester(
            base_url=base_url or settings.base_url,
            admin_token=settings.admin_token,
            batch_size=batch_size,
            dry_run=dry_run,
        )

    orchestrator = Orchestrator(
        build_pipeline(settings, use_ai),
        api_key=api_key,
        radius=radius,
        categories=allowed,
        use_ai=use_ai,
        ingester=ingester,
        max_pages=settings.max_pages,
    )
    try:
        if target is None:
            logger.info("Searching for POIs within %dm of %.6f, %.6f", radius, start.lat, start.lon)
            summary = orchestrator.run_single(start.lat, start.lon)
        else:
            logger.info("Target mode: collecting %d unique POIs (radius %dm, step %dm, max steps %d)", target, radius, step, max_steps)
            summary = orchestrator.run_spiral(SpiralWalker(start, step), target=target, max_steps=max_steps)
    finally:
        if ingester is not None:
            ingester.close()

    _log_summary(summary)
    return summary


def load_payload_file(path: str) -> List[IngestPayload]:
    """Read a JSON file of previously collected POIs and keep the entries that map to valid payloads."""
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read {source}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Failed to parse JSON at {source}: {exc}") from exc

    entries = extract_entries(data)
    if not entries:
        raise ConfigurationError(f"{source} does not contain an array of POIs")
    payloads = [payload for payload in map(entry_to_payload, entries) if is_valid_payload(payload)]
    logger.info(
        "Loaded %d items -> %d valid payloads (%d skipped)", len(entries), len(payloads), len(entries) - len(payloads)
    )
    return payloads


def run_ingest_job(
    *,
    file: str,
    batch_size: Optional[int] = None,
    dry_run: bool = False,
    base_url: Optional[str] = None,
) -> IngestStats:
    """Post the POIs stored in ``file`` to the ingestion API in batches."""
    settings = get_settings()
    batch_size = batch_size if batch_size is not None else settings.batch_size
    validate_positive("batch size", batch_size)
    if not dry_run and not settings.admin_token:
        raise ConfigurationError("ADMIN_TOKEN is required to ingest a file")

    payloads = load_payload_file(file)
    target_url = base_url or settings.base_url
    logger.info("Target: %s | File: %s | Batch: %d%s", target_url, file, batch_size, " | DRY-RUN" if dry_run else "")

    with StreamingIngester(
        base_url=target_url,
        admin_token=settings.admin_token,
        batch_size=batch_size,
        dry_run=dry_run,
    ) as ingester:
        for payload in payloads:
            if ingester.add_payload(payload):
                ingester.flush_if_ready()
        ingester.flush_all()
        stats = ingester.get_stats()

    logger.info("Done. Batches: %d, created: %d, skipped: %d", stats.batches, stats.ingested, stats.skipped)
    if stats.buffered:
        raise poi_api.IngestError(f"{stats.buffered} POIs could not be delivered")
    return stats


def _split_categories(raw: Optional[str]) -> List[str]:
    return [c.strip() for c in (raw or "").split(",") if c.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect points of interest and stream them to the POI API")
    subparsers = parser.add_subparsers(dest="command", required=True)

    delivery = argparse.ArgumentParser(add_help=False)
    delivery.add_argument("--batch", dest="batch_size", type=int, help="Ingest batch size (default POISEED_BATCH_SIZE)")
    delivery.add_argument("--dry-run", dest="dry_run", action="store_true", help="Skip the actual POST to the server")
    delivery.add_argument("--base-url", dest="base_url", help="POI API base URL (default BASE_URL)")

    collection = argparse.ArgumentParser(add_help=False)
    collection.add_argument("--categories", dest="categories", help="Comma separated category allow-list")
    collection.add_argument("--ai", dest="use_ai", action="store_true", help="Refine categories with the AI classifier")

    seed = subparsers.add_parser("seed", parents=[collection, delivery], help="Grid-sample a geocoded locale")
    seed.add_argument("--locale", dest="locale", required=True, help="Locale to geocode, e.g. 'Brooklyn, NY'")
    seed.add_argument("--radius", dest="radius", type=int, default=DEFAULT_SEED_RADIUS, help="Search radius in meters")
    seed.add_argument("--max-points", dest="max_points", type=int, default=DEFAULT_MAX_POINTS, help="Maximum grid points")
    seed.add_argument("--target", dest="target", type=int, help="Stop after this many unique POIs")

    fetch = subparsers.add_parser("fetch", parents=[collection, delivery], help="Search around a single point or spiral outward")
    fetch.add_argument("--lat", dest="latitude", type=float, help="Start latitude (defaults to IP location)")
    fetch.add_argument("--lon", dest="longitude", type=float, help="Start longitude (defaults to IP location)")
    fetch.add_argument("--radius", dest="radius", type=int, default=DEFAULT_FETCH_RADIUS, help="Search radius in meters")
    fetch.add_argument("--target", dest="target", type=int, help="Walk a spiral until this many unique POIs")
    fetch.add_argument("--step", dest="step", type=int, help="Spiral step in meters (default 0.8 x radius)")
    fetch.add_argument("--max-steps", dest="max_steps", type=int, default=DEFAULT_MAX_STEPS, help="Spiral step budget")
    fetch.add_argument("--ingest", dest="ingest", action="store_true", help="Stream results to the POI API")

    ingest = subparsers.add_parser("ingest", parents=[delivery], help="Post POIs from an existing JSON file")
    ingest.add_argument("--file", dest="file", required=True, help="JSON array, or an object with results/data")
    return parser


def run_from_args(args: argparse.Namespace) -> Union[RunSummary, IngestStats]:
    if args.command == "ingest":
        return run_ingest_job(
            file=args.file,
            batch_size=args.batch_size,
            dry_run=args.dry_run,
            base_url=args.base_url,
        )
    categories = _split_categories(args.categories)
    if args.command == "seed":
        return run_seed_job(
            locale=args.locale,
            radius=args.radius,
            categories=categories,
            use_ai=args.use_ai,
            batch_size=args.batch_size,
            dry_run=args.dry_run,
            max_points=args.max_points,
            target=args.target,
            base_url=args.base_url,
        )
    return run_fetch_job(
        latitude=args.latitude,
        longitude=args.longitude,
        radius=args.radius,
        categories=categories,
        use_ai=args.use_ai,
        target=args.target,
        step=args.step,
        max_steps=args.max_steps,
        ingest=args.ingest,
        batch_size=args.batch_size,
        dry_run=args.dry_run,
        base_url=args.base_url,
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    args = build_parser().parse_args(argv)
    try:
        run_from_args(args)
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 2
    except Exception as exc:  # noqa: BLE001
        logger.error("POI collection failed: %s", exc, exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

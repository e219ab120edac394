"""Sampling loop that ties the gateway, pipeline, deduplication and ingestion together."""

from __future__ import annotations

import logging
import time
from typing import List, Optional, Sequence, Tuple

from poiseed.core.dedup import Deduplicator
from poiseed.core.ingester import StreamingIngester
from poiseed.etl.classify import ClassificationPipeline, PipelineResult
from poiseed.etl.transform import to_raw_places
from poiseed.models import QueryPoint, RunSummary
from poiseed.sampling.spiral import SpiralWalker
from poiseed.vendors import google_places

logger = logging.getLogger(__name__)

GRID_QUERY_DELAY_SECONDS = 0.3
SPIRAL_QUERY_DELAY_SECONDS = 0.5


class Orchestrator:
    def __init__(
        self,
        pipeline: ClassificationPipeline,
        *,
        api_key: str,
        radius: int,
        categories: Optional[Sequence[str]] = None,
        use_ai: bool = False,
        ingester: Optional[StreamingIngester] = None,
        query_delay: Optional[float] = None,
        max_pages: Optional[int] = None,
    ) -> None:
        self.pipeline = pipeline
        self.api_key = api_key
        self.radius = radius
        self.categories = list(categories or [])
        self.use_ai = use_ai
        self.ingester = ingester
        self.query_delay = query_delay
        self.max_pages = max_pages
        self.seen = Deduplicator()

    def query(self, lat: float, lon: float) -> PipelineResult:
        results = google_places.fetch_nearby(lat, lon, self.radius, self.api_key, max_pages=self.max_pages)
        return self.pipeline.process(to_raw_places(results), self.categories, self.use_ai)

    def _process_point(self, lat: float, lon: float, summary: RunSummary) -> Tuple[PipelineResult, int]:
        result = self.query(lat, lon)
        new_places = [place for place in result.places if self.seen.add(place)]
        summary.places.extend(new_places)
        summary.duplicates = self.seen.duplicates
        if self.ingester is not None:
            # buffer never exceeds batch_size after a flush decision
            for place in new_places:
                if self.ingester.add_one(place):
                    self.ingester.flush_if_ready()
        return result, len(new_places)

    def _finish(self, summary: RunSummary) -> RunSummary:
        if self.ingester is not None:
            self.ingester.flush_all()
            summary.ingest = self.ingester.get_stats()
        return summary

    def run_grid(self, points: Sequence[QueryPoint], target: Optional[int] = None) -> RunSummary:
        """Query grid points in order until they run out or ``target`` unique POIs are collected."""
        delay = GRID_QUERY_DELAY_SECONDS if self.query_delay is None else self.query_delay
        summary = RunSummary(points_total=len(points))
        total = len(points)

        for index, point in enumerate(points):
            progress = (index + 1) * 100 // total
            summary.points_queried += 1
            try:
                result, new_count = self._process_point(point.lat, point.lon, summary)
            except Exception as exc:  # noqa: BLE001
                summary.points_failed += 1
                logger.warning("[%3d%%] Point %d/%d failed: %s", progress, index + 1, total, exc)
                continue

            target_info = f", {summary.unique}/{target} target" if target is not None else ""
            logger.info(
                "[%3d%%] Point %d/%d @ (%.4f, %.4f) -> %d raw, %d valid, +%d new (total: %d%s)",
                progress, index + 1, total, point.lat, point.lon,
                result.stats.total_raw, len(result.places), new_count, summary.unique, target_info,
            )
            if target is not None and summary.unique >= target:
                summary.target_reached = True
                logger.info(
                    "Target reached! Collected %d unique POIs after %d grid points; skipping remaining %d.",
                    summary.unique, index + 1, total - index - 1,
                )
                break
            if index + 1 < total:
                time.sleep(delay)

        return self._finish(summary)

    def run_spiral(self, walker: SpiralWalker, target: int, max_steps: int) -> RunSummary:
        """Walk the spiral until ``target`` unique POIs are collected or ``max_steps`` is spent."""
        delay = SPIRAL_QUERY_DELAY_SECONDS if self.query_delay is None else self.query_delay
        summary = RunSummary(points_total=max_steps)

        while summary.unique < target and summary.points_queried < max_steps:
            coord = walker.next()
            summary.points_queried += 1
            step = summary.points_queried
            logger.info("Step %d/%d: querying (%.6f, %.6f)...", step, max_steps, coord.lat, coord.lon)
            try:
                _, new_count = self._process_point(coord.lat, coord.lon, summary)
            except Exception as exc:  # noqa: BLE001
                summary.points_failed += 1
                logger.error("Step %d failed: %s", step, exc)
                continue

            logger.info("Step %d: +%d new, %d/%d total unique POIs", step, new_count, summary.unique, target)
            if summary.unique >= target:
                break
            time.sleep(delay)

        summary.target_reached = summary.unique >= target
        if summary.target_reached:
            logger.info("Target reached! Collected %d unique POIs in %d steps.", summary.unique, summary.points_queried)
        else:
            logger.warning(
                "Stopped after %d steps with %d/%d POIs (max steps reached)", summary.points_queried, summary.unique, target
            )
        return self._finish(summary)

    def run_single(self, lat: float, lon: float) -> RunSummary:
        summary = RunSummary(points_total=1, points_queried=1)
        result, _ = self._process_point(lat, lon, summary)
        logger.info(
            "SUMMARY: %d raw -> %d final (%d pre-filtered, %d validation failed, %d category filtered)",
            result.stats.total_raw, result.stats.final, result.stats.pre_filter_excluded,
            result.stats.validation_excluded, result.stats.category_filter_excluded,
        )
        return self._finish(summary)


def summarize(summary: RunSummary) -> List[str]:
    """Log-friendly lines describing a finished run."""
    lines = [
        f"Points queried: {summary.points_queried}/{summary.points_total} ({summary.points_failed} failed)",
        f"Unique POIs found: {summary.unique} ({summary.duplicates} duplicates dropped)",
    ]
    for category, count in sorted(summary.by_category().items(), key=lambda item: -item[1]):
        lines.append(f"  {category}: {count}")
    if summary.ingest is not None:
        lines.append(
            f"Batches completed: {summary.ingest.batches}, ingested: {summary.ingest.ingested}, "
            f"skipped: {summary.ingest.skipped}, still buffered: {summary.ingest.buffered}"
        )
    return lines

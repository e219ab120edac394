"""Concentric-ring grid sampling of a bounding box."""

from __future__ import annotations

import logging
import math
from typing import List

from poiseed.models import Bounds, QueryPoint
from poiseed.sampling.geo import haversine_meters, meters_to_lat_delta, meters_to_lon_delta

logger = logging.getLogger(__name__)

MIN_POINTS_PER_RING = 4


class GridSampler:
    """Generate query points that are dense near the center of ``bounds`` and sparse at its edges.

    Rings are laid out around the box centroid. Spacing along a ring is interpolated from
    ``center_density`` to ``edge_density`` (meters) as the ring radius approaches the
    half-diagonal of the box, and priority falls from 1.0 to 0.5 over the same distance.
    The result is sorted by descending priority so a caller that only queries a prefix
    still covers the center first.
    """

    def __init__(
        self,
        bounds: Bounds,
        center_density: float = 400,
        edge_density: float = 800,
        max_points: int = 200,
    ) -> None:
        if center_density <= 0 or edge_density <= 0:
            raise ValueError("grid densities must be positive")
        if max_points < 1:
            raise ValueError("max_points must be at least 1")
        self.bounds = bounds
        self.center_density = center_density
        self.edge_density = edge_density
        self.max_points = max_points

    def half_diagonal(self) -> float:
        center = self.bounds.center
        ne = self.bounds.northeast
        return haversine_meters(center.lat, center.lon, ne.lat, ne.lon)

    def _ring_radius(self, ring_index: int) -> float:
        return self.center_density * ring_index + (self.edge_density - self.center_density) * (ring_index / 10)

    def generate_points(self) -> List[QueryPoint]:
        center = self.bounds.center
        max_dist = self.half_diagonal()
        points = [QueryPoint(lat=center.lat, lon=center.lon, priority=1.0)]

        ring_index = 1
        ring_radius = float(self.center_density)
        while ring_radius < max_dist and len(points) < self.max_points:
            ratio = min(ring_radius / max_dist, 1.0)
            density = self.center_density + (self.edge_density - self.center_density) * ratio
            count = max(MIN_POINTS_PER_RING, math.floor(2 * math.pi * ring_radius / density))
            priority = 1.0 - ratio * 0.5

            lat_delta = meters_to_lat_delta(ring_radius)
            lon_delta = meters_to_lon_delta(ring_radius, center.lat)
            for i in range(count):
                if len(points) >= self.max_points:
                    break
                angle = 2 * math.pi * i / count
                lat = center.lat + lat_delta * math.cos(angle)
                lon = center.lon + lon_delta * math.sin(angle)
                if self.bounds.contains(lat, lon):
                    points.append(QueryPoint(lat=lat, lon=lon, priority=priority))

            ring_index += 1
            ring_radius = self._ring_radius(ring_index)

        # sort is stable, so the centroid keeps index 0
        points.sort(key=lambda p: p.priority, reverse=True)
        logger.debug("Generated %d grid points over %d rings (half-diagonal %.0fm)", len(points), ring_index - 1, max_dist)
        return points

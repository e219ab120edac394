"""Core data models shared by the POI collection pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True, slots=True)
class Coordinate:
    lat: float
    lon: float


@dataclass(frozen=True, slots=True)
class Bounds:
    """Rectangular area as returned by the geocoder viewport."""

    northeast: Coordinate
    southwest: Coordinate

    @property
    def center(self) -> Coordinate:
        return Coordinate(
            lat=(self.northeast.lat + self.southwest.lat) / 2,
            lon=(self.northeast.lon + self.southwest.lon) / 2,
        )

    def contains(self, lat: float, lon: float) -> bool:
        return (
            self.southwest.lat <= lat <= self.northeast.lat
            and self.southwest.lon <= lon <= self.northeast.lon
        )


@dataclass(frozen=True, slots=True)
class QueryPoint:
    lat: float
    lon: float
    priority: float


@dataclass(slots=True)
class RawPlace:
    """Normalized snapshot of a single Places nearby-search result."""

    name: str
    latitude: float
    longitude: float
    types: List[str] = field(default_factory=list)
    vicinity: str = ""
    place_id: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None


@dataclass(slots=True)
class ClassifiedPlace:
    name: str
    description: str
    latitude: float
    longitude: float
    category: str
    confidence: float
    reasoning: str
    method: str
    types: List[str] = field(default_factory=list)
    place_id: Optional[str] = None
    rating: Optional[float] = None
    price_level: Optional[int] = None
    source: Optional[RawPlace] = field(default=None, repr=False)


@dataclass(frozen=True, slots=True)
class AiClassification:
    category: str
    confidence: float
    reasoning: str
    is_valid: bool
    alternative_category: Optional[str] = None


@dataclass(slots=True)
class IngestPayload:
    """Record shape accepted by the admin bulk POI endpoint."""

    name: str
    description: str
    latitude: Optional[float]
    longitude: Optional[float]
    category: str
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class FlushResult:
    created: int = 0
    skipped: int = 0
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class IngestStats:
    unique: int
    buffered: int
    ingested: int
    skipped: int
    batches: int


@dataclass(slots=True)
class PipelineStats:
    total_raw: int = 0
    after_pre_filter: int = 0
    after_classification: int = 0
    after_validation: int = 0
    after_category_filter: int = 0
    after_ai: int = 0
    ai_reclassified: int = 0

    @property
    def final(self) -> int:
        return self.after_ai

    @property
    def pre_filter_excluded(self) -> int:
        return self.total_raw - self.after_pre_filter

    @property
    def validation_excluded(self) -> int:
        return self.after_classification - self.after_validation

    @property
    def category_filter_excluded(self) -> int:
        return self.after_validation - self.after_category_filter


@dataclass(slots=True)
class RunSummary:
    points_total: int = 0
    points_queried: int = 0
    points_failed: int = 0
    duplicates: int = 0
    target_reached: bool = False
    places: List[ClassifiedPlace] = field(default_factory=list)
    ingest: Optional[IngestStats] = None

    @property
    def unique(self) -> int:
        return len(self.places)

    def by_category(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for place in self.places:
            counts[place.category] = counts.get(place.category, 0) + 1
        return counts

"""Canonical POI identity across overlapping queries."""

from __future__ import annotations

import threading
from typing import Protocol, Set


class _Identifiable(Protocol):
    name: str
    latitude: float
    longitude: float


def dedup_key(place: _Identifiable) -> str:
    """Provider id when present, otherwise lowercased name plus position rounded to 5 decimals.

    Two distinct venues sharing a name and rounded position collapse into one key.
    """
    place_id = getattr(place, "place_id", None)
    if place_id:
        return f"id:{place_id}"
    return f"name:{(place.name or '').lower()}|{place.latitude:.5f},{place.longitude:.5f}"


class Deduplicator:
    """First-occurrence-wins membership set keyed by :func:`dedup_key`."""

    def __init__(self) -> None:
        self._seen: Set[str] = set()
        self._lock = threading.Lock()
        self.duplicates = 0

    def __len__(self) -> int:
        return len(self._seen)

    def contains(self, place: _Identifiable) -> bool:
        return dedup_key(place) in self._seen

    def add(self, place: _Identifiable) -> bool:
        """Record ``place``; returns False (and counts a duplicate) if its key was already seen."""
        key = dedup_key(place)
        with self._lock:
            if key in self._seen:
                self.duplicates += 1
                return False
            self._seen.add(key)
            return True

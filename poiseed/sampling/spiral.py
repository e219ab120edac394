"""Square spiral walk outward from a fixed start coordinate."""

from __future__ import annotations

from poiseed.models import Coordinate
from poiseed.sampling.geo import meters_to_lat_delta, meters_to_lon_delta

# E, N, W, S as (lat sign, lon sign)
_DIRECTIONS = ((0, 1), (1, 0), (0, -1), (-1, 0))


class SpiralWalker:
    """Stateful, never-restarting square spiral.

    The first call returns the start coordinate. Each later call moves ``step_meters`` in the
    current direction; after ``steps_in_current_leg`` moves the direction rotates
    counter-clockwise, and the leg grows by one step after every second rotation. Longitude
    deltas are recomputed at the walker's current latitude.
    """

    def __init__(self, start: Coordinate, step_meters: float) -> None:
        if step_meters <= 0:
            raise ValueError("step_meters must be positive")
        self.start = start
        self.step_meters = step_meters
        self.current_lat = start.lat
        self.current_lon = start.lon
        self.step_index = 0
        self.direction = 0
        self.steps_in_current_leg = 1
        self.steps_taken_in_leg = 0
        self.legs_completed = 0

    def __iter__(self) -> "SpiralWalker":
        return self

    def __next__(self) -> Coordinate:
        return self.next()

    def next(self) -> Coordinate:
        if self.step_index == 0:
            self.step_index = 1
            return Coordinate(lat=self.current_lat, lon=self.current_lon)

        lat_sign, lon_sign = _DIRECTIONS[self.direction]
        lat_delta = meters_to_lat_delta(self.step_meters)
        lon_delta = meters_to_lon_delta(self.step_meters, self.current_lat)
        self.current_lat += lat_sign * lat_delta
        self.current_lon += lon_sign * lon_delta

        self.steps_taken_in_leg += 1
        if self.steps_taken_in_leg >= self.steps_in_current_leg:
            self.steps_taken_in_leg = 0
            self.direction = (self.direction + 1) % 4
            self.legs_completed += 1
            if self.legs_completed % 2 == 0:
                self.steps_in_current_leg += 1

        self.step_index += 1
        return Coordinate(lat=self.current_lat, lon=self.current_lon)

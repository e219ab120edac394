import pytest

from poiseed.core.config import ConfigurationError
from poiseed.vendors import google_geocoding

from helpers import DummyResponse


class DummySession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        return self.response


def _install(monkeypatch, payload):
    session = DummySession(DummyResponse(payload=payload))
    monkeypatch.setattr(google_geocoding, "_SESSION", session)
    return session


def test_geocode_locale_returns_center_and_bounds(monkeypatch):
    session = _install(
        monkeypatch,
        {
            "status": "OK",
            "results": [
                {
                    "formatted_address": "Brooklyn, NY, USA",
                    "place_id": "pid",
                    "types": ["political"],
                    "geometry": {
                        "location": {"lat": 40.65, "lng": -73.95},
                        "viewport": {
                            "northeast": {"lat": 40.74, "lng": -73.83},
                            "southwest": {"lat": 40.57, "lng": -74.04},
                        },
                    },
                }
            ],
        },
    )

    result = google_geocoding.geocode_locale("Brooklyn", "key")

    assert session.calls[0][1]["address"] == "Brooklyn"
    assert result.center.lat == 40.65 and result.center.lon == -73.95
    assert result.bounds.northeast.lat == 40.74
    assert result.bounds.southwest.lon == -74.04
    assert result.formatted_address == "Brooklyn, NY, USA"


def test_geocode_locale_without_viewport_has_no_bounds(monkeypatch):
    _install(
        monkeypatch,
        {"status": "OK", "results": [{"geometry": {"location": {"lat": 1, "lng": 2}}}]},
    )
    result = google_geocoding.geocode_locale("Somewhere", "key")
    assert result.bounds is None
    assert result.formatted_address == "Somewhere"


def test_geocode_locale_failure_is_configuration_error(monkeypatch):
    _install(monkeypatch, {"status": "ZERO_RESULTS", "results": []})
    with pytest.raises(ConfigurationError):
        google_geocoding.geocode_locale("Nowhere", "key")

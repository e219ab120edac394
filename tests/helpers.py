from poiseed.models import ClassifiedPlace, RawPlace


def raw_place(name, types=None, lat=40.7, lon=-73.9, place_id=None, vicinity="", rating=None):
    return RawPlace(
        name=name,
        latitude=lat,
        longitude=lon,
        types=list(types or []),
        vicinity=vicinity,
        place_id=place_id,
        rating=rating,
    )


def classified_place(name, place_id=None, lat=40.7, lon=-73.9, category="park"):
    return ClassifiedPlace(
        name=name,
        description="somewhere",
        latitude=lat,
        longitude=lon,
        category=category,
        confidence=0.8,
        reasoning="Rule-based classification",
        method="rule",
        place_id=place_id,
    )


def places_result(name, place_id=None, lat=40.7, lng=-73.9, types=("park",), vicinity="Main St"):
    result = {
        "name": name,
        "geometry": {"location": {"lat": lat, "lng": lng}},
        "types": list(types),
        "vicinity": vicinity,
    }
    if place_id:
        result["place_id"] = place_id
    return result


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload if payload is not None else {}
        self.text = text

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError("http error")

    def json(self):
        return self._payload

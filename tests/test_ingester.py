import threading

import pytest

from poiseed.core import ingester as ingester_module
from poiseed.core.dedup import Deduplicator
from poiseed.core.ingester import StreamingIngester
from poiseed.models import IngestPayload
from poiseed.vendors import poi_api

from helpers import classified_place


class RecordingPost:
    """Stand-in for poi_api.post_batch that records batches and can block or fail."""

    def __init__(self, fail_times=0, gate=None):
        self.batches = []
        self.fail_times = fail_times
        self.gate = gate
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, base_url, admin_token, batch):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                assert self.gate.wait(timeout=5)
            if self.fail_times:
                self.fail_times -= 1
                raise poi_api.IngestError("boom")
            self.batches.append([item["name"] for item in batch])
            return len(batch), 0
        finally:
            with self._lock:
                self.active -= 1


@pytest.fixture
def post(monkeypatch):
    recorder = RecordingPost()
    monkeypatch.setattr(ingester_module.poi_api, "post_batch", recorder)
    return recorder


@pytest.fixture
def make_ingester():
    created = []

    def factory(**kwargs):
        kwargs.setdefault("base_url", "http://api.test")
        kwargs.setdefault("admin_token", "token")
        instance = StreamingIngester(**kwargs)
        created.append(instance)
        return instance

    yield factory
    for instance in created:
        instance.close()


def _places(count, prefix="Place"):
    return [classified_place(f"{prefix} {i}", place_id=f"{prefix}-{i}") for i in range(count)]


def test_add_one_skips_repeated_place(make_ingester):
    ingester = make_ingester(batch_size=10)
    place = classified_place("Central Park", place_id="p1")

    assert ingester.add_one(place) is True
    assert ingester.add_one(place) is False
    assert ingester.get_stats().buffered == 1


def test_add_one_rejects_invalid_payload(make_ingester):
    ingester = make_ingester(batch_size=10)
    assert ingester.add_one(classified_place("Broken", place_id="x", lat=95.0)) is False
    assert ingester.buffered == 0


def test_flush_if_ready_is_noop_below_batch_size(make_ingester, post):
    ingester = make_ingester(batch_size=3)
    ingester.add_many(_places(2))

    for _ in range(5):
        assert ingester.flush_if_ready() is None

    assert post.batches == []
    assert ingester.buffered == 2


def test_concurrent_flush_if_ready_starts_exactly_one_flush(make_ingester, monkeypatch):
    gate = threading.Event()
    post = RecordingPost(gate=gate)
    monkeypatch.setattr(ingester_module.poi_api, "post_batch", post)
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(2))

    futures = []
    futures_lock = threading.Lock()

    def trigger():
        future = ingester.flush_if_ready()
        with futures_lock:
            futures.append(future)

    threads = [threading.Thread(target=trigger) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    started = [f for f in futures if f is not None]
    assert len(started) == 1
    assert ingester.flush_in_progress

    gate.set()
    assert started[0].result(timeout=5).created == 2
    assert post.batches == [["Place 0", "Place 1"]]


def test_flushes_are_serialized(make_ingester, monkeypatch):
    gate = threading.Event()
    post = RecordingPost(gate=gate)
    monkeypatch.setattr(ingester_module.poi_api, "post_batch", post)
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(4))

    first = ingester.flush_if_ready()
    second_holder = {}
    waiter = threading.Thread(target=lambda: second_holder.update(future=ingester.flush_if_ready()))
    waiter.start()

    gate.set()
    waiter.join(timeout=5)
    first.result(timeout=5)
    second_holder["future"].result(timeout=5)

    assert post.max_active == 1
    assert post.batches == [["Place 0", "Place 1"], ["Place 2", "Place 3"]]
    assert ingester.get_stats().batches == 2


def test_failed_flush_requeues_batch_at_front(make_ingester, monkeypatch):
    post = RecordingPost(fail_times=1)
    monkeypatch.setattr(ingester_module.poi_api, "post_batch", post)
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(3))

    result = ingester.flush()
    assert result.error == "boom"
    assert ingester.buffered == 3

    assert ingester.flush().created == 2
    assert post.batches == [["Place 0", "Place 1"]]
    assert ingester.get_stats().ingested == 2


def test_dry_run_never_contacts_api(make_ingester, post):
    ingester = make_ingester(batch_size=2, dry_run=True)
    ingester.add_many(_places(3))

    results = ingester.flush_all()

    assert [r.created for r in results] == [2, 1]
    assert post.batches == []
    assert ingester.get_stats().buffered == 0


def test_missing_token_reports_batch_as_skipped(make_ingester, post):
    ingester = make_ingester(batch_size=2, admin_token="")
    ingester.add_many(_places(2))

    result = ingester.flush()

    assert result.skipped == 2
    assert post.batches == []
    assert ingester.get_stats().skipped == 2


def test_flush_all_drains_buffer_after_pending_flush(make_ingester, post):
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(5))

    ingester.flush_if_ready()
    ingester.flush_all()

    assert [len(batch) for batch in post.batches] == [2, 2, 1]
    stats = ingester.get_stats()
    assert stats.buffered == 0
    assert stats.ingested == 5
    assert stats.batches == 3


def test_flush_all_stops_when_delivery_keeps_failing(make_ingester, monkeypatch):
    post = RecordingPost(fail_times=10)
    monkeypatch.setattr(ingester_module.poi_api, "post_batch", post)
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(3))

    results = ingester.flush_all()

    assert len(results) == 1
    assert ingester.buffered == 3


def test_shared_deduplicator_is_respected(make_ingester):
    dedup = Deduplicator()
    place = classified_place("Central Park", place_id="p1")
    dedup.add(place)
    ingester = make_ingester(batch_size=10, deduplicator=dedup)
    assert ingester.add_one(place) is False


def test_overlapping_places_stream_in_two_batches(make_ingester, post):
    overlapping = [classified_place(f"Chain {i}", place_id=f"shared-{i % 10}") for i in range(50)]
    unique = _places(100, prefix="Unique")
    ingester = make_ingester(batch_size=100)

    added = ingester.add_many(overlapping + unique)
    future = ingester.flush_if_ready()
    assert future is not None
    future.result(timeout=5)
    ingester.flush_all()

    assert added == 110
    assert [len(batch) for batch in post.batches] == [100, 10]
    stats = ingester.get_stats()
    assert stats.unique == 110
    assert stats.batches == 2
    assert stats.buffered == 0


def test_unexpected_delivery_error_requeues_batch(make_ingester, monkeypatch):
    calls = []

    def flaky_post(base_url, admin_token, batch):
        calls.append([item["name"] for item in batch])
        if len(calls) == 1:
            raise ValueError("invalid literal for int() with base 10: 'n/a'")
        return len(batch), 0

    monkeypatch.setattr(ingester_module.poi_api, "post_batch", flaky_post)
    ingester = make_ingester(batch_size=2)
    ingester.add_many(_places(3))

    future = ingester.flush_if_ready()
    assert future.result().error.startswith("invalid literal")
    assert ingester.buffered == 3

    results = ingester.flush_all()

    assert [r.created for r in results] == [2, 1]
    assert calls == [["Place 0", "Place 1"], ["Place 0", "Place 1"], ["Place 2"]]
    assert ingester.get_stats().ingested == 3


def test_add_payload_validates_and_dedupes_by_name_and_position(make_ingester, post):
    ingester = make_ingester(batch_size=10)
    payload = IngestPayload("Bryant Park", "", 40.75, -73.98, "park")

    assert ingester.add_payload(payload) is True
    assert ingester.add_payload(IngestPayload("bryant park", "", 40.750001, -73.98, "park")) is False
    assert ingester.add_payload(IngestPayload("Nowhere", "", None, -73.98, "park")) is False

    ingester.flush_all()
    assert post.batches == [["Bryant Park"]]

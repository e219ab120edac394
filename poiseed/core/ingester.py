"""Buffered, batched delivery of classified POIs to the ingestion API."""

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Deque, Iterable, List, Optional

from poiseed.core.dedup import Deduplicator
from poiseed.etl.transform import is_valid_payload, payload_to_dict, to_ingest_payload
from poiseed.models import ClassifiedPlace, FlushResult, IngestPayload, IngestStats
from poiseed.vendors import poi_api

logger = logging.getLogger(__name__)


class StreamingIngester:
    """Buffer payloads and flush them in batches of ``batch_size``, one flush at a time.

    ``flush_if_ready`` hands a full batch to a single background worker and returns its
    future; a caller arriving while that flush is outstanding waits for it before deciding
    whether another batch is due. A failed delivery puts the batch back at the front of the
    buffer so the next trigger retries it.
    """

    def __init__(
        self,
        base_url: str,
        admin_token: Optional[str] = None,
        batch_size: int = 100,
        dry_run: bool = False,
        deduplicator: Optional[Deduplicator] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.base_url = base_url
        self.admin_token = admin_token
        self.batch_size = batch_size
        self.dry_run = dry_run
        self.deduplicator = deduplicator if deduplicator is not None else Deduplicator()

        self._buffer: Deque[IngestPayload] = deque()
        self._state_lock = threading.Lock()
        self._flush_lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="poiseed-flush")

        self.total_ingested = 0
        self.total_skipped = 0
        self.batches_completed = 0

    @property
    def buffered(self) -> int:
        with self._state_lock:
            return len(self._buffer)

    @property
    def flush_in_progress(self) -> bool:
        pending = self._pending
        return pending is not None and not pending.done()

    def add_one(self, place: ClassifiedPlace) -> bool:
        if not self.deduplicator.add(place):
            return False
        payload = to_ingest_payload(place)
        if not is_valid_payload(payload):
            logger.debug("Dropping invalid payload for %r", place.name)
            return False
        self._append(payload)
        return True

    def add_many(self, places: Iterable[ClassifiedPlace]) -> int:
        return sum(1 for place in places if self.add_one(place))

    def add_payload(self, payload: IngestPayload) -> bool:
        """Buffer an already-mapped payload; invalid or repeated records are dropped."""
        if not is_valid_payload(payload):
            logger.debug("Dropping invalid payload for %r", payload.name)
            return False
        if not self.deduplicator.add(payload):
            return False
        self._append(payload)
        return True

    def _append(self, payload: IngestPayload) -> None:
        with self._state_lock:
            self._buffer.append(payload)

    def _take_batch_locked(self) -> List[IngestPayload]:
        size = min(self.batch_size, len(self._buffer))
        return [self._buffer.popleft() for _ in range(size)]

    def _send(self, batch: List[IngestPayload]) -> FlushResult:
        with self._flush_lock:
            if not batch:
                return FlushResult()

            if self.dry_run:
                logger.info("Dry-run: would ingest %d POIs", len(batch))
                self.batches_completed += 1
                return FlushResult(created=len(batch))

            if not self.admin_token:
                logger.warning("No ADMIN_TOKEN - skipping ingestion of %d POIs", len(batch))
                self.total_skipped += len(batch)
                return FlushResult(skipped=len(batch))

            try:
                created, skipped = poi_api.post_batch(
                    self.base_url, self.admin_token, [payload_to_dict(p) for p in batch]
                )
            except Exception as exc:  # noqa: BLE001
                logger.error("Batch ingestion failed, requeueing %d POIs: %s", len(batch), exc)
                with self._state_lock:
                    self._buffer.extendleft(reversed(batch))
                return FlushResult(error=str(exc))

            self.total_ingested += created
            self.total_skipped += skipped
            self.batches_completed += 1
            logger.info("Batch %d: ingested %d POIs (%d skipped)", self.batches_completed, created, skipped)
            return FlushResult(created=created, skipped=skipped)

    def flush(self) -> FlushResult:
        """Synchronously send the oldest ``batch_size`` payloads."""
        with self._state_lock:
            batch = self._take_batch_locked()
        return self._send(batch)

    def flush_if_ready(self) -> Optional[Future]:
        """Start one background flush when a full batch is buffered; returns its future or None."""
        with self._state_lock:
            if len(self._buffer) < self.batch_size:
                return None
            pending = self._pending

        if pending is not None:
            pending.result()

        with self._state_lock:
            if len(self._buffer) < self.batch_size:
                return None
            batch = self._take_batch_locked()
            self._pending = self._executor.submit(self._send, batch)
            return self._pending

    def wait_pending(self) -> None:
        pending = self._pending
        if pending is not None:
            pending.result()

    def flush_all(self) -> List[FlushResult]:
        """Drain the buffer completely; stops early only if a delivery fails."""
        self.wait_pending()
        results = []
        while self.buffered:
            result = self.flush()
            results.append(result)
            if result.error:
                logger.error("Stopping final flush with %d POIs still buffered", self.buffered)
                break
        return results

    def get_stats(self) -> IngestStats:
        return IngestStats(
            unique=len(self.deduplicator),
            buffered=self.buffered,
            ingested=self.total_ingested,
            skipped=self.total_skipped,
            batches=self.batches_completed,
        )

    def close(self) -> None:
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "StreamingIngester":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()

"""Client for the admin bulk POI ingestion endpoint."""

import logging
from typing import Dict, List, Tuple

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()

BULK_PATH = "/api/admin/pois/bulk"
REQUEST_TIMEOUT = 30


class IngestError(RuntimeError):
    """Raised when a batch could not be delivered to the ingestion API."""


def post_batch(base_url: str, admin_token: str, batch: List[Dict[str, object]]) -> Tuple[int, int]:
    """POST one batch and return ``(created, skipped)`` as reported by the server.

    ``created`` lower than the batch length is a partial success, not an error.
    """
    url = f"{base_url.rstrip('/')}{BULK_PATH}"
    headers = {"Content-Type": "application/json", "x-admin-token": admin_token}
    try:
        response = _SESSION.post(url, json=batch, headers=headers, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as exc:
        raise IngestError(f"Failed to call ingest API: {exc}") from exc

    if not (200 <= response.status_code < 300):
        raise IngestError(f"Ingest API returned non-2xx status ({response.status_code}): {response.text[:500]}")

    try:
        data = response.json()
    except ValueError:
        data = {}
    if not isinstance(data, dict):
        data = {}
    try:
        created = int(data.get("createdCount") or 0)
        skipped = int(data.get("skippedCount") or 0)
    except (TypeError, ValueError) as exc:
        raise IngestError(f"Ingest API returned unreadable counts: {data!r:.200}") from exc
    logger.debug("Posted %d payloads to %s: created=%d skipped=%d", len(batch), url, created, skipped)
    return created, skipped

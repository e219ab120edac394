"""HTTP entrypoint that queues locale seeding jobs on a background worker."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request

from poiseed.core.config import MAX_GRID_POINTS, MAX_RADIUS_METERS, ConfigurationError, get_settings, validate_categories
from poiseed.jobs.seed import DEFAULT_MAX_POINTS, DEFAULT_SEED_RADIUS, run_seed_job

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
# one seed at a time; each job already saturates the Places quota
_executor = ThreadPoolExecutor(max_workers=1)

# ---------- Routes ----------


@app.get("/healthz")
def healthcheck() -> Any:
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": settings.worker_port,
                "ingest_base_url": settings.base_url,
            }
        ),
        200,
    )


def _parse_int(payload: Dict[str, Any], field: str, default: Optional[int], *, upper: Optional[int] = None) -> Optional[int]:
    raw = payload.get(field)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be numeric") from None
    if value <= 0:
        raise ValueError(f"{field} must be positive")
    if upper is not None and value > upper:
        raise ValueError(f"{field} must be at most {upper}")
    return value


@app.post("/seed")
def enqueue_seed() -> Any:
    """
    Enqueue a grid seeding job.
    Required JSON fields: locale
    Optional: radius (int), categories (list or comma string), ai (bool), max_points (int),
    target (int), batch (int), dry_run (bool)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    locale = str(payload.get("locale") or "").strip()
    if not locale:
        return jsonify({"error": "missing fields: locale"}), 400

    raw_categories = payload.get("categories") or []
    if isinstance(raw_categories, str):
        raw_categories = raw_categories.split(",")

    try:
        radius = _parse_int(payload, "radius", DEFAULT_SEED_RADIUS, upper=MAX_RADIUS_METERS)
        max_points = _parse_int(payload, "max_points", DEFAULT_MAX_POINTS, upper=MAX_GRID_POINTS)
        target = _parse_int(payload, "target", None)
        batch_size = _parse_int(payload, "batch", None)
        categories = validate_categories(raw_categories)
    except (ValueError, ConfigurationError) as exc:
        return jsonify({"error": str(exc)}), 400

    job_args = dict(
        locale=locale,
        radius=radius,
        categories=categories,
        use_ai=bool(payload.get("ai", False)),
        batch_size=batch_size,
        dry_run=bool(payload.get("dry_run", False)),
        max_points=max_points,
        target=target,
    )

    logger.info("Queueing seed job: %s", job_args)
    _executor.submit(_run_job_safe, job_args)

    return jsonify({"data": {"status": "queued"}}), 202


# ---------- Internals ----------


def _run_job_safe(job_args: Dict[str, Any]) -> None:
    try:
        run_seed_job(**job_args)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Seed job failed: %s", exc)


def main() -> None:
    port = int(os.getenv("PORT") or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()

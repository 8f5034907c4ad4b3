# services/ingest_service.py

import logging
import math
from numbers import Real

from services.errors import ValidationError
from services.time_utils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)


def is_number(value):
    # json accepts NaN and Infinity literals; they cannot be serialized back out
    return isinstance(value, Real) and not isinstance(value, bool) and math.isfinite(value)


def to_reading_document(item):
    """Turn one submitted reading into a store document, or None if it is malformed."""
    if not isinstance(item, dict):
        return None
    turbine_id = item.get("windTurbineId")
    power_kw = item.get("powerKW")
    if not turbine_id or not isinstance(turbine_id, str) or not is_number(power_kw):
        return None

    timestamp = item.get("timestamp")
    try:
        timestamp = parse_timestamp(timestamp) if timestamp else utc_now()
    except ValueError:
        return None

    is_outlier = bool(item.get("outlier", False))
    return {
        "windTurbineId": turbine_id,
        "powerKW": float(power_kw),
        "timestamp": timestamp,
        "isOutlier": is_outlier,
        "outlierKind": item.get("outlierType") if is_outlier else None,
    }


def ingest_batch(repository, payload):
    """
    Save a batch of readings submitted by the external simulator.
    Malformed readings are skipped rather than failing the batch.
    Returns (saved_count, total_received).
    """
    readings = payload.get("readings") if isinstance(payload, dict) else None
    if not isinstance(readings, list):
        raise ValidationError("readings array is required")

    documents = [doc for doc in (to_reading_document(item) for item in readings) if doc is not None]
    saved = repository.create_readings(documents)

    skipped = len(readings) - saved
    if skipped:
        logger.info(f"[Ingest] Skipped {skipped} malformed reading(s) out of {len(readings)}")
    return saved, len(readings)

# services/time_utils.py

# Timestamps are stored as naive UTC datetimes, which is what pymongo hands back.

import math
from datetime import datetime, timezone
from numbers import Real

import pandas as pd


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_timestamp(value):
    """
    Parse an ISO string, epoch milliseconds or datetime into a naive UTC datetime.
    Raises ValueError for anything that is not a timestamp.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    if isinstance(value, Real) and not isinstance(value, bool):
        if not math.isfinite(value):
            raise ValueError(f"Invalid timestamp: {value!r}")
        return pd.to_datetime(value, unit="ms", utc=True).to_pydatetime().replace(tzinfo=None)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid timestamp: {value!r}")
    parsed = pd.to_datetime(value.strip(), utc=True)
    if pd.isna(parsed):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed.to_pydatetime().replace(tzinfo=None)


def to_iso(value):
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def local_hour(timestamp):
    """Hour of day in the server's local time zone; naive values are taken as UTC."""
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone().hour

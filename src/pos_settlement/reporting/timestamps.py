"""Timestamp normalization for persisted sale records.

Sale records arrive with ``createdAt`` in several shapes inherited from the
document store: ISO strings, ``{"seconds": ..., "nanoseconds": ...}``
mappings, store timestamp objects, native datetimes and epoch numbers.
``to_instant`` is the single place that understands all of them; every
calculation downstream works on timezone-aware pandas Timestamps.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Optional

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Date-only strings are local calendar days, not UTC midnights
DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# Placeholder written by the store when a server timestamp never resolved
SERVER_TIMESTAMP_SENTINEL = "serverTimestamp"

# Epoch numbers above this are milliseconds rather than seconds
_EPOCH_MILLIS_THRESHOLD = 1e11


def _localize(ts: pd.Timestamp, tz: str) -> pd.Timestamp:
    if ts.tzinfo is None:
        return ts.tz_localize(tz)
    return ts.tz_convert(tz)


def _from_epoch_seconds(seconds: float, nanos: float = 0, tz: str = "UTC") -> pd.Timestamp:
    ts = pd.Timestamp(int(seconds) * 1_000_000_000 + int(nanos), unit="ns", tz="UTC")
    return ts.tz_convert(tz)


def to_instant(raw: Any, tz: str = "UTC") -> Optional[pd.Timestamp]:
    """Convert any stored timestamp representation to an aware Timestamp.

    Naive values (strings without offset, naive datetimes, date-only
    strings and dates) are read as wall-clock time in ``tz``. Aware values
    and epoch numbers are converted into ``tz``.

    Args:
        raw: The stored ``createdAt`` value.
        tz: IANA zone of the result.

    Returns:
        Timestamp in ``tz``, or None when the value is missing, is an
        unresolved server-timestamp placeholder, or cannot be parsed.

    Examples:
        >>> to_instant("2025-01-15T15:30:00Z", "America/Bogota")
        Timestamp('2025-01-15 10:30:00-0500', tz='America/Bogota')
        >>> to_instant({"seconds": 0, "nanoseconds": 0})
        Timestamp('1970-01-01 00:00:00+0000', tz='UTC')
        >>> to_instant("not a date") is None
        True
    """
    if raw is None:
        return None

    try:
        if isinstance(raw, pd.Timestamp):
            return None if pd.isna(raw) else _localize(raw, tz)

        if isinstance(raw, (datetime, np.datetime64)):
            ts = pd.Timestamp(raw)
            return None if pd.isna(ts) else _localize(ts, tz)

        if isinstance(raw, date):
            return pd.Timestamp(raw.year, raw.month, raw.day).tz_localize(tz)

        if isinstance(raw, bool):
            return None

        if isinstance(raw, (int, float, np.integer, np.floating)):
            if isinstance(raw, (float, np.floating)) and np.isnan(raw):
                return None
            if abs(raw) >= _EPOCH_MILLIS_THRESHOLD:
                return pd.Timestamp(raw, unit="ms", tz="UTC").tz_convert(tz)
            return pd.Timestamp(raw, unit="s", tz="UTC").tz_convert(tz)

        if isinstance(raw, str):
            text = raw.strip()
            if not text:
                return None
            if DATE_ONLY_RE.match(text):
                return pd.Timestamp(text).tz_localize(tz)
            ts = pd.Timestamp(text)
            return None if pd.isna(ts) else _localize(ts, tz)

        if isinstance(raw, dict):
            if raw.get("_methodName") == SERVER_TIMESTAMP_SENTINEL:
                return None
            seconds = raw.get("seconds", raw.get("_seconds"))
            if seconds is None:
                return None
            nanos = raw.get("nanoseconds", raw.get("_nanoseconds", 0)) or 0
            return _from_epoch_seconds(seconds, nanos, tz)

        if getattr(raw, "_methodName", None) == SERVER_TIMESTAMP_SENTINEL:
            return None

        # Store timestamp objects expose either a converter or raw seconds
        for converter in ("to_datetime", "ToDatetime", "toDate"):
            method = getattr(raw, converter, None)
            if callable(method):
                return to_instant(method(), tz)

        seconds = getattr(raw, "seconds", None)
        if isinstance(seconds, (int, float)):
            nanos = getattr(raw, "nanoseconds", getattr(raw, "nanos", 0)) or 0
            return _from_epoch_seconds(seconds, nanos, tz)

    except (ValueError, TypeError, OverflowError) as e:
        logger.debug("Unparseable timestamp %r: %s", raw, e)
        return None

    logger.debug("Unsupported timestamp type %s", type(raw).__name__)
    return None


def format_local_date(ts: pd.Timestamp) -> str:
    """Render a date the way es-CO locales do: ``d/m/yyyy`` without padding.

    Examples:
        >>> format_local_date(pd.Timestamp("2025-03-07"))
        '7/3/2025'
    """
    return f"{ts.day}/{ts.month}/{ts.year}"

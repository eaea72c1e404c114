"""
Shared helpers: numeric coercion, half-up rounding, timestamp cutoffs.
"""

import logging
import math
import re
from datetime import datetime, timedelta, timezone
from typing import Any

from .config import TIMESTAMP_FORMAT

logger = logging.getLogger(__name__)

_TRAILING_NUMBER = re.compile(r"(\d+)$")


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round with halves going up (2.5 -> 3), unlike Python's banker's round."""
    scale = 10 ** ndigits
    return math.floor(value * scale + 0.5) / scale


def round_int(value: float) -> int:
    return int(round_half_up(value))


def safe_float(val: Any) -> float | None:
    """Coerce a value to float, returning None for missing or non-numeric values.

    NaN (as produced by pandas for SQL NULL) is treated as missing.
    """
    if val is None:
        return None
    if isinstance(val, str):
        val = val.strip()
        if not val:
            return None
        try:
            val = float(val)
        except ValueError:
            return None
    try:
        result = float(val)
    except (ValueError, TypeError):
        return None
    if math.isnan(result) or math.isinf(result):
        return None
    return result


def station_number(station_id: str) -> int:
    """Return the numeric suffix of a station id ("ST003" -> 3).

    Ids without a numeric suffix give 0.
    """
    match = _TRAILING_NUMBER.search(str(station_id).strip())
    if match is None:
        logger.debug("Station id %r has no numeric suffix", station_id)
        return 0
    return int(match.group(1))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a datetime as a UTC string in the storage format."""
    if ts.tzinfo is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.strftime(TIMESTAMP_FORMAT)


def cutoff_timestamp(hours: float, now: datetime | None = None) -> str:
    """Return the storage-format timestamp `hours` before `now` (UTC)."""
    if now is None:
        now = utc_now()
    return format_timestamp(now - timedelta(hours=hours))

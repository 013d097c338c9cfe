from __future__ import annotations

import logging
import math
import re
import time
from datetime import datetime
from typing import Any, Mapping

import pandas as pd

from telemetry_projection.config import TimeConfig

LOGGER = logging.getLogger(__name__)

NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
EPOCH_MILLIS_PATTERN = re.compile(r"^\d+$")
# Latest instant pandas can represent and format.
MAX_EPOCH_MILLIS = pd.Timestamp.max.value // NANOS_PER_MILLI

# Serialized store exports write structured timestamps with a leading underscore.
SECONDS_KEYS = ("seconds", "_seconds")
NANOSECONDS_KEYS = ("nanoseconds", "_nanoseconds")


def now_millis() -> int:
    return time.time_ns() // NANOS_PER_MILLI


def _within_range(millis: int) -> int | None:
    return millis if 0 <= millis <= MAX_EPOCH_MILLIS else None


def parse_epoch_millis(raw_value: Any) -> int | None:
    """Parse an integer-valued document key such as ``"1700000000000"``."""
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, int):
        return _within_range(raw_value)
    if isinstance(raw_value, str) and EPOCH_MILLIS_PATTERN.match(raw_value.strip()):
        return _within_range(int(raw_value.strip()))
    return None


def _first_present(payload: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _timestamp_to_pair(parsed: pd.Timestamp, timezone_name: str) -> tuple[int, int] | None:
    if pd.isna(parsed):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.tz_localize(timezone_name, nonexistent="shift_forward", ambiguous="NaT")
        if pd.isna(parsed):
            return None
    total_nanos = int(parsed.value)
    return total_nanos // NANOS_PER_SECOND, total_nanos % NANOS_PER_SECOND


def to_seconds_pair(raw_value: Any, timezone_name: str = "UTC") -> tuple[int, int] | None:
    """Normalize any stored timestamp shape to ``(seconds, nanoseconds)``.

    Accepted shapes are structured ``{seconds, nanoseconds}`` mappings, epoch
    millisecond integers or digit strings, date strings, and datetimes. Naive
    dates are interpreted in ``timezone_name``. Anything else yields ``None``.
    """
    if isinstance(raw_value, Mapping):
        seconds = _first_present(raw_value, SECONDS_KEYS)
        nanoseconds = _first_present(raw_value, NANOSECONDS_KEYS) or 0
        try:
            seconds_int = int(seconds)
            nanos_int = int(nanoseconds)
        except (TypeError, ValueError, OverflowError):
            return None
        if seconds_int < 0 or not 0 <= nanos_int < NANOS_PER_SECOND:
            return None
        return seconds_int, nanos_int

    millis = parse_epoch_millis(raw_value)
    if millis is not None:
        return millis // 1000, (millis % 1000) * NANOS_PER_MILLI

    if isinstance(raw_value, float) and math.isfinite(raw_value) and raw_value >= 0:
        nanos = int(round(raw_value * NANOS_PER_MILLI))
        return nanos // NANOS_PER_SECOND, nanos % NANOS_PER_SECOND

    if isinstance(raw_value, datetime):
        return _timestamp_to_pair(pd.Timestamp(raw_value), timezone_name)

    if isinstance(raw_value, str) and raw_value.strip():
        try:
            parsed = pd.Timestamp(raw_value.strip())
        except (ValueError, OverflowError):
            LOGGER.debug("Unparseable timestamp string: %r", raw_value)
            return None
        return _timestamp_to_pair(parsed, timezone_name)

    return None


def pair_to_millis(pair: tuple[int, int]) -> int:
    seconds, nanoseconds = pair
    return seconds * 1000 + nanoseconds // NANOS_PER_MILLI


def to_epoch_millis(raw_value: Any, timezone_name: str = "UTC") -> int | None:
    pair = to_seconds_pair(raw_value, timezone_name=timezone_name)
    if pair is None:
        return None
    millis = pair_to_millis(pair)
    return _within_range(millis)


def format_display_timestamp(timestamp_ms: int, config: TimeConfig | None = None) -> str:
    config = config or TimeConfig()
    moment = pd.Timestamp(timestamp_ms, unit="ms", tz="UTC").tz_convert(config.timezone)
    return moment.strftime(config.display_format)

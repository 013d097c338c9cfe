from __future__ import annotations

import logging
import math
import re
from dataclasses import asdict, replace
from typing import Any, Iterable, Mapping

import pandas as pd

from telemetry_projection.config import AppConfig, ReconcileConfig
from telemetry_projection.models import NetworkLogRecord, TimeWindow
from telemetry_projection.preprocess.time import to_epoch_millis

LOGGER = logging.getLogger(__name__)

LEADING_NUMBER_PATTERN = re.compile(r"^\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")

# Stored field name -> flattened record field.
NUMERIC_FIELDS = {
    "signalStrength": "signal_strength",
    "downloadSpeed": "download_speed",
    "ping": "ping",
    "jitter": "jitter",
    "snr": "snr",
    "linkSpeed": "link_speed",
}
MEAN_COLUMNS = [*NUMERIC_FIELDS.values(), "battery_usage"]
SUM_COLUMNS = ["rx_bytes", "tx_bytes"]


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else 0.0
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return 0.0
        return parsed if math.isfinite(parsed) else 0.0
    return 0.0


def parse_battery_usage(raw_value: Any) -> float:
    """Parse ``"12.5 µWh"`` style readings to ``12.5``; unreadable values are 0."""
    if isinstance(raw_value, str):
        match = LEADING_NUMBER_PATTERN.match(raw_value)
        return _as_float(match.group(1)) if match else 0.0
    return _as_float(raw_value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _network_type(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _location(value: Any) -> dict[str, float] | None:
    if not isinstance(value, Mapping):
        return None
    return {key: _as_float(value.get(key)) for key in ("lat", "long")}


def flatten_log(raw: Mapping[str, Any], timestamp: int) -> NetworkLogRecord:
    data_usage = raw.get("data_usage")
    if not isinstance(data_usage, Mapping):
        data_usage = {}
    return NetworkLogRecord(
        timestamp=timestamp,
        **{field: _as_float(raw.get(source)) for source, field in NUMERIC_FIELDS.items()},
        rx_bytes=_as_float(data_usage.get("rx_bytes")),
        tx_bytes=_as_float(data_usage.get("tx_bytes")),
        battery_usage=parse_battery_usage(raw.get("batteryUsage")),
        is_charging=_as_bool(raw.get("isCharging", False)),
        network_type=_network_type(raw.get("networkType")),
        location=_location(raw.get("location")),
    )


def normalize_log(raw: Any, *, timezone_name: str = "UTC") -> NetworkLogRecord | None:
    """Flatten one stored log; ``None`` when it carries no usable timestamp."""
    if not isinstance(raw, Mapping):
        return None
    timestamp = to_epoch_millis(raw.get("timestamp"), timezone_name=timezone_name)
    if timestamp is None:
        return None
    return flatten_log(raw, timestamp)


def offset_collisions(
    records: Iterable[NetworkLogRecord],
    offset_ms: int = 1,
) -> list[NetworkLogRecord]:
    """Shift each record whose timestamp is taken forward until it is unique.

    Records are scanned in input order, so the first sample at an instant
    keeps its time and later ones move.
    """
    seen: set[int] = set()
    resolved: list[NetworkLogRecord] = []
    shifted = 0
    for record in records:
        timestamp = record.timestamp
        while timestamp in seen:
            timestamp += offset_ms
        if timestamp != record.timestamp:
            shifted += 1
            record = replace(record, timestamp=timestamp)
        seen.add(timestamp)
        resolved.append(record)
    if shifted:
        LOGGER.debug("Shifted %d colliding network log timestamp(s)", shifted)
    return resolved


def average_collisions(records: Iterable[NetworkLogRecord]) -> list[NetworkLogRecord]:
    """Collapse samples sharing a timestamp into one averaged sample."""
    rows = [asdict(record) for record in records]
    if not rows:
        return []
    frame = pd.DataFrame(rows)
    aggregations: dict[str, str] = {column: "mean" for column in MEAN_COLUMNS}
    aggregations.update({column: "sum" for column in SUM_COLUMNS})
    aggregations.update({"is_charging": "max", "network_type": "first", "location": "first"})
    grouped = frame.groupby("timestamp", sort=False).agg(aggregations).reset_index()
    if len(grouped) < len(frame):
        LOGGER.debug("Averaged %d colliding network log sample(s)", len(frame) - len(grouped))

    merged: list[NetworkLogRecord] = []
    for row in grouped.to_dict(orient="records"):
        network_type = row["network_type"]
        location = row["location"]
        merged.append(
            NetworkLogRecord(
                timestamp=int(row["timestamp"]),
                **{column: float(row[column]) for column in MEAN_COLUMNS + SUM_COLUMNS},
                is_charging=bool(row["is_charging"]),
                network_type=network_type if isinstance(network_type, str) else None,
                location=location if isinstance(location, Mapping) else None,
            )
        )
    return merged


def reconcile_network_logs(
    raw_logs: Iterable[Any],
    window: TimeWindow | None = None,
    *,
    network_type: str | None = None,
    config: AppConfig | None = None,
) -> list[NetworkLogRecord]:
    """Normalize, window, de-collide and sort raw network logs from either source."""
    config = config or AppConfig()
    reconcile: ReconcileConfig = config.reconcile

    records: list[NetworkLogRecord] = []
    dropped = 0
    for raw in raw_logs:
        record = normalize_log(raw, timezone_name=config.time.timezone)
        if record is None:
            dropped += 1
            continue
        if window is not None and not window.contains(record.timestamp):
            continue
        if network_type is not None and record.network_type != network_type:
            continue
        records.append(record)
    if dropped:
        LOGGER.debug("Dropped %d network log(s) without a usable timestamp", dropped)

    if reconcile.collision_policy == "average":
        resolved = average_collisions(records)
    else:
        resolved = offset_collisions(records, offset_ms=reconcile.collision_offset_ms)
    return sorted(resolved, key=lambda record: record.timestamp)

from __future__ import annotations

import numbers
from typing import Iterable, Mapping, Sequence

import numpy as np
import pandas as pd

from telemetry_projection.models import (
    Measurement,
    NetworkLogRecord,
    NetworkSummary,
    UserActivitySummary,
)

RECENT_EVENTS_LIMIT = 5


def _mean(values: pd.Series) -> float:
    # Empty input stays NaN; display code decides how to present it.
    if values.empty:
        return float(np.nan)
    return float(values.mean())


def build_network_frame(records: Iterable[NetworkLogRecord]) -> pd.DataFrame:
    rows = [
        {
            "timestamp": record.timestamp,
            "signal_strength": record.signal_strength,
            "ping": record.ping,
            "speed": record.effective_speed,
            "rx_bytes": record.rx_bytes,
            "tx_bytes": record.tx_bytes,
            "network_type": record.network_type,
        }
        for record in records
    ]
    return pd.DataFrame(
        rows,
        columns=[
            "timestamp",
            "signal_strength",
            "ping",
            "speed",
            "rx_bytes",
            "tx_bytes",
            "network_type",
        ],
    )


def network_type_histogram(frame: pd.DataFrame) -> tuple[tuple[str, int], ...]:
    labels = frame["network_type"].dropna()
    if labels.empty:
        return ()
    counts = labels.astype(str).value_counts()
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple((label, int(count)) for label, count in ordered)


def summarize_network(records: Iterable[NetworkLogRecord]) -> NetworkSummary:
    frame = build_network_frame(records)
    return NetworkSummary(
        avg_signal=_mean(frame["signal_strength"]),
        avg_speed=_mean(frame["speed"]),
        avg_ping=_mean(frame["ping"]),
        total_rx=float(frame["rx_bytes"].sum()),
        total_tx=float(frame["tx_bytes"].sum()),
        type_histogram=network_type_histogram(frame),
    )


def distinct_network_types(records: Iterable[NetworkLogRecord]) -> list[str]:
    return sorted({record.network_type for record in records if record.network_type})


def _has_location(measurement: Measurement) -> bool:
    location = measurement.attributes.get("location")
    if not isinstance(location, Mapping):
        return False
    latitude = location.get("lat")
    return isinstance(latitude, numbers.Real) and latitude != 0


def summarize_user_activity(measurements: Sequence[Measurement]) -> UserActivitySummary:
    wifi_connected = any(
        bool(measurement.value)
        for measurement in measurements
        if measurement.type == "wifi_connected"
    )
    battery_levels = [
        float(measurement.value)
        for measurement in measurements
        if measurement.type == "low_battery"
        and isinstance(measurement.value, numbers.Real)
        and not isinstance(measurement.value, bool)
    ]
    return UserActivitySummary(
        total_events=len(measurements),
        active_devices=1 if wifi_connected else 0,
        average_battery=float(np.mean(battery_levels)) if battery_levels else 0.0,
        devices_with_location=sum(1 for measurement in measurements if _has_location(measurement)),
        last_activity=max((measurement.timestamp for measurement in measurements), default=0),
    )


def recent_events(
    measurements: Iterable[Measurement],
    limit: int = RECENT_EVENTS_LIMIT,
) -> list[Measurement]:
    ordered = sorted(measurements, key=lambda measurement: measurement.timestamp, reverse=True)
    return ordered[: max(0, limit)]

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

MILLIS_PER_HOUR = 60 * 60 * 1000


@dataclass(frozen=True)
class Measurement:
    timestamp: int
    type: str
    value: Any
    attributes: Mapping[str, Any] = field(default_factory=dict)
    outcome: str | None = None


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive ``[start, end]`` bounds in epoch milliseconds."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"window start {self.start} is after window end {self.end}")

    def contains(self, timestamp: int) -> bool:
        return self.start <= timestamp <= self.end


@dataclass(frozen=True)
class ProjectedPoint:
    display_timestamp: str
    raw_timestamp: int
    value: Any


@dataclass(frozen=True)
class MergedPoint:
    display_timestamp: str
    raw_timestamp: int
    values: Mapping[str, int]


@dataclass(frozen=True)
class NetworkLogRecord:
    timestamp: int
    signal_strength: float = 0.0
    download_speed: float = 0.0
    ping: float = 0.0
    jitter: float = 0.0
    snr: float = 0.0
    link_speed: float = 0.0
    rx_bytes: float = 0.0
    tx_bytes: float = 0.0
    battery_usage: float = 0.0
    is_charging: bool = False
    network_type: str | None = None
    location: Mapping[str, float] | None = None

    @property
    def effective_speed(self) -> float:
        return self.link_speed if self.link_speed > 0 else self.download_speed


@dataclass(frozen=True)
class NetworkSummary:
    avg_signal: float
    avg_speed: float
    avg_ping: float
    total_rx: float
    total_tx: float
    type_histogram: tuple[tuple[str, int], ...]


@dataclass(frozen=True)
class UserActivitySummary:
    total_events: int
    active_devices: int
    average_battery: float
    devices_with_location: int
    last_activity: int

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Sequence

from telemetry_projection.config import AppConfig
from telemetry_projection.engine import merge_occurrences, project
from telemetry_projection.features.step import Clock
from telemetry_projection.features.windows import WindowRegistry
from telemetry_projection.models import Measurement, NetworkLogRecord, NetworkSummary

ChartKind = Literal["step", "occurrences"]

BYTE_UNITS = ("B", "KB", "MB", "GB")
MISSING_STAT_LABEL = "n/a"


def _on_body_status(value: Any) -> int:
    # off_body=True means the device is not worn.
    return 0 if value else 1


def _connected_flag(value: Any) -> int:
    return 1 if value else 0


def _battery_level(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return value
    return float(value)


@dataclass(frozen=True)
class EventChartSpec:
    chart_id: str
    title: str
    kind: ChartKind
    event_types: tuple[str, ...]
    series_key: str | None = None
    value_map: Callable[[Any], Any] | None = None


EVENT_CHARTS: dict[str, EventChartSpec] = {
    spec.chart_id: spec
    for spec in (
        EventChartSpec(
            chart_id="device_status",
            title="Device Status (On/Off Body)",
            kind="step",
            event_types=("off_body",),
            series_key="status",
            value_map=_on_body_status,
        ),
        EventChartSpec(
            chart_id="wifi_status",
            title="WiFi Connection Status",
            kind="step",
            event_types=("wifi_connected",),
            series_key="connected",
            value_map=_connected_flag,
        ),
        EventChartSpec(
            chart_id="battery_level",
            title="Battery Level",
            kind="step",
            event_types=("low_battery",),
            series_key="battery",
            value_map=_battery_level,
        ),
        EventChartSpec(
            chart_id="button_presses",
            title="Button Presses",
            kind="occurrences",
            event_types=("button_press", "notification_button_press"),
        ),
    )
}

NETWORK_CHARTS: dict[str, tuple[str, ...]] = {
    "speed": ("download_speed", "link_speed"),
    "signal": ("signal_strength", "snr"),
    "data": ("rx_bytes", "tx_bytes"),
    "quality": ("ping", "jitter"),
    "battery": ("battery_usage", "is_charging"),
}


def _chart_spec(chart_id: str) -> EventChartSpec:
    try:
        return EVENT_CHARTS[chart_id]
    except KeyError as exc:
        raise ValueError(f"unknown event chart: {chart_id}") from exc


def build_event_chart_payload(
    measurements: Sequence[Measurement],
    chart_id: str,
    *,
    windows: WindowRegistry | None = None,
    clock: Clock | None = None,
    config: AppConfig | None = None,
) -> dict[str, Any]:
    """Chart-ready rows for one dashboard event chart.

    The chart's window comes from ``windows``; charts without one render the
    rolling view.
    """
    spec = _chart_spec(chart_id)
    config = config or AppConfig()
    window = windows.get(chart_id) if windows is not None else None

    if spec.kind == "occurrences":
        merged = merge_occurrences(measurements, spec.event_types, window, config=config)
        rows = [
            {
                "timestamp": point.display_timestamp,
                "rawTimestamp": point.raw_timestamp,
                **point.values,
            }
            for point in merged
        ]
        series = list(spec.event_types)
    else:
        points = project(
            measurements,
            spec.event_types[0],
            window,
            clock=clock,
            value_map=spec.value_map,
            config=config,
        )
        series_key = spec.series_key or spec.event_types[0]
        rows = [
            {
                "timestamp": point.display_timestamp,
                "rawTimestamp": point.raw_timestamp,
                series_key: point.value,
            }
            for point in points
        ]
        series = [series_key]

    return {
        "chart_id": spec.chart_id,
        "title": spec.title,
        "kind": spec.kind,
        "window": None if window is None else {"start": window.start, "end": window.end},
        "series": series,
        "rows": rows,
    }


def build_network_chart_payload(
    records: Iterable[NetworkLogRecord],
    chart_id: str,
) -> dict[str, Any]:
    try:
        fields = NETWORK_CHARTS[chart_id]
    except KeyError as exc:
        raise ValueError(f"unknown network chart: {chart_id}") from exc
    rows = [
        {"timestamp": record.timestamp, **{field: getattr(record, field) for field in fields}}
        for record in records
    ]
    return {"chart_id": chart_id, "series": list(fields), "rows": rows}


def format_bytes(num_bytes: float) -> str:
    if not math.isfinite(num_bytes) or num_bytes <= 0:
        return "0 B"
    exponent = 0
    scaled = float(num_bytes)
    while scaled >= 1024 and exponent < len(BYTE_UNITS) - 1:
        scaled /= 1024
        exponent += 1
    label = f"{scaled:.2f}".rstrip("0").rstrip(".")
    return f"{label} {BYTE_UNITS[exponent]}"


def _format_stat(value: float, template: str) -> str:
    if math.isnan(value):
        return MISSING_STAT_LABEL
    return template.format(value)


def format_network_summary(summary: NetworkSummary) -> dict[str, str]:
    """Stat-card labels; averages over no samples render as ``n/a``."""
    return {
        "avg_speed": _format_stat(summary.avg_speed, "{:.2f} Mbps"),
        "avg_signal": _format_stat(summary.avg_signal, "{:.0f} dBm"),
        "total_rx": format_bytes(summary.total_rx),
        "total_tx": format_bytes(summary.total_tx),
        "avg_ping": _format_stat(summary.avg_ping, "{:.0f} ms"),
    }

from __future__ import annotations

import math

import pytest

from telemetry_projection.features.windows import WindowRegistry
from telemetry_projection.models import Measurement, NetworkLogRecord, NetworkSummary, TimeWindow
from telemetry_projection.report.charts import (
    EVENT_CHARTS,
    build_event_chart_payload,
    build_network_chart_payload,
    format_bytes,
    format_network_summary,
)

HOUR_MS = 60 * 60 * 1000


def _event(timestamp: int, event_type: str, value: object) -> Measurement:
    return Measurement(timestamp=timestamp, type=event_type, value=value)


def test_event_chart_catalog_matches_dashboard() -> None:
    assert sorted(EVENT_CHARTS) == [
        "battery_level",
        "button_presses",
        "device_status",
        "wifi_status",
    ]
    assert EVENT_CHARTS["button_presses"].kind == "occurrences"


def test_device_status_chart_inverts_off_body_and_uses_registry_window() -> None:
    measurements = [
        _event(1000, "off_body", True),
        _event(5000, "off_body", False),
        _event(9000, "off_body", True),
    ]
    windows = WindowRegistry({"device_status": TimeWindow(start=0, end=6000)})

    payload = build_event_chart_payload(measurements, "device_status", windows=windows)

    assert payload["window"] == {"start": 0, "end": 6000}
    assert payload["series"] == ["status"]
    assert [(row["rawTimestamp"], row["status"]) for row in payload["rows"]] == [
        (1000, 0),
        (4999, 0),
        (5000, 1),
    ]


def test_wifi_chart_without_window_rolls_to_now() -> None:
    measurements = [
        _event(1 * HOUR_MS, "wifi_connected", True),
        _event(2 * HOUR_MS, "wifi_connected", False),
    ]

    payload = build_event_chart_payload(
        measurements,
        "wifi_status",
        windows=WindowRegistry({"device_status": TimeWindow(start=0, end=1)}),
        clock=lambda: 3 * HOUR_MS,
    )

    assert payload["window"] is None
    assert [(row["rawTimestamp"], row["connected"]) for row in payload["rows"]] == [
        (1 * HOUR_MS, 1),
        (2 * HOUR_MS - 1, 1),
        (2 * HOUR_MS, 0),
        (3 * HOUR_MS, 0),
    ]


def test_battery_chart_keeps_numeric_levels() -> None:
    payload = build_event_chart_payload(
        [_event(1000, "low_battery", 42)],
        "battery_level",
        clock=lambda: 2000,
    )
    assert [row["battery"] for row in payload["rows"]] == [42.0, 42.0]


def test_button_press_chart_merges_occurrences() -> None:
    measurements = [
        _event(20, "notification_button_press", True),
        _event(10, "button_press", True),
    ]

    payload = build_event_chart_payload(measurements, "button_presses")

    assert payload["series"] == ["button_press", "notification_button_press"]
    assert [
        (row["rawTimestamp"], row["button_press"], row["notification_button_press"])
        for row in payload["rows"]
    ] == [(10, 1, 0), (20, 0, 1)]


def test_unknown_chart_ids_raise() -> None:
    with pytest.raises(ValueError):
        build_event_chart_payload([], "heart_rate")
    with pytest.raises(ValueError):
        build_network_chart_payload([], "latency")


def test_network_chart_payload_selects_metric_fields() -> None:
    records = [NetworkLogRecord(timestamp=1, ping=10, jitter=2, snr=30)]
    payload = build_network_chart_payload(records, "quality")
    assert payload["series"] == ["ping", "jitter"]
    assert payload["rows"] == [{"timestamp": 1, "ping": 10, "jitter": 2}]


def test_format_bytes() -> None:
    assert format_bytes(0) == "0 B"
    assert format_bytes(512) == "512 B"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(1024 * 1024) == "1 MB"
    assert format_bytes(5 * 1024**4) == "5120 GB"
    assert format_bytes(math.nan) == "0 B"


def test_format_network_summary_guards_empty_averages() -> None:
    empty = NetworkSummary(
        avg_signal=math.nan,
        avg_speed=math.nan,
        avg_ping=math.nan,
        total_rx=0,
        total_tx=0,
        type_histogram=(),
    )
    filled = NetworkSummary(
        avg_signal=-67.4,
        avg_speed=12.346,
        avg_ping=31.6,
        total_rx=2048,
        total_tx=10,
        type_histogram=(("wifi", 1),),
    )

    assert format_network_summary(empty)["avg_speed"] == "n/a"
    assert format_network_summary(empty)["total_rx"] == "0 B"
    assert format_network_summary(filled) == {
        "avg_speed": "12.35 Mbps",
        "avg_signal": "-67 dBm",
        "total_rx": "2 KB",
        "total_tx": "10 B",
        "avg_ping": "32 ms",
    }

from __future__ import annotations

import json
import logging

from telemetry_projection.config import AppConfig
from telemetry_projection.features.logs import (
    average_collisions,
    normalize_log,
    offset_collisions,
    parse_battery_usage,
    reconcile_network_logs,
)
from telemetry_projection.models import NetworkLogRecord, TimeWindow


def _raw_log(timestamp: object, **fields: object) -> dict[str, object]:
    return {"timestamp": timestamp, **fields}


def test_parse_battery_usage_strips_unit_suffix() -> None:
    assert parse_battery_usage("12.5 µWh") == 12.5
    assert parse_battery_usage("300mAh") == 300.0
    assert parse_battery_usage("-.5 W") == -0.5
    assert parse_battery_usage(7) == 7.0
    assert parse_battery_usage("unknown") == 0.0
    assert parse_battery_usage(None) == 0.0


def test_normalize_log_flattens_and_defaults_missing_fields() -> None:
    record = normalize_log(
        _raw_log(
            {"seconds": 2, "nanoseconds": 500_000_000},
            signalStrength=-67,
            downloadSpeed="14.2",
            data_usage={"rx_bytes": 2048, "tx_bytes": 512},
            batteryUsage="40.5 µWh",
            isCharging=True,
            networkType=" WIFI ",
            location={"lat": 1.0, "long": 2.0},
        )
    )

    assert record == NetworkLogRecord(
        timestamp=2500,
        signal_strength=-67.0,
        download_speed=14.2,
        rx_bytes=2048.0,
        tx_bytes=512.0,
        battery_usage=40.5,
        is_charging=True,
        network_type="WIFI",
        location={"lat": 1.0, "long": 2.0},
    )
    assert record.ping == 0.0
    assert record.link_speed == 0.0


def test_normalize_log_rejects_records_without_timestamp() -> None:
    assert normalize_log({"signalStrength": -50}) is None
    assert normalize_log(_raw_log("garbage")) is None
    assert normalize_log("not a mapping") is None


def test_reconcile_normalizes_both_source_shapes() -> None:
    logs = [
        _raw_log({"seconds": 3, "nanoseconds": 0}, ping=10),
        _raw_log("1000", ping=20),
        _raw_log("1970-01-01T00:00:02Z", ping=30),
    ]

    records = reconcile_network_logs(logs)

    assert [(r.timestamp, r.ping) for r in records] == [(1000, 20.0), (2000, 30.0), (3000, 10.0)]


def test_reconcile_filters_to_window_and_network_type() -> None:
    logs = [
        _raw_log("500", networkType="wifi"),
        _raw_log("1500", networkType="wifi"),
        _raw_log("1600", networkType="lte"),
        _raw_log("2500", networkType="wifi"),
    ]

    in_window = reconcile_network_logs(logs, TimeWindow(start=1000, end=2000))
    wifi_only = reconcile_network_logs(logs, network_type="wifi")

    assert [r.timestamp for r in in_window] == [1500, 1600]
    assert [r.timestamp for r in wifi_only] == [500, 1500, 2500]


def test_reconcile_offsets_collisions_into_strictly_ascending_series(caplog) -> None:
    logs = [
        _raw_log("101", ping=1),
        _raw_log("100", ping=2),
        _raw_log("100", ping=3),
        _raw_log("100", ping=4),
        _raw_log("oops", ping=5),
    ]

    with caplog.at_level(logging.DEBUG, logger="telemetry_projection.features.logs"):
        records = reconcile_network_logs(logs)

    timestamps = [r.timestamp for r in records]
    assert timestamps == [100, 101, 102, 103]
    assert all(earlier < later for earlier, later in zip(timestamps, timestamps[1:]))
    assert [r.ping for r in records] == [2.0, 1.0, 3.0, 4.0]
    assert "Dropped 1 network log(s)" in caplog.text


def test_offset_collisions_uses_configured_offset() -> None:
    records = [NetworkLogRecord(timestamp=10), NetworkLogRecord(timestamp=10)]
    assert [r.timestamp for r in offset_collisions(records, offset_ms=5)] == [10, 15]


def test_average_policy_merges_colliding_samples() -> None:
    config = AppConfig.model_validate({"reconcile": {"collision_policy": "average"}})
    logs = [
        _raw_log("100", signalStrength=-50, ping=10, data_usage={"rx_bytes": 5, "tx_bytes": 1}),
        _raw_log(
            "100",
            signalStrength=-70,
            ping=30,
            isCharging=True,
            networkType="wifi",
            data_usage={"rx_bytes": 7, "tx_bytes": 2},
        ),
        _raw_log("50", signalStrength=-40),
    ]

    records = reconcile_network_logs(logs, config=config)

    assert [r.timestamp for r in records] == [50, 100]
    merged = records[1]
    assert merged.signal_strength == -60.0
    assert merged.ping == 20.0
    assert merged.rx_bytes == 12.0
    assert merged.tx_bytes == 3.0
    assert merged.is_charging is True
    assert merged.network_type == "wifi"
    assert merged.location is None


def test_average_collisions_empty_input() -> None:
    assert average_collisions([]) == []


def test_reconcile_drops_infinite_timestamps_without_aborting_batch() -> None:
    logs = json.loads(
        '[{"timestamp": {"seconds": Infinity, "nanoseconds": 0}},'
        ' {"timestamp": Infinity},'
        ' {"timestamp": "100", "ping": 5}]'
    )

    records = reconcile_network_logs(logs)

    assert [(r.timestamp, r.ping) for r in records] == [(100, 5.0)]

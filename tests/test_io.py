from __future__ import annotations

import json
import math
from pathlib import Path

import pandas as pd
import pytest

from telemetry_projection.io.read import load_event_snapshot, load_log_snapshot
from telemetry_projection.io.write import to_jsonable, write_rows, write_summary
from telemetry_projection.models import NetworkSummary, ProjectedPoint


def test_load_event_snapshot_accepts_wrapped_and_bare_documents(tmp_path: Path) -> None:
    wrapped = tmp_path / "wrapped.json"
    wrapped.write_text(
        json.dumps({"events": {"1000": {"off_body.Success": {"value": True}}}}),
        encoding="utf-8",
    )
    bare = tmp_path / "bare.yaml"
    bare.write_text("2000:\n  wifi_connected.Success:\n    value: false\n", encoding="utf-8")

    assert load_event_snapshot(wrapped) == {"1000": {"off_body.Success": {"value": True}}}
    assert load_event_snapshot(bare) == {"2000": {"wifi_connected.Success": {"value": False}}}


def test_load_log_snapshot_injects_document_id_timestamps(tmp_path: Path) -> None:
    path = tmp_path / "logs.json"
    path.write_text(
        json.dumps(
            {
                "logs": {
                    "1500": {"ping": 10},
                    "1600": {"ping": 20, "timestamp": {"seconds": 2, "nanoseconds": 0}},
                }
            }
        ),
        encoding="utf-8",
    )

    logs = load_log_snapshot(path)

    assert logs[0] == {"timestamp": "1500", "ping": 10}
    assert logs[1]["timestamp"] == {"seconds": 2, "nanoseconds": 0}


def test_load_snapshot_rejects_unknown_types(tmp_path: Path) -> None:
    path = tmp_path / "events.csv"
    path.write_text("id\n1\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_event_snapshot(path)

    listed = tmp_path / "events.json"
    listed.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_event_snapshot(listed)


def test_to_jsonable_converts_dataclasses_and_nan() -> None:
    summary = NetworkSummary(
        avg_signal=math.nan,
        avg_speed=1.0,
        avg_ping=2.0,
        total_rx=0.0,
        total_tx=0.0,
        type_histogram=(("wifi", 3),),
    )
    assert to_jsonable(summary) == {
        "avg_signal": None,
        "avg_speed": 1.0,
        "avg_ping": 2.0,
        "total_rx": 0.0,
        "total_tx": 0.0,
        "type_histogram": [["wifi", 3]],
    }


def test_write_summary_and_rows(tmp_path: Path) -> None:
    points = [ProjectedPoint(display_timestamp="01/01\n00:00", raw_timestamp=0, value=True)]
    summary_path = write_summary(points, tmp_path / "out" / "points.json")
    assert json.loads(summary_path.read_text(encoding="utf-8"))[0]["raw_timestamp"] == 0

    rows_path = write_rows([{"rawTimestamp": 0, "status": 1}], tmp_path / "rows.csv")
    assert pd.read_csv(rows_path).to_dict(orient="records") == [{"rawTimestamp": 0, "status": 1}]

    with pytest.raises(ValueError):
        write_rows([], tmp_path / "rows.parquet")

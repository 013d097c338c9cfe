"""Entry points handed to the rendering layer.

Every function here is pure: it takes already-fetched records and an optional
window and returns fresh output. Charts hold their own ``TimeWindow`` (see
``WindowRegistry``), so recomputing one chart never touches another.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence

from telemetry_projection.config import AppConfig
from telemetry_projection.features.aggregates import summarize_network
from telemetry_projection.features.logs import reconcile_network_logs
from telemetry_projection.features.merge import merge_occurrences as _merge_occurrences
from telemetry_projection.features.step import Clock, ValueMap, project_steps
from telemetry_projection.features.windows import select_window
from telemetry_projection.models import (
    Measurement,
    MergedPoint,
    NetworkLogRecord,
    NetworkSummary,
    ProjectedPoint,
    TimeWindow,
)


def project(
    measurements: Iterable[Measurement],
    event_type: str,
    window: TimeWindow | None = None,
    *,
    clock: Clock | None = None,
    value_map: ValueMap | None = None,
    config: AppConfig | None = None,
) -> list[ProjectedPoint]:
    """Step-projected chart points for one event type.

    Without ``window`` the rolling mode is used and the series ends at
    ``clock()``.
    """
    config = config or AppConfig()
    selection = select_window(measurements, event_type, window, config=config.projection)
    return project_steps(
        selection.measurements,
        rolling=selection.rolling,
        clock=clock,
        value_map=value_map,
        config=config,
    )


def merge_occurrences(
    measurements: Iterable[Measurement],
    event_types: Sequence[str],
    window: TimeWindow | None = None,
    *,
    config: AppConfig | None = None,
) -> list[MergedPoint]:
    return _merge_occurrences(measurements, event_types, window, config=config)


def reconcile_logs(
    records: Iterable[Any],
    window: TimeWindow | None = None,
    *,
    network_type: str | None = None,
    config: AppConfig | None = None,
) -> list[NetworkLogRecord]:
    return reconcile_network_logs(records, window, network_type=network_type, config=config)


def aggregate(records: Iterable[NetworkLogRecord]) -> NetworkSummary:
    return summarize_network(records)

from __future__ import annotations

from typing import Iterable, Sequence

from telemetry_projection.config import AppConfig
from telemetry_projection.features.windows import select_window
from telemetry_projection.models import Measurement, MergedPoint, TimeWindow
from telemetry_projection.preprocess.time import format_display_timestamp


def _unique_types(event_types: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(event_types))


def merge_occurrence_series(
    series: Sequence[Sequence[Measurement]],
    event_types: Sequence[str],
    *,
    config: AppConfig | None = None,
) -> list[MergedPoint]:
    """Interleave already-windowed series into one occurrence-marker series.

    Every output point marks exactly one event type with 1 and all others
    with 0. The sort is stable, so events sharing a timestamp keep the order
    of ``series``.
    """
    config = config or AppConfig()
    combined = [measurement for subset in series for measurement in subset]
    combined.sort(key=lambda measurement: measurement.timestamp)
    return [
        MergedPoint(
            display_timestamp=format_display_timestamp(measurement.timestamp, config.time),
            raw_timestamp=measurement.timestamp,
            values={event_type: int(measurement.type == event_type) for event_type in event_types},
        )
        for measurement in combined
    ]


def merge_occurrences(
    measurements: Iterable[Measurement],
    event_types: Sequence[str],
    window: TimeWindow | None = None,
    *,
    config: AppConfig | None = None,
) -> list[MergedPoint]:
    types = _unique_types(event_types)
    if len(types) < 2:
        raise ValueError("merge_occurrences needs at least two distinct event types")
    config = config or AppConfig()
    pool = list(measurements)
    series = [
        select_window(
            pool,
            event_type,
            window,
            config=config.projection,
            carry_forward=False,
        ).measurements
        for event_type in types
    ]
    return merge_occurrence_series(series, types, config=config)

from __future__ import annotations

from typing import Any, Callable, Sequence

from telemetry_projection.config import AppConfig
from telemetry_projection.models import Measurement, ProjectedPoint
from telemetry_projection.preprocess.time import format_display_timestamp, now_millis

Clock = Callable[[], int]
ValueMap = Callable[[Any], Any]


def _identity(value: Any) -> Any:
    return value


def project_steps(
    measurements: Sequence[Measurement],
    *,
    rolling: bool,
    clock: Clock | None = None,
    value_map: ValueMap | None = None,
    config: AppConfig | None = None,
) -> list[ProjectedPoint]:
    """Turn ascending same-type events into step-after chart points.

    Each event contributes its own point plus a hold point just before the
    next event carrying the previous value, so ``n`` events yield ``2n - 1``
    points. Rolling selections also get a trailing point at ``clock()``.
    """
    if not measurements:
        return []
    config = config or AppConfig()
    clock = clock or now_millis
    value_map = value_map or _identity
    hold_offset = config.projection.hold_offset_ms

    def display(timestamp: int) -> str:
        return format_display_timestamp(timestamp, config.time)

    points: list[ProjectedPoint] = []
    for index, measurement in enumerate(measurements):
        value = value_map(measurement.value)
        points.append(ProjectedPoint(display(measurement.timestamp), measurement.timestamp, value))
        if index + 1 < len(measurements):
            next_timestamp = measurements[index + 1].timestamp
            # Same-instant events would otherwise hold to before the current event.
            hold_timestamp = max(next_timestamp - hold_offset, measurement.timestamp)
            points.append(ProjectedPoint(display(next_timestamp), hold_timestamp, value))

    if rolling:
        now = clock()
        points.append(ProjectedPoint(display(now), now, value_map(measurements[-1].value)))
    return points

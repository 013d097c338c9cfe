from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Iterator, Mapping

from telemetry_projection.config import ProjectionConfig, WindowConfig
from telemetry_projection.models import Measurement, TimeWindow


@dataclass(frozen=True)
class WindowSelection:
    measurements: tuple[Measurement, ...]
    rolling: bool
    cutoff: int | None = None

    def __len__(self) -> int:
        return len(self.measurements)

    def __iter__(self) -> Iterator[Measurement]:
        return iter(self.measurements)


def events_of_type(measurements: Iterable[Measurement], event_type: str) -> list[Measurement]:
    """Events of one type in ascending timestamp order; ties keep input order."""
    filtered = [measurement for measurement in measurements if measurement.type == event_type]
    return sorted(filtered, key=lambda measurement: measurement.timestamp)


def select_explicit(
    measurements: Iterable[Measurement],
    event_type: str,
    window: TimeWindow,
) -> WindowSelection:
    selected = tuple(
        measurement
        for measurement in events_of_type(measurements, event_type)
        if window.contains(measurement.timestamp)
    )
    return WindowSelection(measurements=selected, rolling=False)


def select_rolling(
    measurements: Iterable[Measurement],
    event_type: str,
    *,
    window_ms: int,
    carry_forward: bool = True,
) -> WindowSelection:
    ordered = events_of_type(measurements, event_type)
    if not ordered:
        return WindowSelection(measurements=(), rolling=True)

    cutoff = ordered[-1].timestamp - window_ms
    before_cutoff = [measurement for measurement in ordered if measurement.timestamp < cutoff]
    selected = [measurement for measurement in ordered if measurement.timestamp >= cutoff]
    if carry_forward and before_cutoff:
        # Copy of the last pre-cutoff state, pinned to the window edge.
        selected.insert(0, replace(before_cutoff[-1], timestamp=cutoff))
    return WindowSelection(measurements=tuple(selected), rolling=True, cutoff=cutoff)


def select_window(
    measurements: Iterable[Measurement],
    event_type: str,
    window: TimeWindow | None = None,
    *,
    config: ProjectionConfig | None = None,
    carry_forward: bool = True,
) -> WindowSelection:
    """Select events of ``event_type`` for one chart.

    With an explicit ``window`` the result is the inclusive in-window subset.
    Without one, the window rolls back ``rolling_window_hours`` from the latest
    event of the type, and the last state before that cutoff is carried forward
    onto the cutoff instant so the chart never opens blank.
    """
    if window is not None:
        return select_explicit(measurements, event_type, window)
    config = config or ProjectionConfig()
    return select_rolling(
        measurements,
        event_type,
        window_ms=config.rolling_window_ms,
        carry_forward=carry_forward,
    )


class WindowRegistry:
    """Independent explicit windows keyed by chart identifier."""

    def __init__(self, windows: Mapping[str, TimeWindow] | None = None) -> None:
        self._windows: dict[str, TimeWindow] = dict(windows or {})

    @classmethod
    def from_config(cls, windows: Mapping[str, WindowConfig]) -> "WindowRegistry":
        return cls(
            {
                chart_id: TimeWindow(start=window.start, end=window.end)
                for chart_id, window in windows.items()
            }
        )

    def get(self, chart_id: str) -> TimeWindow | None:
        return self._windows.get(chart_id)

    def set(self, chart_id: str, window: TimeWindow) -> None:
        self._windows[chart_id] = window

    def clear(self, chart_id: str) -> None:
        self._windows.pop(chart_id, None)

    def chart_ids(self) -> list[str]:
        return sorted(self._windows)

    def __contains__(self, chart_id: object) -> bool:
        return chart_id in self._windows

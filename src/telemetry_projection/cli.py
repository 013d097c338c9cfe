from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer

from telemetry_projection.config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from telemetry_projection.engine import aggregate, merge_occurrences, project, reconcile_logs
from telemetry_projection.features.step import Clock
from telemetry_projection.features.windows import WindowRegistry
from telemetry_projection.io.read import load_event_snapshot, load_log_snapshot
from telemetry_projection.io.write import to_jsonable, write_rows, write_summary
from telemetry_projection.logging import configure_logging
from telemetry_projection.models import TimeWindow
from telemetry_projection.preprocess.events import normalize_events
from telemetry_projection.report.charts import (
    EVENT_CHARTS,
    build_event_chart_payload,
    format_network_summary,
)

LOGGER = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, add_completion=False)


def _load_app_config(config_path: Path | None) -> AppConfig:
    if config_path is not None:
        return load_config(config_path)
    if DEFAULT_CONFIG_PATH.exists():
        return load_config(DEFAULT_CONFIG_PATH)
    return AppConfig()


def _window_from_options(start: int | None, end: int | None) -> TimeWindow | None:
    if start is None and end is None:
        return None
    if start is None or end is None:
        raise typer.BadParameter("--start and --end must be given together.")
    try:
        return TimeWindow(start=start, end=end)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _fixed_clock(now: int | None) -> Clock | None:
    if now is None:
        return None
    return lambda: now


def _emit(payload: Any, out: Path | None) -> None:
    if out is not None:
        write_summary(payload, out)
        typer.echo(f"Wrote: {out}")
        return
    typer.echo(json.dumps(to_jsonable(payload), indent=2, sort_keys=True))


@app.command("project")
def project_command(
    events: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    event_type: str = typer.Option(
        ..., "--type", help="Event type to project, e.g. wifi_connected."
    ),
    start: int | None = typer.Option(None, min=0, help="Window start, epoch milliseconds."),
    end: int | None = typer.Option(None, min=0, help="Window end, epoch milliseconds."),
    now: int | None = typer.Option(None, min=0, help="Fixed 'now' for the rolling trailing point."),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(None, resolve_path=True),
) -> None:
    """Project one event type into step-chart points."""
    configure_logging()
    cfg = _load_app_config(config)
    window = _window_from_options(start, end)
    measurements = normalize_events(load_event_snapshot(events))
    points = project(measurements, event_type, window, clock=_fixed_clock(now), config=cfg)
    LOGGER.info("Projected %d point(s) for %s", len(points), event_type)
    _emit(points, out)


@app.command("merge")
def merge_command(
    events: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    event_types: list[str] = typer.Option(..., "--type", help="Repeat for each event type."),
    start: int | None = typer.Option(None, min=0),
    end: int | None = typer.Option(None, min=0),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(None, resolve_path=True),
) -> None:
    """Merge occurrences of several event types into one series."""
    configure_logging()
    cfg = _load_app_config(config)
    window = _window_from_options(start, end)
    measurements = normalize_events(load_event_snapshot(events))
    try:
        points = merge_occurrences(measurements, event_types, window, config=cfg)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    _emit(points, out)


@app.command("chart")
def chart_command(
    events: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    chart: str = typer.Option(..., help=f"One of: {', '.join(sorted(EVENT_CHARTS))}."),
    now: int | None = typer.Option(None, min=0),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(None, resolve_path=True),
) -> None:
    """Build a dashboard event chart using the windows configured per chart."""
    configure_logging()
    cfg = _load_app_config(config)
    if chart not in EVENT_CHARTS:
        raise typer.BadParameter(f"Unknown chart '{chart}'.")
    measurements = normalize_events(load_event_snapshot(events))
    payload = build_event_chart_payload(
        measurements,
        chart,
        windows=WindowRegistry.from_config(cfg.windows),
        clock=_fixed_clock(now),
        config=cfg,
    )
    if out is not None and out.suffix == ".csv":
        write_rows(payload["rows"], out)
        typer.echo(f"Wrote: {out}")
        return
    _emit(payload, out)


@app.command("reconcile")
def reconcile_command(
    logs: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    start: int | None = typer.Option(None, min=0),
    end: int | None = typer.Option(None, min=0),
    network_type: str | None = typer.Option(None),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
    out: Path | None = typer.Option(None, resolve_path=True),
) -> None:
    """Normalize, de-collide and sort network logs."""
    configure_logging()
    cfg = _load_app_config(config)
    window = _window_from_options(start, end)
    records = reconcile_logs(
        load_log_snapshot(logs),
        window,
        network_type=network_type,
        config=cfg,
    )
    LOGGER.info("Reconciled %d network log(s)", len(records))
    _emit(records, out)


@app.command("aggregate")
def aggregate_command(
    logs: Path = typer.Option(..., exists=True, readable=True, resolve_path=True),
    start: int | None = typer.Option(None, min=0),
    end: int | None = typer.Option(None, min=0),
    config: Path | None = typer.Option(None, exists=True, readable=True, resolve_path=True),
) -> None:
    """Summarize network logs into stat-card values."""
    configure_logging()
    cfg = _load_app_config(config)
    window = _window_from_options(start, end)
    records = reconcile_logs(load_log_snapshot(logs), window, config=cfg)
    summary = aggregate(records)
    typer.echo(f"Samples: {len(records)}")
    for label, value in format_network_summary(summary).items():
        typer.echo(f"- {label}: {value}")
    for network_type, count in summary.type_histogram:
        typer.echo(f"- network_type[{network_type}]: {count}")

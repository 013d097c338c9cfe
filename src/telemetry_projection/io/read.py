from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

import yaml

EVENTS_SECTION = "events"
LOGS_SECTION = "logs"


def load_snapshot(path: Path) -> Any:
    """Read a JSON or YAML snapshot exported from the document store."""
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".json":
        return json.loads(text)
    if path.suffix in {".yaml", ".yml"}:
        return yaml.safe_load(text)
    raise ValueError(f"Unsupported snapshot file type: {path.suffix}")


def _section(payload: Any, name: str) -> Any:
    if isinstance(payload, Mapping) and name in payload:
        return payload[name]
    return payload


def load_event_snapshot(path: Path) -> dict[str, Any]:
    """Event documents keyed by their epoch-millisecond document id."""
    documents = _section(load_snapshot(path), EVENTS_SECTION)
    if not isinstance(documents, Mapping):
        raise ValueError(f"Event snapshot must map document ids to events: {path}")
    return {str(document_id): data for document_id, data in documents.items()}


def load_log_snapshot(path: Path) -> list[Any]:
    """Raw network logs, as a list or keyed by epoch-millisecond document id.

    Keyed logs without their own ``timestamp`` take it from the document id.
    """
    logs = _section(load_snapshot(path), LOGS_SECTION)
    if isinstance(logs, list):
        return logs
    if isinstance(logs, Mapping):
        return [
            {"timestamp": str(document_id), **log} if isinstance(log, Mapping) else log
            for document_id, log in logs.items()
        ]
    raise ValueError(f"Log snapshot must be a list or a mapping of logs: {path}")

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from telemetry_projection.models import Measurement
from telemetry_projection.preprocess.time import parse_epoch_millis

LOGGER = logging.getLogger(__name__)

EVENT_KEY_SEPARATOR = "."
ATTRIBUTES_FIELD = "measurements"


def split_event_key(event_key: Any) -> tuple[str, str | None] | None:
    """Split ``"wifi_connected.Success"`` into ``("wifi_connected", "Success")``."""
    if not isinstance(event_key, str):
        return None
    event_type, _, outcome = event_key.partition(EVENT_KEY_SEPARATOR)
    if not event_type:
        return None
    return event_type, outcome or None


def normalize_event(document_id: Any, data: Any) -> Measurement | None:
    """Decode one stored event document, or ``None`` when its shape is not recognized."""
    timestamp = parse_epoch_millis(document_id)
    if timestamp is None:
        return None
    if not isinstance(data, Mapping) or len(data) != 1:
        return None

    ((event_key, payload),) = data.items()
    parsed_key = split_event_key(event_key)
    if parsed_key is None:
        return None
    if not isinstance(payload, Mapping) or "value" not in payload:
        return None

    attributes = payload.get(ATTRIBUTES_FIELD)
    if not isinstance(attributes, Mapping):
        attributes = {}

    event_type, outcome = parsed_key
    return Measurement(
        timestamp=timestamp,
        type=event_type,
        value=payload["value"],
        attributes=dict(attributes),
        outcome=outcome,
    )


def _iter_documents(
    documents: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> Iterable[tuple[Any, Any]]:
    if isinstance(documents, Mapping):
        return documents.items()
    return documents


def normalize_events(
    documents: Mapping[str, Any] | Iterable[tuple[str, Any]],
) -> list[Measurement]:
    """Decode a batch of ``(document_id, data)`` pairs, dropping malformed records."""
    measurements: list[Measurement] = []
    dropped = 0
    for document_id, data in _iter_documents(documents):
        measurement = normalize_event(document_id, data)
        if measurement is None:
            dropped += 1
            continue
        measurements.append(measurement)
    if dropped:
        LOGGER.debug(
            "Dropped %d malformed event record(s) of %d",
            dropped,
            dropped + len(measurements),
        )
    return measurements

"""Ingest payload → state-store event.

This module centralizes the pattern used by every ingest path:

- reject payloads that are not JSON objects
- parse the object into a typed :class:`SnapshotPatch`
- dump only the recognized fields that were actually present
- wrap the patch in an :class:`IngestEvent`
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pynowplaying.exceptions import InvalidPayloadError
from pynowplaying.models.snapshot import SnapshotPatch
from pynowplaying.models.state import SharedStateRecord
from pynowplaying.state.events import IngestEvent, IngestSource


def build_ingest_event(raw: Any, *, source: IngestSource = IngestSource.HTTP) -> IngestEvent:
    """Build an ingest event from a decoded JSON body.

    Raises
    ------
    InvalidPayloadError
        If *raw* is not a JSON object.
    """
    if not isinstance(raw, dict):
        raise InvalidPayloadError(f"update payload must be a JSON object, got {type(raw).__name__}")
    patch = SnapshotPatch.model_validate(raw)
    return IngestEvent(source=source, data=patch.as_patch(), raw=raw)


def ingest_payload(
    store_apply: Callable[[IngestEvent], SharedStateRecord],
    raw: Any,
    *,
    source: IngestSource = IngestSource.HTTP,
) -> SharedStateRecord:
    """Build and apply an ingest event to a store."""
    return store_apply(build_ingest_event(raw, source=source))

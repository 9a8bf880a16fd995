"""In-memory state store.

This is the only component allowed to merge ingested playback updates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pynowplaying._redact import summarize_for_log
from pynowplaying.models.state import SharedStateRecord
from pynowplaying.state.events import IngestEvent

_logger = logging.getLogger(__name__)

# Fields the merge always assigns itself.
_STORE_OWNED_KEYS: frozenset[str] = frozenset({"observed_at", "updated_at"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _merge_patch(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Apply a normalized patch.

    The ingestion/Pydantic boundary is responsible for dropping unknown
    keys and coercing values, so merge semantics are simple: keys in the
    patch overwrite, keys absent from the patch keep their value.
    """

    for key, value in patch.items():
        if key in _STORE_OWNED_KEYS:
            continue
        target[key] = value


class StateStore:
    """Last-write-wins store holding a single :class:`SharedStateRecord`.

    The record is an immutable model that is swapped in whole on every
    merge, so a reader holding a reference never observes a half-applied
    update.  The store is meant to be driven from a single event loop.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._record = SharedStateRecord.empty(clock())

    def apply(self, event: IngestEvent) -> SharedStateRecord:
        """Merge *event* into the record and stamp ``updated_at``."""
        now = self._clock()
        merged = self._record.model_dump()
        _merge_patch(merged, event.data)
        merged["observed_at"] = now
        merged["updated_at"] = now
        self._record = SharedStateRecord.model_validate(merged)
        _logger.debug(
            "Merged %s update keys=%s record=%s",
            event.source,
            sorted(event.data),
            summarize_for_log(self._record.to_wire()),
        )
        return self._record

    def get(self) -> SharedStateRecord:
        """Return the current record."""
        return self._record

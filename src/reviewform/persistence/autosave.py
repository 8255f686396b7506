"""TTL-bound snapshot persistence for the in-progress review form."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from ..timing import Clock, epoch_millis, utc_now
from .stores import PersistenceError, Store

LOGGER = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "review-form-progress"
DEFAULT_TTL = timedelta(hours=24)


@dataclass
class Snapshot:
    """Persisted form state.

    Attributes:
        form_data: Draft values keyed by wire (camelCase) field names
        progress: Progress record as produced by ``FormProgress.to_dict``
        timestamp: When the snapshot was taken, epoch milliseconds
    """

    form_data: dict[str, Any] = field(default_factory=dict)
    progress: dict[str, Any] = field(default_factory=dict)
    timestamp: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"formData": self.form_data, "progress": self.progress, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: Any) -> Snapshot:
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be a JSON object")
        form_data = data.get("formData")
        progress = data.get("progress")
        timestamp = data.get("timestamp")
        if not isinstance(form_data, dict) or not isinstance(progress, dict):
            raise ValueError("Snapshot is missing formData or progress")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            raise ValueError("Snapshot timestamp must be a number")
        return cls(form_data=form_data, progress=progress, timestamp=int(timestamp))


class AutoSaveStore:
    """Best-effort persistence of form snapshots.

    Never raises: storage failures are logged and the form keeps working
    without persistence. Snapshots older than ``ttl`` are discarded on load.
    """

    def __init__(
        self,
        store: Store,
        *,
        key: str = DEFAULT_STORAGE_KEY,
        ttl: timedelta = DEFAULT_TTL,
        clock: Clock = utc_now,
        enabled: bool = True,
    ) -> None:
        self.store = store
        self.key = key
        self.ttl = ttl
        self.enabled = enabled
        self._clock = clock

    def now_millis(self) -> int:
        return epoch_millis(self._clock())

    def save_progress(self, snapshot: Snapshot) -> bool:
        """Write a snapshot.

        Returns:
            True if the snapshot was stored, False if disabled or storage failed
        """
        if not self.enabled:
            return False
        try:
            encoded = json.dumps(snapshot.to_dict(), ensure_ascii=False)
            self.store.set(self.key, encoded)
        except (PersistenceError, OSError, TypeError, ValueError) as exc:
            LOGGER.warning("Failed to save form progress: %s", exc)
            return False
        LOGGER.debug("Saved form progress under %s", self.key)
        return True

    def load_progress(self) -> Snapshot | None:
        """Read the stored snapshot if it exists and is within the TTL."""
        if not self.enabled:
            return None
        try:
            raw = self.store.get(self.key)
        except (PersistenceError, OSError) as exc:
            LOGGER.warning("Failed to load form progress: %s", exc)
            return None
        if raw is None:
            return None

        try:
            snapshot = Snapshot.from_dict(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValueError) as exc:
            LOGGER.warning("Discarding unreadable form progress: %s", exc)
            self.clear_saved_progress()
            return None

        age_ms = self.now_millis() - snapshot.timestamp
        if age_ms > self.ttl.total_seconds() * 1000:
            LOGGER.info("Discarding saved form progress older than %s", self.ttl)
            self.clear_saved_progress()
            return None
        return snapshot

    def clear_saved_progress(self) -> None:
        try:
            self.store.delete(self.key)
        except (PersistenceError, OSError) as exc:
            LOGGER.warning("Failed to clear saved progress: %s", exc)

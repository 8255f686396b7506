"""Persistence layer for in-progress review forms.

Public API:
- Store: key/value storage protocol (get/set/delete)
- MemoryStore: in-process store with an optional byte quota
- JsonFileStore: one JSON file per key in a directory
- PersistenceError: raised by store backends
- Snapshot: persisted ``{formData, progress, timestamp}`` record
- AutoSaveStore: TTL-bound, never-raising snapshot persistence

Example:
    from reviewform.persistence import AutoSaveStore, JsonFileStore

    autosave = AutoSaveStore(JsonFileStore(Path("~/.cache/reviewform")))
    snapshot = autosave.load_progress()
"""

from .autosave import DEFAULT_STORAGE_KEY, DEFAULT_TTL, AutoSaveStore, Snapshot
from .stores import JsonFileStore, MemoryStore, PersistenceError, Store

__all__ = [
    "AutoSaveStore",
    "DEFAULT_STORAGE_KEY",
    "DEFAULT_TTL",
    "JsonFileStore",
    "MemoryStore",
    "PersistenceError",
    "Snapshot",
    "Store",
]

"""
Durable Map
Synchronous key/value storage for local profiles and the active profile
pointer, with notifications when another tab (or process) changes a key.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Tuple

import cuid
from sqlalchemy import select, delete
from sqlalchemy.orm import sessionmaker

from workout_tracker.core.logger import get_logger
from workout_tracker.database.connection import session_scope
from workout_tracker.models.durable_entry import DurableEntry

logger = get_logger("durable_map")

# Receives the changed key, or None when the whole map was cleared
ChangeListener = Callable[[Optional[str]], None]


class DurableMap(ABC):
    """Abstract durable map. Listeners only hear about writes made elsewhere."""

    def __init__(self):
        self._listeners: List[ChangeListener] = []

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        ...

    @abstractmethod
    def set(self, key: str, value: bytes) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify_external_change(self, key: Optional[str]) -> None:
        for listener in list(self._listeners):
            listener(key)

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            # Corrupted value: fall back to the default rather than crash the tab
            logger.error(f"Unreadable value under '{key}': {e}")
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value).encode("utf-8"))


class SharedMemoryStorage:
    """Backing dict shared by every InMemoryDurableMap attached to it (one per tab)."""

    def __init__(self):
        self.data: Dict[str, bytes] = {}
        self.views: List["InMemoryDurableMap"] = []

    def broadcast(self, origin: "InMemoryDurableMap", key: Optional[str]) -> None:
        for view in list(self.views):
            if view is not origin:
                view._notify_external_change(key)


class InMemoryDurableMap(DurableMap):

    def __init__(self, storage: SharedMemoryStorage = None):
        super().__init__()
        self.storage = storage or SharedMemoryStorage()
        self.storage.views.append(self)

    def sibling(self) -> "InMemoryDurableMap":
        """Another tab looking at the same storage."""
        return InMemoryDurableMap(self.storage)

    def get(self, key: str) -> Optional[bytes]:
        return self.storage.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self.storage.data[key] = value
        self.storage.broadcast(self, key)

    def delete(self, key: str) -> None:
        if self.storage.data.pop(key, None) is not None:
            self.storage.broadcast(self, key)

    def clear(self) -> None:
        self.storage.data.clear()
        self.storage.broadcast(self, None)


class SqlDurableMap(DurableMap):
    """
    Durable map over the `durable_entries` table.
    Writes from other processes are picked up by `poll()`, which compares each
    row's (version, revision) with the last one this instance saw. The
    revision token is new on every write, so a key that another process
    deleted and re-created between two polls still counts as changed.
    """

    def __init__(self, session_factory: sessionmaker, writer_id: str = None):
        super().__init__()
        self.session_factory = session_factory
        self.writer_id = writer_id or cuid.cuid()
        self._seen: Dict[str, Tuple[int, Optional[str]]] = {}
        self._snapshot_versions()

    def _snapshot_versions(self) -> None:
        with session_scope(self.session_factory) as db:
            rows = db.execute(
                select(DurableEntry.key, DurableEntry.version, DurableEntry.revision)
            ).all()
        self._seen = {row.key: (row.version, row.revision) for row in rows}

    def get(self, key: str) -> Optional[bytes]:
        with session_scope(self.session_factory) as db:
            entry = db.get(DurableEntry, key)
            return entry.value if entry else None

    def set(self, key: str, value: bytes) -> None:
        with session_scope(self.session_factory) as db:
            entry = db.get(DurableEntry, key)
            if entry is None:
                entry = DurableEntry(key=key, value=value, version=1, writer_id=self.writer_id)
                db.add(entry)
            else:
                entry.value = value
                entry.version = entry.version + 1
                entry.writer_id = self.writer_id
            entry.revision = cuid.cuid()
            db.flush()
            self._seen[key] = (entry.version, entry.revision)

    def delete(self, key: str) -> None:
        with session_scope(self.session_factory) as db:
            db.execute(delete(DurableEntry).where(DurableEntry.key == key))
        self._seen.pop(key, None)

    def clear(self) -> None:
        with session_scope(self.session_factory) as db:
            db.execute(delete(DurableEntry))
        self._seen = {}

    def poll(self) -> List[str]:
        """Fire listeners for keys written or removed by another writer since the last look."""
        with session_scope(self.session_factory) as db:
            rows = db.execute(
                select(DurableEntry.key, DurableEntry.version, DurableEntry.revision, DurableEntry.writer_id)
            ).all()

        changed = []
        current = {}
        for row in rows:
            current[row.key] = (row.version, row.revision)
            if self._seen.get(row.key) != current[row.key] and row.writer_id != self.writer_id:
                changed.append(row.key)
        changed.extend(key for key in self._seen if key not in current)
        self._seen = current

        if changed:
            logger.info(f"External changes detected for keys: {changed}")
        for key in changed:
            self._notify_external_change(key)
        return changed

"""Persistence collaborator.

Documents live in named collections under string keys. Writes are keyed
merge upserts, so replaying a write is idempotent; concurrent writers to the
same key are last-write-wins. Subscribers receive the full collection each
time it changes.
"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

from overtime_tool.log import get_logger
from overtime_tool.models import StoreError

logger = get_logger(__name__)

STAFF = "staff"
ENTRIES = "entries"
SAVED_ITEMS = "saved_items"
SETTINGS = "settings"
MESSAGES = "messages"
LOGS = "logs"

RATES_DOC = "rates"
CONFIG_DOC = "config"
AUTO_OFFICER_DOC = "auto_officer"

Listener = Callable[[Dict[str, dict]], None]


class MemoryStore:
    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._seq = 0

    def get(self, collection: str, key: str) -> Optional[dict]:
        doc = self.collections.get(collection, {}).get(key)
        return copy.deepcopy(doc) if doc is not None else None

    def all(self, collection: str) -> Dict[str, dict]:
        return copy.deepcopy(self.collections.get(collection, {}))

    def set(self, collection: str, key: str, data: dict, merge: bool = True) -> None:
        docs = self.collections.setdefault(collection, {})
        current = docs.get(key, {}) if merge else {}
        updated = {**current, **copy.deepcopy(data)}
        docs[key] = updated
        self._notify(collection)

    def add(self, collection: str, data: dict) -> str:
        """Insert under a generated key and return it."""
        self._seq += 1
        key = f"{collection}-{self._seq:06d}"
        while key in self.collections.get(collection, {}):
            self._seq += 1
            key = f"{collection}-{self._seq:06d}"
        self.set(collection, key, data, merge=False)
        return key

    def delete(self, collection: str, key: str) -> None:
        docs = self.collections.get(collection, {})
        if key in docs:
            del docs[key]
            self._notify(collection)

    def subscribe(self, collection: str, listener: Listener) -> Callable[[], None]:
        """Register a listener, call it once with the current state, return an unsubscribe."""
        self._listeners.setdefault(collection, []).append(listener)
        listener(self.all(collection))

        def unsubscribe() -> None:
            listeners = self._listeners.get(collection, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.get(collection, [])):
            try:
                listener(self.all(collection))
            except Exception:
                logger.exception("listener_failed", collection=collection)


class JsonFileStore(MemoryStore):
    """MemoryStore persisted to a single JSON file after every write."""

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        if self.path.exists():
            self.load()

    def load(self) -> None:
        try:
            content = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read store {self.path}: {e}") from e
        self.collections = {
            name: dict(docs) for name, docs in content.get("collections", {}).items()
        }
        self._seq = int(content.get("seq", 0))

    def save(self) -> None:
        payload = {"collections": self.collections, "seq": self._seq}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
            tmp.replace(self.path)
        except OSError as e:
            raise StoreError(f"Cannot write store {self.path}: {e}") from e

    def set(self, collection: str, key: str, data: dict, merge: bool = True) -> None:
        previous = copy.deepcopy(self.collections.get(collection, {}).get(key))
        docs = self.collections.setdefault(collection, {})
        current = docs.get(key, {}) if merge else {}
        docs[key] = {**current, **copy.deepcopy(data)}
        try:
            self.save()
        except StoreError:
            if previous is None:
                docs.pop(key, None)
            else:
                docs[key] = previous
            raise
        self._notify(collection)

    def delete(self, collection: str, key: str) -> None:
        docs = self.collections.get(collection, {})
        if key not in docs:
            return
        previous = docs.pop(key)
        try:
            self.save()
        except StoreError:
            docs[key] = previous
            raise
        self._notify(collection)

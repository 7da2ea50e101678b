"""
ABOUTME: Persistence collaborators for the memory temperature system - store protocol, in-memory and JSON file stores.
ABOUTME: JsonFileStore provides locked, backed-up, atomic writes of every MemoryEntity to one JSON document.
"""

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable

from filelock import FileLock

from .errors import EntityNotFound
from .models import MemoryEntity, utc_now, validate_kind

LOCK_TIMEOUT_SECONDS = 10


@runtime_checkable
class MemoryStore(Protocol):
    """
    Narrow persistence interface the temperature manager calls.

    load() returns a fresh hot entry for an id new to the store when a kind is
    given, and raises EntityNotFound when it cannot resolve the id. Any other
    exception is a store failure and is wrapped by the caller.
    """

    def load(self, entity_id: str, kind: Optional[str] = None) -> MemoryEntity:
        ...

    def save(self, entity: MemoryEntity) -> None:
        ...

    def load_all(self) -> List[MemoryEntity]:
        ...


def _fresh_or_missing(
    entity_id: str,
    kind: Optional[str],
    create_missing: bool,
    clock: Callable[[], datetime],
) -> MemoryEntity:
    if kind is None or not create_missing:
        raise EntityNotFound(entity_id)
    return MemoryEntity.fresh(entity_id, validate_kind(kind), now=clock())


class InMemoryStore:
    """
    Dictionary-backed store, mainly for tests and embedding.

    Entries are kept serialized so callers never share mutable state with
    the store. seed() registers a canonical payload for an id that has not
    been saved yet; its first load() builds a fresh hot entry around it.
    """

    def __init__(self, create_missing: bool = True, clock: Callable[[], datetime] = utc_now):
        self.create_missing = create_missing
        self.clock = clock
        self._records: Dict[str, Dict[str, Any]] = {}
        self._seeds: Dict[str, Any] = {}
        self.save_count = 0

    def seed(self, entity_id: str, data: Any) -> None:
        self._seeds[entity_id] = data

    def load(self, entity_id: str, kind: Optional[str] = None) -> MemoryEntity:
        record = self._records.get(entity_id)
        if record is not None:
            return MemoryEntity.from_dict(record)
        if entity_id in self._seeds and kind is not None:
            return MemoryEntity.fresh(
                entity_id, validate_kind(kind), data=self._seeds[entity_id], now=self.clock()
            )
        return _fresh_or_missing(entity_id, kind, self.create_missing, self.clock)

    def save(self, entity: MemoryEntity) -> None:
        self._records[entity.id] = entity.to_dict()
        self.save_count += 1

    def load_all(self) -> List[MemoryEntity]:
        return [MemoryEntity.from_dict(record) for record in self._records.values()]

    def __contains__(self, entity_id: str) -> bool:
        return entity_id in self._records


class JsonFileStore:
    """
    Persists MemoryEntity records to a single JSON document.

    File layout:
        {"entities": {"<id>": {<MemoryEntity.to_dict()>}, ...}}

    Thread-safe write operation:
    1. Acquire file lock (10 second timeout)
    2. Copy the current file to <file>.backup
    3. Read current document, replace the entry
    4. Write to <file>.tmp and os.replace() it over the original

    Reads take the same lock so they never observe a half-written file.
    """

    def __init__(
        self,
        path: Path,
        logger: Optional[logging.Logger] = None,
        create_missing: bool = True,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.lock_path = str(self.path) + ".lock"
        self.logger = logger or logging.getLogger("memtemp")
        self.create_missing = create_missing
        self.clock = clock

    def load(self, entity_id: str, kind: Optional[str] = None) -> MemoryEntity:
        with FileLock(self.lock_path, timeout=LOCK_TIMEOUT_SECONDS):
            entities = self._read_document()["entities"]

        record = entities.get(entity_id)
        if record is not None:
            return MemoryEntity.from_dict(record)
        return _fresh_or_missing(entity_id, kind, self.create_missing, self.clock)

    def load_all(self) -> List[MemoryEntity]:
        with FileLock(self.lock_path, timeout=LOCK_TIMEOUT_SECONDS):
            entities = self._read_document()["entities"]
        return [MemoryEntity.from_dict(record) for record in entities.values()]

    def save(self, entity: MemoryEntity) -> None:
        with FileLock(self.lock_path, timeout=LOCK_TIMEOUT_SECONDS):
            self._create_backup()
            document = self._read_document()
            document["entities"][entity.id] = entity.to_dict()
            self._write_atomically(document)

        self.logger.debug(
            f"Saved {entity.kind}:{entity.id} at {entity.tier}",
            extra={"entity_id": entity.id, "tier": entity.tier, "store_path": str(self.path)},
        )

    def _read_document(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"entities": {}}
        content = self.path.read_text(encoding="utf-8")
        if not content.strip():
            return {"entities": {}}
        document = json.loads(content)
        document.setdefault("entities", {})
        return document

    def _write_atomically(self, document: Dict[str, Any]) -> None:
        tmp_path = Path(str(self.path) + ".tmp")
        tmp_path.write_text(json.dumps(document, indent=2, ensure_ascii=False, default=str), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def _create_backup(self) -> None:
        if self.path.exists():
            backup_path = Path(str(self.path) + ".backup")
            shutil.copy2(self.path, backup_path)

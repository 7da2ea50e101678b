"""
ABOUTME: Entity cache for the memory temperature system - id-keyed MemoryEntity map with per-entry locks.
ABOUTME: Owns canonical data and derived snapshots; loads misses through a caller-supplied loader.
"""

import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional

from .models import MemoryEntity


class EntityCache:
    """
    Manages the in-memory map of MemoryEntity objects.

    Cache Structure:
    - _entities: Dict[str, MemoryEntity] - one entry per tracked game object
    - _entry_locks: Dict[str, threading.Lock] - one lock per id

    Key Operations:
    - get(): Lookup without loading
    - get_or_load(): Lookup, falling back to a loader on miss
    - put(): Insert or replace an entry
    - entry_lock(): Context manager serialising mutations of one id
    - snapshot(): Point-in-time list of entries for read-only scans

    Thread Safety:
    _map_lock guards both dictionaries and is only held for dict operations,
    never while a loader runs or an entry is mutated. Mutations of a given
    entry happen under its own lock, so different ids proceed in parallel.
    """

    def __init__(self):
        self._entities: Dict[str, MemoryEntity] = {}
        self._entry_locks: Dict[str, threading.Lock] = {}
        self._map_lock = threading.Lock()

    def get(self, entity_id: str) -> Optional[MemoryEntity]:
        with self._map_lock:
            return self._entities.get(entity_id)

    def put(self, entity: MemoryEntity) -> None:
        with self._map_lock:
            self._entities[entity.id] = entity

    def get_or_load(
        self, entity_id: str, loader: Callable[[], MemoryEntity]
    ) -> MemoryEntity:
        """
        Return the cached entry, loading and inserting it on miss.

        Callers hold entry_lock(entity_id) so only one loader runs per id; if
        an entry appeared meanwhile (e.g. via put()) the cached one wins.

        Args:
            entity_id: Entity identifier
            loader: Zero-argument callable producing the entry on miss

        Returns:
            The cached MemoryEntity
        """
        entity = self.get(entity_id)
        if entity is not None:
            return entity

        loaded = loader()
        with self._map_lock:
            return self._entities.setdefault(entity_id, loaded)

    @contextmanager
    def entry_lock(self, entity_id: str) -> Iterator[None]:
        """Serialise all mutations of one entry."""
        with self._map_lock:
            lock = self._entry_locks.setdefault(entity_id, threading.Lock())
        with lock:
            yield

    def __contains__(self, entity_id: str) -> bool:
        with self._map_lock:
            return entity_id in self._entities

    def __len__(self) -> int:
        with self._map_lock:
            return len(self._entities)

    def snapshot(self) -> List[MemoryEntity]:
        with self._map_lock:
            return list(self._entities.values())

    def clear(self) -> int:
        """
        Drop every entry (service shutdown).

        Returns:
            Number of entries cleared
        """
        with self._map_lock:
            count = len(self._entities)
            self._entities.clear()
            self._entry_locks.clear()
        return count

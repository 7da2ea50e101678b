"""
ABOUTME: Unit tests for the memory stores (InMemoryStore, JsonFileStore).
ABOUTME: Covers fresh-entity creation, EntityNotFound, backups, atomic writes and round trips.
"""

import json

import pytest

from managers.memory import EntityNotFound, InMemoryStore, JsonFileStore, MemoryEntity, MemoryStore


class TestInMemoryStore:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryStore(), MemoryStore)

    def test_unknown_id_with_kind_creates_fresh_entity(self, clock):
        store = InMemoryStore(clock=clock)
        entity = store.load("npc-9", "character")

        assert entity.tier == "hot"
        assert entity.kind == "character"
        assert entity.last_accessed_at == clock.now
        assert "npc-9" not in store

    def test_unknown_id_without_kind_raises(self):
        with pytest.raises(EntityNotFound):
            InMemoryStore().load("npc-9")

    def test_create_missing_disabled_raises(self):
        with pytest.raises(EntityNotFound):
            InMemoryStore(create_missing=False).load("npc-9", "character")

    def test_seeded_payload_used_for_fresh_entity(self, hero_record):
        store = InMemoryStore()
        store.seed("hero", hero_record)

        assert store.load("hero", "character").view() == hero_record

    def test_save_and_load_returns_independent_copy(self):
        store = InMemoryStore()
        entity = MemoryEntity.fresh("lamp", "item", {"id": "lamp", "lit": True})
        store.save(entity)

        loaded = store.load("lamp")
        loaded.access_count = 99

        assert store.load("lamp").access_count == 0
        assert store.save_count == 1
        assert [e.id for e in store.load_all()] == ["lamp"]


class TestJsonFileStore:
    @pytest.fixture
    def store_path(self, tmp_path):
        return tmp_path / "state" / "memory_state.json"

    def test_satisfies_protocol(self, store_path):
        assert isinstance(JsonFileStore(store_path), MemoryStore)

    def test_missing_file_is_empty(self, store_path):
        store = JsonFileStore(store_path)

        assert store.load_all() == []
        with pytest.raises(EntityNotFound):
            store.load("anything")

    def test_save_writes_document(self, store_path, hero_record):
        store = JsonFileStore(store_path)
        store.save(MemoryEntity.fresh("hero", "character", hero_record))

        document = json.loads(store_path.read_text(encoding="utf-8"))

        assert list(document["entities"]) == ["hero"]
        assert document["entities"]["hero"]["canonical_data"] == {"kind": "record", "value": hero_record}
        assert not store_path.with_name(store_path.name + ".tmp").exists()

    def test_round_trip_preserves_entity(self, store_path):
        store = JsonFileStore(store_path)
        entity = MemoryEntity.fresh("ev-1", "event", "The bridge collapsed behind them.")
        entity.tier = "frozen"
        entity.derived_snapshot = entity.canonical_data
        entity.last_compression_ratio = 1.0
        entity.access_count = 4
        store.save(entity)

        assert JsonFileStore(store_path).load("ev-1") == entity

    def test_backup_created_on_second_save(self, store_path):
        store = JsonFileStore(store_path)
        entity = MemoryEntity.fresh("lamp", "item")
        store.save(entity)
        entity.access_count = 1
        store.save(entity)

        backup = json.loads((store_path.parent / "memory_state.json.backup").read_text(encoding="utf-8"))
        assert backup["entities"]["lamp"]["access_count"] == 0

    def test_saves_merge_entities(self, store_path):
        store = JsonFileStore(store_path)
        store.save(MemoryEntity.fresh("a", "item", {"id": "a"}))
        store.save(MemoryEntity.fresh("b", "location", "A quiet glade."))

        assert sorted(e.id for e in store.load_all()) == ["a", "b"]

    def test_unknown_id_with_kind_creates_fresh_entity(self, store_path):
        entity = JsonFileStore(store_path).load("new", "relationship")

        assert entity.kind == "relationship"
        assert entity.tier == "hot"

    def test_unicode_preserved(self, store_path):
        store = JsonFileStore(store_path)
        store.save(MemoryEntity.fresh("sign", "item", "Ærendil's rune: ᚠ"))

        assert "ᚠ" in store_path.read_text(encoding="utf-8")
        assert store.load("sign").view() == "Ærendil's rune: ᚠ"

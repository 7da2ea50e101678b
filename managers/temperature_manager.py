"""
MemoryTemperatureManager for the memory temperature service.

Handles the temperature state machine for cached game entities:
- Access-triggered (lazy) tier re-evaluation
- Compression when an entity cools, restoration when it warms up
- Direct compress/expand requests for administrative compaction
- Persistence through the injected MemoryStore
- Outbound memory.compressed / memory.temperature_changed notifications
- Aggregate statistics over the cache
"""

import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from managers.base_manager import BaseManager
from managers.event_bus import (
    COMPRESS_REQUESTED,
    ENTITY_ACCESSED,
    EXPAND_REQUESTED,
    MEMORY_COMPRESSED,
    TEMPERATURE_CHANGED,
    EventBus,
    EventPublisher,
)
from managers.memory import (
    CompressionResult,
    CompressionStrategySet,
    EntityCache,
    EntityNotFound,
    ENTITY_KINDS,
    MemoryEntity,
    MemoryStats,
    MemoryStore,
    PersistenceFailure,
    StatsAggregator,
    Temperature,
    TemperatureClassifier,
    UnknownTier,
    tier_rank,
    utc_now,
    validate_kind,
)
from session.temperature_configuration import TemperatureConfiguration

Outbox = List[Tuple[str, Dict[str, Any]]]


class MemoryTemperatureManager(BaseManager):
    """
    Owns the entity cache and drives every tier change.

    Responsibilities:
    - on_access(): classify, transition, bump access bookkeeping, save
    - transition(): compress (colder) or restore (hotter) one entity
    - compress() / expand(): access-independent entry points
    - get_memory_stats(): read-only aggregate over the cache

    All mutations of one entity run under its cache entry lock, on a copy that
    replaces the cached entity only once the store has saved it; a failed save
    leaves cache and store agreeing and publishes nothing. Events raised
    during a locked section are queued and published after the lock is
    released, so subscribers may call back into the manager safely.
    """

    def __init__(
        self,
        logger: logging.Logger,
        config: TemperatureConfiguration,
        store: MemoryStore,
        publisher: Optional[EventPublisher] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        super().__init__(logger, config, "temperature_manager")
        self.store = store
        self.publisher = publisher
        self.clock = clock

        self.cache = EntityCache()
        self.classifier = TemperatureClassifier(config)
        self.strategies = CompressionStrategySet(config)
        self.stats_aggregator = StatsAggregator()

        self._bus: Optional[EventBus] = None
        self._subscriptions: List[Tuple[str, Callable[[Dict[str, Any]], None]]] = []

    # Lifecycle

    def initialize(self, bus: Optional[EventBus] = None) -> None:
        """
        Subscribe inbound handlers and warm the cache from the store.

        Args:
            bus: Bus to subscribe on; defaults to the publisher when it is an EventBus
        """
        if self.is_initialized:
            return

        self._bus = bus or (self.publisher if isinstance(self.publisher, EventBus) else None)
        if self._bus is not None:
            self._subscribe(ENTITY_ACCESSED, self._handle_entity_accessed)
            for kind in ENTITY_KINDS:
                self._subscribe(f"{kind}.accessed", partial(self._handle_kind_accessed, kind))
            self._subscribe(COMPRESS_REQUESTED, self._handle_compression_request)
            self._subscribe(EXPAND_REQUESTED, self._handle_expansion_request)

        loaded = self._load_existing_states()
        self.is_initialized = True
        self.log_info(
            f"Memory temperature manager initialized with {loaded} cached entities",
            cached_entities=loaded,
            thresholds_hours=list(self.classifier.thresholds_hours()),
            enabled=self.config.enabled,
        )

    def shutdown(self) -> None:
        """Save every cached entity, drop subscriptions and clear the cache."""
        if not self.is_initialized:
            return

        for entity in self.cache.snapshot():
            with self.cache.entry_lock(entity.id):
                self._save(entity)

        if self._bus is not None:
            for event, handler in self._subscriptions:
                self._bus.unsubscribe(event, handler)
        self._subscriptions.clear()

        cleared = self.cache.clear()
        self.is_initialized = False
        self.log_info(f"Memory temperature manager shut down, {cleared} entities persisted", persisted=cleared)

    # Operations

    def on_access(self, entity_id: str, kind: str) -> Optional[MemoryEntity]:
        """
        Record an access: re-evaluate the tier, then bump access bookkeeping.

        The tier is classified from the time since the previous access, before
        last_accessed_at is moved to now.

        Args:
            entity_id: Entity identifier
            kind: One of character, location, relationship, item, event

        Returns:
            The updated entity (or the cached entity unchanged when disabled)

        Raises:
            EntityNotFound: If the store cannot resolve the id
            PersistenceFailure: If the store load or save fails
        """
        if not self.config.enabled:
            self.log_debug(f"Temperature disabled, ignoring access to {entity_id}", entity_id=entity_id)
            return self.cache.get(entity_id)

        validate_kind(kind)
        outbox: Outbox = []
        with self.measure_operation("on_access"):
            with self.cache.entry_lock(entity_id):
                cached = self._get_or_load(entity_id, kind)
                if cached.kind != kind:
                    self.log_warning(
                        f"Access to {entity_id} as {kind} but entity is a {cached.kind}",
                        entity_id=entity_id,
                        requested_kind=kind,
                        entity_kind=cached.kind,
                    )

                entity = cached.copy()
                now = self.clock()
                target = self.classifier.classify(now - entity.last_accessed_at)
                if target != entity.tier:
                    self.transition(entity, target, outbox=outbox)

                entity.last_accessed_at = now
                entity.access_count += 1
                self._commit(entity)

        self._flush(outbox)
        return entity

    def transition(
        self,
        entity: MemoryEntity,
        target: str,
        outbox: Optional[Outbox] = None,
    ) -> None:
        """
        Move an entity to target tier.

        Colder: derive a snapshot for target from canonical data and record
        its size and ratio. Hotter: restore access to canonical data; at hot
        the snapshot is dropped, at any other tier it is re-derived for that
        tier from canonical data.

        Callers must hold the entity's cache lock. Events go to outbox when
        given, otherwise they are published immediately.

        Raises:
            UnknownTier: If target is not a known tier
        """
        old_tier = entity.tier
        if target == old_tier:
            return

        pending: Outbox = [] if outbox is None else outbox
        if tier_rank(target) < tier_rank(old_tier):
            result = self._apply_compression(entity, target)
            pending.append((MEMORY_COMPRESSED, self._compressed_event(entity, result)))
        elif target == Temperature.HOT:
            entity.tier = Temperature.HOT
            entity.derived_snapshot = None
            entity.derived_token_count = entity.canonical_token_count
        else:
            self._apply_compression(entity, target)

        self.log_event(
            f"Transitioning {entity.kind}:{entity.id} from {old_tier} to {target}",
            "temperature_changed",
            entity_id=entity.id,
            entity_kind=entity.kind,
            old_tier=old_tier,
            new_tier=target,
        )
        pending.append((TEMPERATURE_CHANGED, {
            "id": entity.id,
            "kind": entity.kind,
            "oldTier": old_tier,
            "newTier": target,
        }))

        if outbox is None:
            self._flush(pending)

    def compress(self, entity_id: str, tier: str, kind: Optional[str] = None) -> Optional[CompressionResult]:
        """
        Compress an entity to tier without counting as an access.

        Always derives from canonical data, so compressing twice to the same
        tier yields identical snapshots and ratios.

        Args:
            entity_id: Entity identifier
            tier: One of warm, cool, cold, frozen
            kind: Needed only when the entity may have to be created

        Returns:
            CompressionResult, or None when the service is disabled

        Raises:
            UnknownTier: If tier has no compression strategy
            ValueError: If kind is given and is not a known entity kind
            EntityNotFound: If the entity cannot be resolved
            PersistenceFailure: If the store load or save fails
        """
        if not self.config.enabled:
            self.log_debug(f"Temperature disabled, ignoring compression of {entity_id}", entity_id=entity_id)
            return None

        if tier not in self.strategies.tiers:
            raise UnknownTier(tier)
        if kind is not None:
            validate_kind(kind)

        outbox: Outbox = []
        with self.measure_operation("compress"):
            with self.cache.entry_lock(entity_id):
                entity = self._get_or_load(entity_id, kind).copy()
                old_tier = entity.tier
                result = self._apply_compression(entity, tier)
                self._commit(entity)

            outbox.append((MEMORY_COMPRESSED, self._compressed_event(entity, result)))
            if old_tier != tier:
                self.log_event(
                    f"Transitioning {entity.kind}:{entity.id} from {old_tier} to {tier}",
                    "temperature_changed",
                    entity_id=entity.id,
                    entity_kind=entity.kind,
                    old_tier=old_tier,
                    new_tier=tier,
                )
                outbox.append((TEMPERATURE_CHANGED, {
                    "id": entity.id,
                    "kind": entity.kind,
                    "oldTier": old_tier,
                    "newTier": tier,
                }))

        self._flush(outbox)
        return result

    def expand(self, entity_id: str, kind: Optional[str] = None) -> Any:
        """
        Bring an entity back to hot and return its canonical data.

        Nothing is reconstructed: canonical data was never discarded, so the
        returned value is exactly what was loaded or saved last.

        Returns:
            A copy of canonical data, or of the cached view when disabled

        Raises:
            ValueError: If kind is given and is not a known entity kind
            EntityNotFound: If the entity cannot be resolved
            PersistenceFailure: If the store load or save fails
        """
        if not self.config.enabled:
            entity = self.cache.get(entity_id)
            return entity.view() if entity else None

        if kind is not None:
            validate_kind(kind)
        outbox: Outbox = []
        with self.measure_operation("expand"):
            with self.cache.entry_lock(entity_id):
                entity = self._get_or_load(entity_id, kind)
                if entity.tier != Temperature.HOT:
                    entity = entity.copy()
                    self.transition(entity, Temperature.HOT, outbox=outbox)
                    self._commit(entity)
                data = entity.view()

        self._flush(outbox)
        return data

    def get_view(self, entity_id: str) -> Any:
        """What a reader sees for a cached entity at its current tier."""
        entity = self.cache.get(entity_id)
        if entity is None:
            raise EntityNotFound(entity_id)
        return entity.view()

    def get_memory_stats(self) -> MemoryStats:
        return self.stats_aggregator.aggregate(self.cache.snapshot())

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status["cached_entities"] = len(self.cache)
        return status

    # Internals

    def _apply_compression(self, entity: MemoryEntity, tier: str) -> CompressionResult:
        result = self.strategies.result(entity.canonical_data, tier)
        entity.derived_snapshot = result.compressed_data
        entity.derived_token_count = result.compressed_token_count
        entity.last_compression_ratio = result.compression_ratio
        entity.tier = tier

        self.log_event(
            f"Compressed {entity.kind}:{entity.id} to {tier} "
            f"({result.original_token_count} -> {result.compressed_token_count} tokens)",
            "memory_compressed",
            entity_id=entity.id,
            tier=tier,
            original_tokens=result.original_token_count,
            compressed_tokens=result.compressed_token_count,
            compression_ratio=result.compression_ratio,
        )
        return result

    def _compressed_event(self, entity: MemoryEntity, result: CompressionResult) -> Dict[str, Any]:
        return {"id": entity.id, "kind": entity.kind, "result": result.to_event_payload()}

    def _get_or_load(self, entity_id: str, kind: Optional[str]) -> MemoryEntity:
        def loader() -> MemoryEntity:
            try:
                return self.store.load(entity_id, kind)
            except EntityNotFound:
                raise
            except Exception as e:
                raise PersistenceFailure("load", entity_id, str(e)) from e

        return self.cache.get_or_load(entity_id, loader)

    def _commit(self, entity: MemoryEntity) -> None:
        """Persist a staged entity, then make it the cached one."""
        self._save(entity)
        self.cache.put(entity)

    def _save(self, entity: MemoryEntity) -> None:
        try:
            self.store.save(entity)
        except Exception as e:
            raise PersistenceFailure("save", entity.id, str(e)) from e

    def _load_existing_states(self) -> int:
        try:
            entities = self.store.load_all()
        except Exception as e:
            raise PersistenceFailure("load_all", reason=str(e)) from e
        for entity in entities:
            self.cache.put(entity)
        return len(entities)

    def _flush(self, outbox: Outbox) -> None:
        """Publish queued events; delivery failures are logged, never raised."""
        if self.publisher is None:
            return
        for event, payload in outbox:
            try:
                self.publisher.publish(event, payload)
            except Exception as e:
                self.log_warning(
                    f"Failed to publish {event}: {e}",
                    event=event,
                    entity_id=payload.get("id"),
                    error=str(e),
                )

    def _subscribe(self, event: str, handler: Callable[[Dict[str, Any]], None]) -> None:
        self._bus.subscribe(event, handler)
        self._subscriptions.append((event, handler))

    # Event handlers

    def _handle_entity_accessed(self, payload: Dict[str, Any]) -> None:
        self.on_access(payload["id"], payload["kind"])

    def _handle_kind_accessed(self, kind: str, payload: Dict[str, Any]) -> None:
        self.on_access(payload["id"], kind)

    def _handle_compression_request(self, payload: Dict[str, Any]) -> None:
        self.compress(payload["id"], payload["tier"], payload.get("kind"))

    def _handle_expansion_request(self, payload: Dict[str, Any]) -> None:
        self.expand(payload["id"], payload.get("kind"))

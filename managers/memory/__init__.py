"""
ABOUTME: Memory temperature module - exports entity models, tier constants and the cache/compression/stats components.
ABOUTME: Provides clean imports for MemoryEntity, Temperature, CompressionStrategySet, EntityCache and the stores.
"""

from .errors import (
    MemoryTemperatureError,
    UnknownTier,
    EntityNotFound,
    PersistenceFailure,
)
from .models import (
    Temperature,
    TemperatureType,
    TEMPERATURES,
    COMPRESSIBLE_TEMPERATURES,
    TEMPERATURE_RANK,
    ENTITY_KINDS,
    EntityKindType,
    Payload,
    TextPayload,
    RecordPayload,
    OpaquePayload,
    MemoryEntity,
    CompressionResult,
    tier_rank,
    utc_now,
    validate_kind,
)
from .classifier import TemperatureClassifier
from .compression import CompressionStrategySet
from .cache_manager import EntityCache
from .store import MemoryStore, InMemoryStore, JsonFileStore
from .stats import MemoryStats, StatsAggregator

__all__ = [
    "MemoryTemperatureError",
    "UnknownTier",
    "EntityNotFound",
    "PersistenceFailure",
    "Temperature",
    "TemperatureType",
    "TEMPERATURES",
    "COMPRESSIBLE_TEMPERATURES",
    "TEMPERATURE_RANK",
    "ENTITY_KINDS",
    "EntityKindType",
    "Payload",
    "TextPayload",
    "RecordPayload",
    "OpaquePayload",
    "MemoryEntity",
    "CompressionResult",
    "tier_rank",
    "utc_now",
    "validate_kind",
    "TemperatureClassifier",
    "CompressionStrategySet",
    "EntityCache",
    "MemoryStore",
    "InMemoryStore",
    "JsonFileStore",
    "MemoryStats",
    "StatsAggregator",
]

"""
ABOUTME: Exception types raised by the memory temperature system.
ABOUTME: Callers catch MemoryTemperatureError for everything; subclasses identify the failure kind.
"""

from typing import Optional


class MemoryTemperatureError(Exception):
    """Base class for memory temperature failures."""


class UnknownTier(MemoryTemperatureError):
    """Compression or classification requested for a tier with no strategy."""

    def __init__(self, tier: str):
        self.tier = tier
        super().__init__(f"No compression strategy for temperature: {tier!r}")


class EntityNotFound(MemoryTemperatureError):
    """Entity id is neither cached nor resolvable by the store."""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Entity not found: {entity_id}")


class PersistenceFailure(MemoryTemperatureError):
    """Store load/save failed; the original error is chained as __cause__."""

    def __init__(self, operation: str, entity_id: Optional[str] = None, reason: str = ""):
        self.operation = operation
        self.entity_id = entity_id
        target = f" for {entity_id}" if entity_id else ""
        detail = f": {reason}" if reason else ""
        super().__init__(f"Store {operation} failed{target}{detail}")

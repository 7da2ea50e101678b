"""Manager classes package for the memory temperature service."""

from .base_manager import BaseManager, ManagerProtocol
from .event_bus import EventBus, EventPublisher, RecordingPublisher
from .temperature_manager import MemoryTemperatureManager

__all__ = [
    "BaseManager",
    "ManagerProtocol",
    "EventBus",
    "EventPublisher",
    "RecordingPublisher",
    "MemoryTemperatureManager",
]

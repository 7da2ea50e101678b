"""
Event boundary for the memory temperature service.

Managers never call sibling subsystems directly: every cross-subsystem effect
is an outbound notification through an injected EventPublisher. EventBus is
the in-process default, a synchronous pub/sub with per-event metrics.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol, runtime_checkable

# Outbound events
MEMORY_COMPRESSED = "memory.compressed"
TEMPERATURE_CHANGED = "memory.temperature_changed"

# Inbound events
ENTITY_ACCESSED = "entity.accessed"
COMPRESS_REQUESTED = "memory.compress"
EXPAND_REQUESTED = "memory.expand"

# Rolling window for average processing time
PROCESSING_TIME_WINDOW = 100

EventHandler = Callable[[Dict[str, Any]], None]


@runtime_checkable
class EventPublisher(Protocol):
    """Anything that accepts an event name and a JSON-like payload."""

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


@dataclass
class EventMetrics:
    total_events: int = 0
    avg_processing_ms: float = 0.0
    error_count: int = 0


class EventBus:
    """
    Synchronous in-process event bus.

    publish() calls every handler registered for the event in subscription
    order. A failing handler is logged and counted; it does not stop the
    remaining handlers and never propagates to the publisher.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("memtemp")
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._metrics: Dict[str, EventMetrics] = {}
        self._processing_times: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event: str, handler: EventHandler) -> None:
        with self._lock:
            if event not in self._handlers:
                self._handlers[event] = []
                self._metrics[event] = EventMetrics()
                self._processing_times[event] = deque(maxlen=PROCESSING_TIME_WINDOW)
            self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._handlers.get(event)
            if handlers and handler in handlers:
                handlers.remove(handler)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            handlers = list(self._handlers.get(event, []))
            metrics = self._metrics.get(event)
            times = self._processing_times.get(event)
        if not handlers:
            return

        start = time.perf_counter()
        failures = 0
        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                failures += 1
                self.logger.error(
                    f"Event handler error for {event}: {e}",
                    extra={"event_type": "event_handler_error", "event": event, "error": str(e)},
                )

        elapsed_ms = (time.perf_counter() - start) * 1000
        with self._lock:
            metrics.total_events += 1
            metrics.error_count += failures
            times.append(elapsed_ms)
            metrics.avg_processing_ms = sum(times) / len(times)

    def get_metrics(self, event: str) -> Optional[EventMetrics]:
        return self._metrics.get(event)

    def registered_events(self) -> List[str]:
        return list(self._handlers.keys())

    def clear(self, event: Optional[str] = None) -> None:
        """Drop handlers and metrics for one event, or for all events."""
        with self._lock:
            if event is None:
                self._handlers.clear()
                self._metrics.clear()
                self._processing_times.clear()
            else:
                self._handlers.pop(event, None)
                self._metrics.pop(event, None)
                self._processing_times.pop(event, None)


class RecordingPublisher:
    """Publisher that keeps every event in order; handy for tests and replay queues."""

    def __init__(self):
        self.events: List[tuple] = []

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def named(self, event: str) -> List[Dict[str, Any]]:
        return [payload for name, payload in self.events if name == event]

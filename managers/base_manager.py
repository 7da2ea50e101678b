"""
Base manager protocol and interface for memory temperature services.

This module defines the common interface that all managers implement:
lifecycle hooks, structured logging helpers and operation timing against a
performance budget.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Protocol, runtime_checkable, Any, Dict, Iterator
import logging
import threading
import time

from session.temperature_configuration import TemperatureConfiguration


@runtime_checkable
class ManagerProtocol(Protocol):
    """
    Protocol defining the interface that all managers must implement.
    """

    def initialize(self) -> None:
        """Prepare the manager (subscriptions, cache warm-up)."""
        ...

    def shutdown(self) -> None:
        """Flush state and release resources."""
        ...

    def get_status(self) -> Dict[str, Any]:
        """Report health and metrics."""
        ...


@dataclass
class OperationMetrics:
    total_operations: int = 0
    avg_response_ms: float = 0.0
    error_count: int = 0
    last_operation_ms: float = 0.0


class BaseManager(ABC):
    """
    Abstract base class providing common functionality for all managers.

    Handles common dependencies (logger, config) and provides a foundation
    for manager-specific implementations.
    """

    def __init__(
        self,
        logger: logging.Logger,
        config: TemperatureConfiguration,
        component_name: str
    ):
        """
        Initialize base manager with common dependencies.

        Args:
            logger: Shared logger instance for structured logging
            config: Temperature configuration object
            component_name: Name for logging component field (e.g., "temperature_manager")
        """
        self.logger = logger
        self.config = config
        self.component_name = component_name
        self.is_initialized = False
        self.metrics = OperationMetrics()
        self._metrics_lock = threading.Lock()

    def _log(self, method: str, message: str, event_type: str, fields: Dict[str, Any]) -> None:
        if self.logger:
            getattr(self.logger, method)(message, extra={
                "event_type": event_type,
                "component": self.component_name,
                **fields
            })

    def log_info(self, message: str, **kwargs) -> None:
        self._log("info", message, "info", kwargs)

    def log_debug(self, message: str, **kwargs) -> None:
        self._log("debug", message, "debug", kwargs)

    def log_warning(self, message: str, **kwargs) -> None:
        self._log("warning", message, "warning", kwargs)

    def log_error(self, message: str, **kwargs) -> None:
        self._log("error", message, "error", kwargs)

    def log_event(self, message: str, event_type: str, **kwargs) -> None:
        """Log a domain event (transition, compression) at info level."""
        self._log("info", message, event_type, kwargs)

    @contextmanager
    def measure_operation(self, operation_name: str) -> Iterator[None]:
        """
        Time an operation and record it in self.metrics.

        Failures are counted and logged, then re-raised unchanged. An
        operation slower than config.performance_budget_ms logs a
        budget_exceeded warning but is not interrupted.
        """
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            with self._metrics_lock:
                self.metrics.error_count += 1
            self.log_error(
                f"{operation_name} failed: {e}",
                operation=operation_name,
                error=str(e),
            )
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        with self._metrics_lock:
            metrics = self.metrics
            metrics.total_operations += 1
            metrics.last_operation_ms = duration_ms
            metrics.avg_response_ms = (
                metrics.avg_response_ms * (metrics.total_operations - 1) + duration_ms
            ) / metrics.total_operations

        budget = self.config.performance_budget_ms
        if duration_ms > budget:
            self._log(
                "warning",
                f"Performance budget exceeded: {operation_name} took {duration_ms:.1f}ms (budget: {budget}ms)",
                "budget_exceeded",
                {"operation": operation_name, "duration_ms": duration_ms, "budget_ms": budget},
            )

        if self.config.debug_mode:
            self.log_info(
                f"{operation_name} completed in {duration_ms:.1f}ms",
                operation=operation_name,
                duration_ms=duration_ms,
            )

    def _metrics_snapshot(self) -> Dict[str, Any]:
        with self._metrics_lock:
            return asdict(self.metrics)

    @abstractmethod
    def initialize(self) -> None:
        """
        Prepare the manager for use.

        Called once before the first operation; repeated calls are no-ops
        in concrete managers.
        """
        pass

    @abstractmethod
    def shutdown(self) -> None:
        """
        Flush state and release resources.
        """
        pass

    def get_status(self) -> Dict[str, Any]:
        """
        Get current manager status for debugging and monitoring.

        Returns:
            Dictionary with manager status information
        """
        return {
            "component": self.component_name,
            "is_initialized": self.is_initialized,
            "is_enabled": self.config.enabled,
            "metrics": self._metrics_snapshot(),
        }

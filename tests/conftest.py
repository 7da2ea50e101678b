# ABOUTME: Global pytest configuration for all tests
# ABOUTME: Isolates MEMTEMP_* environment variables and provides clock, config, store and manager fixtures

import logging
import os
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from managers import MemoryTemperatureManager, RecordingPublisher
from managers.memory import InMemoryStore
from session.temperature_configuration import TemperatureConfiguration


T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Manually advanced clock; call it to read the current time."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def isolate_memtemp_env(monkeypatch):
    """
    Remove MEMTEMP_* variables for all tests by default.

    TemperatureConfiguration reads MEMTEMP_-prefixed settings from the
    environment; a developer shell exporting them would otherwise change
    thresholds under the tests. Tests opt in with monkeypatch.setenv().
    """
    for key in list(os.environ):
        if key.upper().startswith("MEMTEMP_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    return Mock(spec=logging.Logger)


@pytest.fixture
def temperature_config(tmp_path):
    """Default thresholds (1h, 24h, 7d, 30d) with a temporary work directory."""
    return TemperatureConfiguration(workdir=str(tmp_path / "memory_files"))


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def store(clock):
    return InMemoryStore(clock=clock)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def manager(mock_logger, temperature_config, store, publisher, clock):
    """MemoryTemperatureManager wired to an in-memory store and recording publisher."""
    return MemoryTemperatureManager(
        mock_logger, temperature_config, store, publisher=publisher, clock=clock
    )


@pytest.fixture
def hero_record():
    return {
        "id": "hero",
        "name": "Aria Windrunner",
        "class": "ranger",
        "level": 12,
        "status": "alive",
        "location": "Silverbrook",
        "description": "A tall ranger with a weathered green cloak and a quiet voice. "
                       "She grew up in the northern woods and rarely speaks of her family.",
        "flavorText": "Arrows never miss twice.",
        "inventory": ["longbow", "rope", "healing draught"],
        "gold": 140,
    }


@pytest.fixture
def chronicle_text():
    """Ten-sentence narrative event, long enough for every tier rule to bite."""
    return (
        "The caravan left Silverbrook at dawn under a grey sky. "
        "Aria scouted ahead along the old river road. "
        "By noon the party reached the ruined watchtower. "
        "Bandits ambushed them from the collapsed eastern wall. "
        "Borin held the gate while the merchants fled north. "
        "Aria drove the bandits back with a volley of arrows. "
        "Their leader dropped a sealed letter bearing a crimson crest. "
        "Nobody in the party recognised the seal. "
        "The merchants paid double for the safe escort. "
        "That night the letter was stolen from Borin's pack."
    )

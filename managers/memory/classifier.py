"""
ABOUTME: Recency-based temperature classification for cached memory entities.
ABOUTME: Maps time since last access onto hot/warm/cool/cold/frozen using configured thresholds.
"""

from datetime import timedelta
from typing import Tuple

from session.temperature_configuration import TemperatureConfiguration
from .models import Temperature, TemperatureType

SECONDS_PER_HOUR = 3600
HOURS_PER_DAY = 24


class TemperatureClassifier:
    """
    Pure decay policy: elapsed time since last access -> tier.

    The hot/warm and warm/cool thresholds are configured in hours, the
    cool/cold and cold/frozen thresholds in days. Everything is normalised to
    hours once, at construction, so comparisons never mix units.

    Ranges are half-open [previous, next): a value sitting exactly on a
    threshold belongs to the colder tier.
    """

    def __init__(self, config: TemperatureConfiguration):
        self._thresholds_hours: Tuple[float, float, float, float] = (
            float(config.hot_to_warm_hours),
            float(config.warm_to_cool_hours),
            float(config.cool_to_cold_days) * HOURS_PER_DAY,
            float(config.cold_to_frozen_days) * HOURS_PER_DAY,
        )

    def thresholds_hours(self) -> Tuple[float, float, float, float]:
        """Normalised hot->warm, warm->cool, cool->cold, cold->frozen boundaries."""
        return self._thresholds_hours

    def classify(self, elapsed: timedelta) -> TemperatureType:
        hours = elapsed.total_seconds() / SECONDS_PER_HOUR
        to_warm, to_cool, to_cold, to_frozen = self._thresholds_hours

        if hours < to_warm:
            return Temperature.HOT
        if hours < to_cool:
            return Temperature.WARM
        if hours < to_cold:
            return Temperature.COOL
        if hours < to_frozen:
            return Temperature.COLD
        return Temperature.FROZEN

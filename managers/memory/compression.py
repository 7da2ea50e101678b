"""
ABOUTME: Per-tier lossy compression strategies for memory entities (warm, cool, cold, frozen).
ABOUTME: Pure transforms over canonical payloads plus token-ratio reporting via estimate_tokens.
"""

import math
import re
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from session.temperature_configuration import TemperatureConfiguration
from .errors import UnknownTier
from .models import (
    COMPRESSIBLE_TEMPERATURES,
    CompressionResult,
    Payload,
    Temperature,
    TemperatureType,
)

# Long-form fields dropped at warm
NARRATIVE_FIELDS: Tuple[str, ...] = (
    "description",
    "flavorText",
    "flavor_text",
    "backstory",
    "narrative",
)

# High-value fields kept at cool
COOL_FIELDS: Tuple[str, ...] = (
    "id",
    "name",
    "class",
    "level",
    "status",
    "location",
    "current_location_id",
)

COOL_SENTENCE_COUNT = 3
COLD_WORD_COUNT = 8
FROZEN_WORD_COUNT = 3
ELLIPSIS = "..."

SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


def _first_sentences(text: str, count: int) -> str:
    sentences = [s.strip() for s in SENTENCE_BOUNDARY.split(text) if s.strip()]
    return ". ".join(sentences[:count]) + "."


def _first_words(text: str, count: int) -> str:
    return " ".join(text.split()[:count]) + ELLIPSIS


def _pick(record: Dict[str, Any], renames: List[Tuple[str, Tuple[str, ...]]]) -> Dict[str, Any]:
    """
    Build a record from (target_key, source_keys) pairs.

    The first source key present with a non-None value wins; a target whose
    sources are all absent is left out rather than written as null.
    """
    picked: Dict[str, Any] = {}
    for target, sources in renames:
        for source in sources:
            if record.get(source) is not None:
                picked[target] = record[source]
                break
        else:
            if sources[0] in record:
                picked[target] = record[sources[0]]
    return picked


class CompressionStrategySet:
    """
    One deterministic transform per non-hot tier.

    Aggressiveness increases with coldness:
    - warm: text truncated to the warm retention fraction; records lose
      narrative fields
    - cool: first 3 sentences; records keep COOL_FIELDS only
    - cold: first 8 words + ellipsis; records keep id/lvl/cls/loc/st
    - frozen: first 3 words + ellipsis; records keep id/l/c/s

    Opaque payloads pass through at every tier. A rule never grows its input:
    when the reduced form would estimate larger than the input, the input is
    kept as the derived view, so ratios stay <= 1.

    The tier -> transform table is built once per instance and is read-only.
    """

    def __init__(self, config: TemperatureConfiguration):
        self._warm_retention = config.warm_retention
        self._strategies: Mapping[str, Callable[[Payload], Payload]] = MappingProxyType({
            Temperature.WARM: self._compress_warm,
            Temperature.COOL: self._compress_cool,
            Temperature.COLD: self._compress_cold,
            Temperature.FROZEN: self._compress_frozen,
        })

    @property
    def tiers(self) -> Tuple[TemperatureType, ...]:
        return COMPRESSIBLE_TEMPERATURES

    def compress(self, payload: Any, tier: str) -> Payload:
        """Return the reduced payload for tier; raises UnknownTier for hot or unknown tiers."""
        strategy = self._strategies.get(tier)
        if strategy is None:
            raise UnknownTier(tier)

        payload = Payload.wrap(payload)
        compressed = strategy(payload)
        if compressed.token_count() > payload.token_count():
            return payload
        return compressed

    def result(self, canonical: Any, tier: str) -> CompressionResult:
        """Compress canonical data and measure the ratio against the canonical payload."""
        canonical = Payload.wrap(canonical)
        compressed = self.compress(canonical, tier)
        original_tokens = canonical.token_count()
        compressed_tokens = compressed.token_count()
        ratio = compressed_tokens / original_tokens if original_tokens else 1.0
        return CompressionResult(
            compressed_data=compressed,
            original_token_count=original_tokens,
            compressed_token_count=compressed_tokens,
            compression_ratio=ratio,
            tier=tier,
        )

    # Strategies

    def _compress_warm(self, payload: Payload) -> Payload:
        return payload.transform(
            on_text=lambda text: text[: math.floor(len(text) * self._warm_retention)],
            on_record=lambda record: {
                key: value for key, value in record.items() if key not in NARRATIVE_FIELDS
            },
        )

    def _compress_cool(self, payload: Payload) -> Payload:
        return payload.transform(
            on_text=lambda text: _first_sentences(text, COOL_SENTENCE_COUNT),
            on_record=lambda record: {
                key: record[key] for key in COOL_FIELDS if key in record
            },
        )

    def _compress_cold(self, payload: Payload) -> Payload:
        return payload.transform(
            on_text=lambda text: _first_words(text, COLD_WORD_COUNT),
            on_record=lambda record: _pick(record, [
                ("id", ("id",)),
                ("lvl", ("level",)),
                ("cls", ("class",)),
                ("loc", ("current_location_id", "location")),
                ("st", ("status",)),
            ]),
        )

    def _compress_frozen(self, payload: Payload) -> Payload:
        return payload.transform(
            on_text=lambda text: _first_words(text, FROZEN_WORD_COUNT),
            on_record=lambda record: _pick(record, [
                ("id", ("id",)),
                ("l", ("level",)),
                ("c", ("class",)),
                ("s", ("status",)),
            ]),
        )

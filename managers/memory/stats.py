"""
ABOUTME: Read-only statistics over the entity cache - tier distribution, compression ratios, token savings.
ABOUTME: Savings compare current derived sizes with per-entry implied originals (derived / ratio).
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable

from .models import MemoryEntity, Temperature, TEMPERATURES


@dataclass
class MemoryStats:
    total_entities: int = 0
    by_temperature: Dict[str, int] = field(default_factory=lambda: {t: 0 for t in TEMPERATURES})
    avg_compression_ratio: float = 1.0
    current_tokens: int = 0
    implied_original_tokens: float = 0.0
    token_reduction_percent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class StatsAggregator:
    """
    Single pass over cached entries.

    token_reduction_percent reconstructs each entry's original size as
    derived_token_count / last_compression_ratio and compares the summed
    current sizes against the summed originals. Hot entries and entries that
    were never compressed count with ratio 1, i.e. no reduction.
    """

    def aggregate(self, entities: Iterable[MemoryEntity]) -> MemoryStats:
        stats = MemoryStats()
        ratio_sum = 0.0
        ratio_count = 0

        for entity in entities:
            stats.total_entities += 1
            stats.by_temperature[entity.tier] += 1

            ratio = entity.last_compression_ratio
            if ratio is not None:
                ratio_sum += ratio
                ratio_count += 1

            stats.current_tokens += entity.derived_token_count
            if entity.tier != Temperature.HOT and ratio:
                stats.implied_original_tokens += entity.derived_token_count / ratio
            else:
                stats.implied_original_tokens += entity.derived_token_count

        if ratio_count:
            stats.avg_compression_ratio = ratio_sum / ratio_count

        if stats.implied_original_tokens > 0:
            stats.token_reduction_percent = (
                1 - stats.current_tokens / stats.implied_original_tokens
            ) * 100

        return stats

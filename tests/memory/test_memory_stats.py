"""
ABOUTME: Unit tests for StatsAggregator tier distribution and token-savings arithmetic.
"""

import pytest

from managers.memory import MemoryEntity, StatsAggregator


def entity(entity_id, tier, tokens, ratio=None):
    return MemoryEntity(
        id=entity_id,
        kind="item",
        canonical_data={"id": entity_id},
        tier=tier,
        derived_token_count=tokens,
        last_compression_ratio=ratio,
    )


class TestStatsAggregator:
    def test_empty_cache(self):
        stats = StatsAggregator().aggregate([])

        assert stats.total_entities == 0
        assert stats.by_temperature == {"hot": 0, "warm": 0, "cool": 0, "cold": 0, "frozen": 0}
        assert stats.avg_compression_ratio == 1.0
        assert stats.token_reduction_percent == 0.0

    def test_reduction_uses_implied_originals(self):
        """
        One hot entry of 100 tokens plus one cold entry of 5 tokens at ratio 0.05.

        The cold entry implies an original of 100 tokens, so the cache holds
        105 tokens against 200 original tokens.
        """
        stats = StatsAggregator().aggregate([
            entity("hot-1", "hot", 100),
            entity("cold-1", "cold", 5, ratio=0.05),
        ])

        assert stats.total_entities == 2
        assert stats.by_temperature["hot"] == 1
        assert stats.by_temperature["cold"] == 1
        assert stats.current_tokens == 105
        assert stats.implied_original_tokens == pytest.approx(200)
        assert stats.token_reduction_percent == pytest.approx(47.5)
        assert stats.avg_compression_ratio == pytest.approx(0.05)

    def test_hot_entry_with_ratio_history_counts_as_uncompressed(self):
        stats = StatsAggregator().aggregate([entity("back", "hot", 40, ratio=0.1)])

        assert stats.implied_original_tokens == pytest.approx(40)
        assert stats.token_reduction_percent == pytest.approx(0.0)
        assert stats.avg_compression_ratio == pytest.approx(0.1)

    def test_all_uncompressed_shows_no_reduction(self):
        stats = StatsAggregator().aggregate([entity(f"e{i}", "hot", 10) for i in range(5)])

        assert stats.current_tokens == 50
        assert stats.token_reduction_percent == 0.0
        assert stats.by_temperature["hot"] == 5

    def test_to_dict(self):
        data = StatsAggregator().aggregate([entity("a", "warm", 8, ratio=0.5)]).to_dict()

        assert data["total_entities"] == 1
        assert data["by_temperature"]["warm"] == 1
        assert data["token_reduction_percent"] == pytest.approx(50.0)

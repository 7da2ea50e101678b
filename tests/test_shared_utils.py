# ABOUTME: Tests for shared utility functions
# ABOUTME: Covers canonical JSON serialization and the 4-characters-per-token estimate

from datetime import datetime, timezone

from shared_utils import canonical_json, estimate_tokens


class TestCanonicalJson:
    def test_keys_sorted_without_whitespace(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'

    def test_key_order_does_not_matter(self):
        assert canonical_json({"x": 1, "y": 2}) == canonical_json({"y": 2, "x": 1})

    def test_unicode_kept(self):
        assert canonical_json("café") == '"café"'

    def test_non_json_values_fall_back_to_str(self):
        moment = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert canonical_json({"at": moment}) == '{"at":"2026-01-01 00:00:00+00:00"}'


class TestEstimateTokens:
    def test_rounds_up(self):
        # '"abcdef"' is 8 characters
        assert estimate_tokens("abcdef") == 2
        # '"abcdefg"' is 9 characters
        assert estimate_tokens("abcdefg") == 3

    def test_empty_string_still_costs_a_token(self):
        assert estimate_tokens("") == 1

    def test_record(self):
        # '{"id":"x","level":5}' is 20 characters
        assert estimate_tokens({"level": 5, "id": "x"}) == 5

    def test_opaque_values(self):
        assert estimate_tokens(None) == 1
        assert estimate_tokens([1, 2, 3]) == 2

    def test_deterministic(self):
        record = {"name": "Aria", "tags": ["ranger", "scout"]}
        assert estimate_tokens(record) == estimate_tokens(dict(reversed(list(record.items()))))

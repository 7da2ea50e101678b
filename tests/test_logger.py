# ABOUTME: Tests for logging setup and formatters
# ABOUTME: Covers JSON extra fields, console filtering of tier events and JSON log parsing

import json
import logging

import pytest

from logger import HumanReadableFormatter, JSONFormatter, parse_json_logs, setup_logging


def make_record(message, level=logging.INFO, **extra):
    return logging.makeLogRecord({
        "msg": message,
        "levelno": level,
        "levelname": logging.getLevelName(level),
        **extra,
    })


class TestJSONFormatter:
    def test_includes_extra_fields(self):
        record = make_record(
            "Transitioning character:hero from hot to warm",
            event_type="temperature_changed",
            entity_id="hero",
            old_tier="hot",
            new_tier="warm",
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["message"] == "Transitioning character:hero from hot to warm"
        assert data["event_type"] == "temperature_changed"
        assert data["new_tier"] == "warm"
        assert "lineno" not in data

    def test_non_serializable_extra_uses_str(self):
        record = make_record("saved", path=object())
        assert "object object" in json.loads(JSONFormatter().format(record))["path"]


class TestHumanReadableFormatter:
    @pytest.fixture
    def formatter(self):
        return HumanReadableFormatter()

    def test_temperature_change_line(self, formatter):
        record = make_record(
            "transition",
            event_type="temperature_changed",
            entity_id="hero",
            entity_kind="character",
            old_tier="cold",
            new_tier="hot",
        )
        assert formatter.format(record) == "🌡️  character:hero cold → hot"

    def test_compression_line(self, formatter):
        record = make_record(
            "compressed",
            event_type="memory_compressed",
            entity_id="lamp",
            tier="frozen",
            compression_ratio=0.125,
        )
        assert formatter.format(record) == "🧊 lamp compressed to frozen (ratio 0.125)"

    def test_budget_overrun_line(self, formatter):
        record = make_record(
            "slow",
            level=logging.WARNING,
            event_type="budget_exceeded",
            operation="on_access",
            duration_ms=72.34,
            budget_ms=50.0,
        )
        assert formatter.format(record) == "⏱️  on_access took 72.3ms (budget 50.0ms)"

    def test_warnings_always_shown(self, formatter):
        record = make_record("Failed to publish", level=logging.WARNING, event_type="warning")
        assert formatter.format(record) == "WARNING: Failed to publish"

    def test_debug_hidden(self, formatter):
        assert formatter.format(make_record("Saved lamp", level=logging.DEBUG)) is None

    def test_routine_info_hidden(self, formatter):
        assert formatter.format(make_record("cache scan", event_type="info")) is None

    def test_lifecycle_info_shown(self, formatter):
        message = "Memory temperature manager initialized with 3 cached entities"
        assert formatter.format(make_record(message, event_type="info")) == message


class TestSetupLogging:
    @pytest.fixture
    def log_paths(self, tmp_path):
        yield tmp_path / "memory.log", tmp_path / "memory.jsonl"
        logger = logging.getLogger("memtemp")
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []

    def test_writes_human_and_json_logs(self, log_paths):
        log_file, json_log_file = log_paths
        logger = setup_logging(str(log_file), str(json_log_file))

        logger.info(
            "Compressed item:lamp to cold",
            extra={"event_type": "memory_compressed", "entity_id": "lamp", "tier": "cold", "compression_ratio": 0.5},
        )
        logger.debug("hidden at info level")

        assert "🧊 lamp compressed to cold" in log_file.read_text(encoding="utf-8")
        entries = parse_json_logs(str(json_log_file))
        assert len(entries) == 1
        assert entries[0]["entity_id"] == "lamp"

    def test_setup_replaces_handlers(self, log_paths):
        log_file, json_log_file = log_paths
        setup_logging(str(log_file), str(json_log_file))
        logger = setup_logging(str(log_file), str(json_log_file), logging.DEBUG)

        assert len(logger.handlers) == 3
        assert logger.level == logging.DEBUG

    def test_parse_skips_malformed_lines(self, tmp_path):
        path = tmp_path / "mixed.jsonl"
        path.write_text('{"message": "ok"}\nnot json\n{"message": "also ok"}\n', encoding="utf-8")

        assert [e["message"] for e in parse_json_logs(str(path))] == ["ok", "also ok"]

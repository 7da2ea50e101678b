import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

# Attributes every LogRecord carries; anything else arrived via extra={}
STANDARD_ATTRS = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime", "taskName"}

# INFO messages without a rendered event_type are shown only if they mention one of these
CONSOLE_KEYWORDS = ("error", "failed", "exception", "warning", "initialized", "shut down")


class JSONFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, message and all extra fields."""

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
        }
        log_data.update(
            (name, value)
            for name, value in record.__dict__.items()
            if name not in STANDARD_ATTRS and not name.startswith("_")
        )
        return json.dumps(log_data, default=str)


def _render_temperature_change(record) -> str:
    kind = getattr(record, "entity_kind", "entity")
    entity_id = getattr(record, "entity_id", "?")
    old_tier = getattr(record, "old_tier", "?")
    new_tier = getattr(record, "new_tier", "?")
    return f"🌡️  {kind}:{entity_id} {old_tier} → {new_tier}"


def _render_compression(record) -> str:
    entity_id = getattr(record, "entity_id", "?")
    tier = getattr(record, "tier", "?")
    ratio = getattr(record, "compression_ratio", 1.0)
    return f"🧊 {entity_id} compressed to {tier} (ratio {ratio:.3f})"


def _render_budget_overrun(record) -> str:
    operation = getattr(record, "operation", "operation")
    duration = getattr(record, "duration_ms", 0.0)
    budget = getattr(record, "budget_ms", 0.0)
    return f"⏱️  {operation} took {duration:.1f}ms (budget {budget}ms)"


class HumanReadableFormatter(logging.Formatter):
    """
    Console/file formatter focused on tier changes.

    Returns None for records that should not be shown; the paired
    RenderableFilter drops those before a handler writes anything.
    """

    renderers: Dict[str, Callable[[logging.LogRecord], str]] = {
        "temperature_changed": _render_temperature_change,
        "memory_compressed": _render_compression,
        "budget_exceeded": _render_budget_overrun,
    }
    hidden_event_types = ("debug", "event_handler_error")

    def format(self, record) -> Optional[str]:
        if record.levelno <= logging.DEBUG:
            return None

        event_type = getattr(record, "event_type", None)
        renderer = self.renderers.get(event_type)
        if renderer is not None:
            return renderer(record)

        message = record.getMessage()
        if record.levelno >= logging.WARNING:
            return f"{record.levelname}: {message}"
        if event_type in self.hidden_event_types:
            return None
        if any(keyword in message.lower() for keyword in CONSOLE_KEYWORDS):
            return message
        return None


class RenderableFilter(logging.Filter):
    """Let a record through only if the formatter renders it to text."""

    def __init__(self, formatter: logging.Formatter):
        super().__init__()
        self.formatter = formatter

    def filter(self, record) -> bool:
        return self.formatter.format(record) is not None


def _human_handler(handler: logging.Handler, log_level: int) -> logging.Handler:
    formatter = HumanReadableFormatter()
    handler.setLevel(log_level)
    handler.setFormatter(formatter)
    handler.addFilter(RenderableFilter(formatter))
    return handler


def setup_logging(
    log_file: str, json_log_file: str, log_level: int = logging.INFO
) -> logging.Logger:
    """
    Configure the "memtemp" logger.

    Args:
        log_file: Path to the human-readable log file
        json_log_file: Path to the JSON lines log file
        log_level: Logging level (default: INFO)

    Returns:
        The configured logger; previous handlers are replaced
    """
    logger = logging.getLogger("memtemp")
    logger.setLevel(log_level)
    logger.handlers = []

    logger.addHandler(_human_handler(logging.StreamHandler(), log_level))
    logger.addHandler(_human_handler(logging.FileHandler(log_file, mode="a", encoding="utf-8"), log_level))

    json_handler = logging.FileHandler(json_log_file, mode="a", encoding="utf-8")
    json_handler.setLevel(log_level)
    json_handler.setFormatter(JSONFormatter())
    logger.addHandler(json_handler)

    return logger


def parse_json_logs(json_log_file: str) -> List[Dict[str, Any]]:
    """Read a JSON lines log back into dicts, skipping lines that do not parse."""
    entries = []
    with open(json_log_file, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
    return entries

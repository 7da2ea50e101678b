"""
ABOUTME: Data models for the memory temperature system - tiers, payloads, MemoryEntity and CompressionResult.
ABOUTME: Defines the core data structures cached, compressed and persisted by MemoryTemperatureManager.
"""

import copy
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Tuple

from shared_utils import estimate_tokens
from .errors import UnknownTier


# Type alias for valid tier values
TemperatureType = Literal["hot", "warm", "cool", "cold", "frozen"]

class Temperature:
    """
    Temperature tier constants, ordered hot > warm > cool > cold > frozen.

    HOT: Full fidelity, canonical data served directly
    WARM: Narrative fields dropped, text truncated to the warm retention hint
    COOL: Whitelisted high-value fields, first sentences of text
    COLD: Minimal field set under shortened keys, a handful of words
    FROZEN: Identifiers only under single-character keys
    """
    HOT: TemperatureType = "hot"
    WARM: TemperatureType = "warm"
    COOL: TemperatureType = "cool"
    COLD: TemperatureType = "cold"
    FROZEN: TemperatureType = "frozen"

# Hottest first
TEMPERATURES: Tuple[TemperatureType, ...] = ("hot", "warm", "cool", "cold", "frozen")

# Tiers that have a compression strategy
COMPRESSIBLE_TEMPERATURES: Tuple[TemperatureType, ...] = ("warm", "cool", "cold", "frozen")

TEMPERATURE_RANK: Dict[str, int] = {"hot": 5, "warm": 4, "cool": 3, "cold": 2, "frozen": 1}


def tier_rank(tier: str) -> int:
    """Return the rank of a tier (hot=5 ... frozen=1); raises UnknownTier otherwise."""
    try:
        return TEMPERATURE_RANK[tier]
    except KeyError:
        raise UnknownTier(tier) from None


EntityKindType = Literal["character", "location", "relationship", "item", "event"]

ENTITY_KINDS: Tuple[EntityKindType, ...] = ("character", "location", "relationship", "item", "event")


def validate_kind(kind: str) -> EntityKindType:
    """Ensure kind is one of the five tracked entity kinds."""
    if kind not in ENTITY_KINDS:
        raise ValueError(
            f"Invalid entity kind: '{kind}'. "
            f"Must be one of: {', '.join(ENTITY_KINDS)}"
        )
    return kind


# ---------------------------------------------------------------------------
# Payload variant
# ---------------------------------------------------------------------------

class Payload:
    """
    Closed tagged variant over canonical data: text, record or opaque.

    Raw values are tagged once at the boundary with Payload.wrap(). Compression
    strategies never inspect raw types; they hand one callable per shape to
    transform() and opaque payloads pass through unchanged.
    """

    tag: str = ""

    @staticmethod
    def wrap(value: Any) -> "Payload":
        if isinstance(value, Payload):
            return value
        if isinstance(value, str):
            return TextPayload(value)
        if isinstance(value, Mapping):
            return RecordPayload(copy.deepcopy(dict(value)))
        return OpaquePayload(value)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Payload":
        tag = data.get("kind")
        value = data.get("value")
        if tag == TextPayload.tag:
            return TextPayload(value)
        if tag == RecordPayload.tag:
            return RecordPayload(copy.deepcopy(dict(value or {})))
        if tag == OpaquePayload.tag:
            return OpaquePayload(value)
        raise ValueError(f"Unknown payload kind: {tag!r}")

    @property
    def value(self) -> Any:
        raise NotImplementedError

    def transform(
        self,
        on_text: Callable[[str], str],
        on_record: Callable[[Dict[str, Any]], Dict[str, Any]],
    ) -> "Payload":
        raise NotImplementedError

    def token_count(self) -> int:
        return estimate_tokens(self.value)

    def snapshot_value(self) -> Any:
        """Deep copy of the raw value, safe to hand to callers."""
        return copy.deepcopy(self.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.tag, "value": self.snapshot_value()}


@dataclass(frozen=True)
class TextPayload(Payload):
    text: str
    tag = "text"

    @property
    def value(self) -> str:
        return self.text

    def transform(self, on_text, on_record) -> Payload:
        return TextPayload(on_text(self.text))


@dataclass(frozen=True)
class RecordPayload(Payload):
    fields: Dict[str, Any]
    tag = "record"

    @property
    def value(self) -> Dict[str, Any]:
        return self.fields

    def transform(self, on_text, on_record) -> Payload:
        return RecordPayload(on_record(dict(self.fields)))


@dataclass(frozen=True)
class OpaquePayload(Payload):
    raw: Any
    tag = "opaque"

    @property
    def value(self) -> Any:
        return self.raw

    def transform(self, on_text, on_record) -> Payload:
        return self


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MemoryEntity:
    """
    Represents one tracked game object and its temperature bookkeeping.

    Usage patterns:
    1. Hot entries:
       - tier = hot, derived_snapshot = None
       - derived_token_count = estimate of canonical_data
       - view() returns canonical_data

    2. Compressed entries (warm, cool, cold, frozen):
       - derived_snapshot = strategy(canonical_data, tier)
       - derived_token_count = estimate of derived_snapshot
       - last_compression_ratio = derived / canonical tokens
       - view() returns derived_snapshot

    canonical_data is never discarded; returning to hot serves it untouched.
    last_compression_ratio survives a return to hot as history.
    """
    id: str
    kind: EntityKindType
    canonical_data: Payload
    tier: TemperatureType = Temperature.HOT
    last_accessed_at: datetime = field(default_factory=utc_now)
    access_count: int = 0
    derived_snapshot: Optional[Payload] = None
    derived_token_count: int = 0
    last_compression_ratio: Optional[float] = None

    def __post_init__(self):
        """Validate kind and tier, tag raw payloads and seed the token count."""
        validate_kind(self.kind)
        tier_rank(self.tier)
        self.canonical_data = Payload.wrap(self.canonical_data)
        if self.derived_snapshot is not None:
            self.derived_snapshot = Payload.wrap(self.derived_snapshot)
        if not self.derived_token_count:
            self.derived_token_count = self.current_payload().token_count()

    @classmethod
    def fresh(cls, entity_id: str, kind: str, data: Any = None, now: Optional[datetime] = None) -> "MemoryEntity":
        """Create a new hot entry; unknown ids get a minimal identity record."""
        if data is None:
            data = {"id": entity_id, "name": f"Entity {entity_id}"}
        return cls(
            id=entity_id,
            kind=kind,
            canonical_data=Payload.wrap(data),
            last_accessed_at=now or utc_now(),
        )

    @property
    def canonical_token_count(self) -> int:
        return self.canonical_data.token_count()

    def current_payload(self) -> Payload:
        if self.tier == Temperature.HOT or self.derived_snapshot is None:
            return self.canonical_data
        return self.derived_snapshot

    def view(self) -> Any:
        """Raw value a reader should see at the current tier (a copy; edits do not reach the cache)."""
        return self.current_payload().snapshot_value()

    def copy(self) -> "MemoryEntity":
        """Shallow copy for staging a change; payload objects are shared."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "canonical_data": self.canonical_data.to_dict(),
            "tier": self.tier,
            "last_accessed_at": self.last_accessed_at.isoformat(),
            "access_count": self.access_count,
            "derived_snapshot": self.derived_snapshot.to_dict() if self.derived_snapshot else None,
            "derived_token_count": self.derived_token_count,
            "last_compression_ratio": self.last_compression_ratio,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryEntity":
        last_accessed_at = datetime.fromisoformat(data["last_accessed_at"])
        if last_accessed_at.tzinfo is None:
            last_accessed_at = last_accessed_at.replace(tzinfo=timezone.utc)
        snapshot = data.get("derived_snapshot")
        return cls(
            id=data["id"],
            kind=data["kind"],
            canonical_data=Payload.from_dict(data["canonical_data"]),
            tier=data.get("tier", Temperature.HOT),
            last_accessed_at=last_accessed_at,
            access_count=data.get("access_count", 0),
            derived_snapshot=Payload.from_dict(snapshot) if snapshot else None,
            derived_token_count=data.get("derived_token_count", 0),
            last_compression_ratio=data.get("last_compression_ratio"),
        )


@dataclass(frozen=True)
class CompressionResult:
    """Outcome of compressing one canonical payload to one tier."""
    compressed_data: Payload
    original_token_count: int
    compressed_token_count: int
    compression_ratio: float
    tier: TemperatureType

    def to_event_payload(self) -> Dict[str, Any]:
        """Shape published inside memory.compressed."""
        return {
            "compressedData": self.compressed_data.snapshot_value(),
            "originalTokenCount": self.original_token_count,
            "compressedTokenCount": self.compressed_token_count,
            "compressionRatio": self.compression_ratio,
            "tier": self.tier,
        }

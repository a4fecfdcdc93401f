"""
Memory type definitions for the memory system.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple


MIN_IMPORTANCE = 1
MAX_IMPORTANCE = 10
DEFAULT_IMPORTANCE = 5
DEFAULT_SOURCE = "unknown"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime from string or return as-is if already datetime.

    Handles ISO format strings including 'Z' suffix for UTC. Values
    without an offset are taken to be UTC.

    Args:
        value: String or datetime to parse

    Returns:
        Timezone-aware datetime or None
    """
    if isinstance(value, str):
        # Handle 'Z' suffix for UTC
        if value.endswith('Z'):
            value = value[:-1] + '+00:00'
        value = datetime.fromisoformat(value)
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def generate_entry_id() -> str:
    """Generate a unique ID for a memory entry."""
    return f"mem_{uuid.uuid4().hex}"


class MemoryType(str, Enum):
    """Types of memory entries."""

    # Chat turns, user messages and assistant responses
    CONVERSATION = "conversation"

    # Facts learned about the domain
    KNOWLEDGE = "knowledge"

    # Ambient context: page visits, task logs
    CONTEXT = "context"

    # Things the user told us they like or dislike
    USER_PREFERENCE = "user_preference"

    @classmethod
    def coerce(cls, value: Any, default: "MemoryType" = None) -> "MemoryType":
        """
        Convert a string or enum to a MemoryType.

        Unknown values resolve to ``default`` (CONTEXT when not given)
        instead of raising.
        """
        if default is None:
            default = cls.CONTEXT
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return default


def normalize_importance(value: Any) -> int:
    """Coerce an importance value into the [1, 10] range, defaulting to 5."""
    if value is None or isinstance(value, bool):
        return DEFAULT_IMPORTANCE
    try:
        importance = int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_IMPORTANCE
    # Zero is "unset" for callers that pass falsy defaults
    if importance == 0:
        return DEFAULT_IMPORTANCE
    return max(MIN_IMPORTANCE, min(MAX_IMPORTANCE, importance))


@dataclass(frozen=True)
class MemoryMetadata:
    """
    Metadata attached to a memory entry.

    Attributes:
        type: Kind of memory
        source: Caller or page the memory came from
        timestamp: When the memory was created
        tags: Caller-supplied tags, in order
        importance: Retention priority on a 1-10 scale
    """

    type: MemoryType = MemoryType.CONTEXT
    source: str = DEFAULT_SOURCE
    timestamp: datetime = field(default_factory=utc_now)
    tags: Tuple[str, ...] = ()
    importance: int = DEFAULT_IMPORTANCE

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags))

    @classmethod
    def from_partial(
        cls,
        partial: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None,
    ) -> "MemoryMetadata":
        """
        Merge caller-supplied metadata over the defaults.

        Args:
            partial: Any subset of type, source, tags and importance
            timestamp: Creation time. Defaults to now.

        Returns:
            Complete metadata with anomalies resolved to defaults
        """
        partial = partial or {}
        tags = partial.get("tags") or []
        if not isinstance(tags, (list, tuple)):
            tags = [tags]

        return cls(
            type=MemoryType.coerce(partial.get("type")),
            source=str(partial.get("source") or DEFAULT_SOURCE),
            timestamp=timestamp or utc_now(),
            tags=tuple(str(tag) for tag in tags),
            importance=normalize_importance(partial.get("importance")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "type": self.type.value,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
            "tags": list(self.tags),
            "importance": self.importance,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryMetadata":
        """Create from dictionary."""
        timestamp = parse_datetime(data.get("timestamp"))
        if timestamp is None:
            raise ValueError("metadata.timestamp is required")

        return cls(
            type=MemoryType(data.get("type", MemoryType.CONTEXT.value)),
            source=data.get("source", DEFAULT_SOURCE),
            timestamp=timestamp,
            tags=tuple(data.get("tags", ())),
            importance=normalize_importance(data.get("importance")),
        )


@dataclass(frozen=True)
class MemoryEntry:
    """
    A single memory entry that can be stored and retrieved.

    Entries are immutable once created. The embedding is computed from
    ``content`` when the entry is added and never recomputed. Tags and
    embedding are stored as tuples, so entries handed to callers
    cannot be changed in place.

    Attributes:
        id: Unique identifier, never reused
        content: The raw text snippet
        metadata: Type, source, timestamp, tags and importance
        embedding: L2-normalized vector derived from content
    """

    id: str
    content: str
    metadata: MemoryMetadata
    embedding: Tuple[float, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "embedding", tuple(float(v) for v in self.embedding))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "content": self.content,
            "metadata": self.metadata.to_dict(),
            "embedding": list(self.embedding),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MemoryEntry":
        """Create from dictionary."""
        embedding = data.get("embedding")
        if not isinstance(embedding, list):
            raise ValueError(f"Entry {data.get('id')} has no embedding")

        return cls(
            id=data["id"],
            content=data["content"],
            metadata=MemoryMetadata.from_dict(data["metadata"]),
            embedding=embedding,
        )


@dataclass
class MemoryQuery:
    """
    A query for retrieving memories.

    Attributes:
        text: Text to search for
        type: Only return memories of this type
        source: Only return memories from this source
        limit: Maximum number of results (None means the default)
        threshold: Minimum similarity a result must reach (None means the default)
    """

    DEFAULT_LIMIT = 10
    DEFAULT_THRESHOLD = 0.1

    text: str
    type: Optional[MemoryType] = None
    source: Optional[str] = None
    limit: Optional[int] = DEFAULT_LIMIT
    threshold: Optional[float] = DEFAULT_THRESHOLD

    def __post_init__(self):
        if self.limit is None:
            self.limit = self.DEFAULT_LIMIT
        if self.threshold is None:
            self.threshold = self.DEFAULT_THRESHOLD

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "text": self.text,
            "type": getattr(self.type, "value", self.type),
            "source": self.source,
            "limit": self.limit,
            "threshold": self.threshold,
        }


@dataclass
class MemorySearchResult:
    """
    Result of a memory search.

    Attributes:
        entry: The memory entry
        similarity: Cosine similarity between query and entry
    """

    entry: MemoryEntry
    similarity: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "entry": self.entry.to_dict(),
            "similarity": self.similarity,
        }


@dataclass
class MemoryStats:
    """Statistics about memory usage."""

    total_entries: int = 0
    by_type: Dict[str, int] = field(default_factory=dict)
    by_source: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "total_entries": self.total_entries,
            "by_type": dict(self.by_type),
            "by_source": dict(self.by_source),
        }

"""
Context Memory - an embedded semantic memory store.

Push text snippets in with a type, source, tags and importance, and
pull the most relevant ones back out for a new query, either as ranked
results or as a formatted context block ready to drop into a prompt.

Key Features:
- Pluggable embeddings (character frequency by default)
- Similarity ranking with importance and recency tie-breaks
- Capacity-bounded retention by importance
- Snapshot persistence to memory, file or SQLite backends
- Page-scoped and chat helpers for callers
"""

from .memory import (
    MemoryType,
    MemoryMetadata,
    MemoryEntry,
    MemoryQuery,
    MemorySearchResult,
    MemoryStats,
    KeyValueBackend,
    InMemoryBackend,
    FileBackend,
    SQLiteBackend,
    SnapshotStore,
    EmbeddingProvider,
    CharFrequencyEmbedding,
    cosine_similarity,
    MemoryManager,
    PageMemory,
    ConversationMemory,
)

from .config import MemoryConfig, load_config

from .observability import LogLevel, configure_logging

__version__ = "0.1.0"

__all__ = [
    "MemoryType",
    "MemoryMetadata",
    "MemoryEntry",
    "MemoryQuery",
    "MemorySearchResult",
    "MemoryStats",
    "KeyValueBackend",
    "InMemoryBackend",
    "FileBackend",
    "SQLiteBackend",
    "SnapshotStore",
    "EmbeddingProvider",
    "CharFrequencyEmbedding",
    "cosine_similarity",
    "MemoryManager",
    "PageMemory",
    "ConversationMemory",
    "MemoryConfig",
    "load_config",
    "LogLevel",
    "configure_logging",
]

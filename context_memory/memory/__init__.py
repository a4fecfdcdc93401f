"""
Semantic memory store.

Ingests text snippets with metadata, embeds them into fixed-size
vectors and retrieves the most relevant snippets for a query.

Key features:
- Pluggable embedding providers (character frequency by default)
- Cosine similarity ranking with importance and recency tie-breaks
- Capacity-bounded retention by importance
- Whole-store snapshots to memory, file or SQLite backends
- Context assembly for prompt injection
"""

from .types import (
    MemoryType,
    MemoryMetadata,
    MemoryEntry,
    MemoryQuery,
    MemorySearchResult,
    MemoryStats,
)

from .storage import (
    KeyValueBackend,
    InMemoryBackend,
    FileBackend,
    SQLiteBackend,
    SnapshotStore,
    build_backend,
)

from .embeddings import (
    EmbeddingProvider,
    CharFrequencyEmbedding,
    cosine_similarity,
)

from .manager import (
    MemoryManager,
    format_context,
    NO_CONTEXT_MESSAGE,
)

from .context import (
    PageMemory,
    ConversationMemory,
)


__all__ = [
    # Types
    "MemoryType",
    "MemoryMetadata",
    "MemoryEntry",
    "MemoryQuery",
    "MemorySearchResult",
    "MemoryStats",
    # Storage
    "KeyValueBackend",
    "InMemoryBackend",
    "FileBackend",
    "SQLiteBackend",
    "SnapshotStore",
    "build_backend",
    # Embeddings
    "EmbeddingProvider",
    "CharFrequencyEmbedding",
    "cosine_similarity",
    # Manager
    "MemoryManager",
    "format_context",
    "NO_CONTEXT_MESSAGE",
    # Caller helpers
    "PageMemory",
    "ConversationMemory",
]

"""
Memory Manager - High-level interface for the memory system.

Owns the entry collection and provides a simple API for storing,
searching and assembling context from memories, with automatic
embedding generation and snapshot persistence.
"""

import functools
import logging
import threading
from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

from .embeddings import EmbeddingProvider, get_embedding_provider
from .storage import (
    DEFAULT_SNAPSHOT_KEY,
    InMemoryBackend,
    KeyValueBackend,
    SnapshotStore,
    build_backend,
)
from .types import (
    MemoryEntry,
    MemoryMetadata,
    MemoryQuery,
    MemorySearchResult,
    MemoryStats,
    generate_entry_id,
)

if TYPE_CHECKING:
    from ..config import MemoryConfig


logger = logging.getLogger(__name__)


NO_CONTEXT_MESSAGE = "No relevant context found in memory."
CONTEXT_HEADER = "Relevant context from memory:"


class MemoryManager:
    """
    High-level memory management interface.

    Supports:

    - Storing text snippets with type, source, tags and importance
    - Similarity search with type and source filters
    - Formatting the best matches into a context block for prompts
    - Capacity-bounded retention by importance
    - Whole-store snapshots through a key-value backend

    The async methods never suspend; they are async so that async
    callers can await them alongside real I/O. All access to the entry
    collection goes through one lock, so a search never observes the
    collection while it is being pruned.

    Example usage:
        manager = MemoryManager(backend=SQLiteBackend("memory.db"))

        await manager.add_memory(
            "User prefers dark mode",
            {"type": "user_preference", "source": "Settings", "importance": 8},
        )

        context = await manager.get_relevant_context("dark mode")
    """

    # Default settings
    DEFAULT_CAPACITY = 1000
    DEFAULT_LIMIT = 10
    DEFAULT_THRESHOLD = 0.1
    DEFAULT_CONTEXT_LIMIT = 5
    DEFAULT_TIE_TOLERANCE = 0.01

    def __init__(
        self,
        backend: Optional[KeyValueBackend] = None,
        embedding_provider: Optional[EmbeddingProvider] = None,
        capacity: int = DEFAULT_CAPACITY,
        storage_key: Optional[str] = None,
        context_limit: int = DEFAULT_CONTEXT_LIMIT,
        default_threshold: float = DEFAULT_THRESHOLD,
        default_limit: int = DEFAULT_LIMIT,
        tie_tolerance: float = DEFAULT_TIE_TOLERANCE,
    ):
        """
        Initialize the memory manager and load any existing snapshot.

        Args:
            backend: Key-value backend for snapshots. Defaults to in-memory.
            embedding_provider: Embedding provider. Defaults to character frequency.
            capacity: Maximum number of entries kept.
            storage_key: Key the snapshot is stored under.
            context_limit: Number of results used for context assembly.
            default_threshold: Minimum similarity for context assembly.
            default_limit: Result limit for queries built by this manager.
            tie_tolerance: Similarity difference treated as a tie when ranking.
        """
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")

        self._snapshots = SnapshotStore(
            backend or InMemoryBackend(),
            key=storage_key or DEFAULT_SNAPSHOT_KEY,
        )
        self._embedding_provider = embedding_provider or get_embedding_provider()
        self._capacity = capacity
        self._context_limit = context_limit
        self._default_threshold = default_threshold
        self._default_limit = default_limit
        self._tie_tolerance = tie_tolerance
        self._lock = threading.RLock()

        self._entries: List[MemoryEntry] = self._snapshots.load(
            dimension=self._embedding_provider.dimension
        )
        if len(self._entries) > self._capacity:
            self._entries = self._prune(self._entries)

    @classmethod
    def from_config(cls, config: "MemoryConfig") -> "MemoryManager":
        """
        Build a manager from configuration.

        Args:
            config: Loaded configuration

        Returns:
            A manager wired to the configured backend and embedder
        """
        return cls(
            backend=build_backend(config.storage),
            embedding_provider=get_embedding_provider(config.embedding.alphabet),
            capacity=config.capacity,
            storage_key=config.storage.key,
            context_limit=config.retrieval.context_limit,
            default_threshold=config.retrieval.default_threshold,
            default_limit=config.retrieval.default_limit,
            tie_tolerance=config.retrieval.tie_tolerance,
        )

    @property
    def capacity(self) -> int:
        """Maximum number of entries kept."""
        return self._capacity

    @property
    def embedding_provider(self) -> EmbeddingProvider:
        """Get the embedding provider."""
        return self._embedding_provider

    @property
    def snapshots(self) -> SnapshotStore:
        """Get the snapshot store."""
        return self._snapshots

    # ========== Core Memory Operations ==========

    async def add_memory(
        self,
        content: str,
        metadata: Optional[Union[Dict[str, Any], MemoryMetadata]] = None,
        **fields: Any,
    ) -> None:
        """
        Store a new memory.

        Missing or invalid metadata falls back to the defaults
        (type ``context``, source ``unknown``, no tags, importance 5).

        Args:
            content: The content to remember
            metadata: Any subset of type, source, tags and importance
            **fields: Metadata fields given as keywords, merged over ``metadata``
        """
        self.add(content, metadata, **fields)

    def add(
        self,
        content: str,
        metadata: Optional[Union[Dict[str, Any], MemoryMetadata]] = None,
        **fields: Any,
    ) -> MemoryEntry:
        """
        Store a new memory and return the created entry.

        This is the synchronous form of ``add_memory``.
        """
        if isinstance(metadata, MemoryMetadata):
            partial = metadata.to_dict()
            partial.pop("timestamp")
        elif isinstance(metadata, dict):
            partial = dict(metadata)
        else:
            if metadata is not None:
                logger.warning(f"Ignoring non-mapping metadata: {type(metadata).__name__}")
            partial = {}
        partial.update(fields)

        content = "" if content is None else str(content)
        entry = MemoryEntry(
            id=generate_entry_id(),
            content=content,
            metadata=MemoryMetadata.from_partial(partial),
            embedding=self._embedding_provider.embed(content),
        )

        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._capacity:
                self._entries = self._prune(self._entries)
            self._snapshots.save(self._entries)

        logger.debug(f"Stored memory entry: {entry.id}")
        return entry

    def _prune(self, entries: List[MemoryEntry]) -> List[MemoryEntry]:
        """
        Keep the top ``capacity`` entries by importance.

        Ties on importance keep the most recent entries (timestamp, then
        position in the collection). Survivors keep their original order.
        """
        ranked = sorted(
            range(len(entries)),
            key=lambda i: (
                entries[i].metadata.importance,
                entries[i].metadata.timestamp,
                i,
            ),
            reverse=True,
        )
        keep = set(ranked[:self._capacity])
        pruned = [entry for i, entry in enumerate(entries) if i in keep]

        logger.info(
            f"Pruned {len(entries) - len(pruned)} memory entries",
            extra={"attributes": {"capacity": self._capacity}},
        )
        return pruned

    async def search_memory(self, query: MemoryQuery) -> List[MemorySearchResult]:
        """
        Search for relevant memories.

        Args:
            query: Query text, optional type and source filters,
                result limit and similarity threshold

        Returns:
            Results ordered by similarity (within the tie tolerance),
            then importance, then recency
        """
        return self.search(query)

    def search(self, query: MemoryQuery) -> List[MemorySearchResult]:
        """Synchronous form of ``search_memory``."""
        query_embedding = self._embedding_provider.embed(query.text or "")

        with self._lock:
            candidates = list(enumerate(self._entries))

        if query.type:
            candidates = [(i, e) for i, e in candidates if e.metadata.type == query.type]
        if query.source:
            candidates = [(i, e) for i, e in candidates if e.metadata.source == query.source]

        scored = []
        for position, entry in candidates:
            similarity = self._embedding_provider.similarity(query_embedding, entry.embedding)
            if similarity >= query.threshold:
                scored.append((position, MemorySearchResult(entry=entry, similarity=similarity)))

        scored.sort(key=functools.cmp_to_key(self._compare_results))

        return [result for _, result in scored[:max(query.limit, 0)]]

    def _compare_results(self, a, b) -> int:
        """
        Order (position, result) pairs for ranking.

        Similarities closer than the tie tolerance count as equal; ties
        fall back to importance, then timestamp, then position, all
        descending.
        """
        pos_a, res_a = a
        pos_b, res_b = b

        diff = res_a.similarity - res_b.similarity
        if abs(diff) > self._tie_tolerance:
            return -1 if diff > 0 else 1

        meta_a = res_a.entry.metadata
        meta_b = res_b.entry.metadata
        if meta_a.importance != meta_b.importance:
            return meta_b.importance - meta_a.importance
        if meta_a.timestamp != meta_b.timestamp:
            return -1 if meta_a.timestamp > meta_b.timestamp else 1
        return pos_b - pos_a

    # ========== Context Retrieval ==========

    async def get_relevant_context(
        self,
        query_text: str,
        source: Optional[str] = None,
    ) -> str:
        """
        Get relevant context for a query as a formatted text block.

        This is the main method for callers that inject memories into
        a prompt or a view.

        Args:
            query_text: The query or task description
            source: Optional source to focus on

        Returns:
            A header followed by one line per matching memory, or a
            fixed message when nothing matches
        """
        results = self.search(MemoryQuery(
            text=query_text,
            source=source,
            limit=self._context_limit,
            threshold=self._default_threshold,
        ))
        return format_context(results)

    def build_query(self, text: str, **kwargs: Any) -> MemoryQuery:
        """Create a query using this manager's default limit and threshold."""
        kwargs.setdefault("limit", self._default_limit)
        kwargs.setdefault("threshold", self._default_threshold)
        return MemoryQuery(text=text, **kwargs)

    # ========== Maintenance Operations ==========

    def list_entries(self) -> List[MemoryEntry]:
        """Get all entries in insertion order."""
        with self._lock:
            return list(self._entries)

    def clear_memory(self):
        """Clear all memories and persist the empty snapshot."""
        with self._lock:
            self._entries = []
            self._snapshots.save(self._entries)
        logger.warning("Cleared all memory entries")

    # ========== Statistics ==========

    def get_stats(self) -> MemoryStats:
        """Get memory usage statistics."""
        with self._lock:
            entries = list(self._entries)

        return MemoryStats(
            total_entries=len(entries),
            by_type=dict(Counter(e.metadata.type.value for e in entries)),
            by_source=dict(Counter(e.metadata.source for e in entries)),
        )

    def get_stats_summary(self) -> str:
        """Get a human-readable stats summary."""
        stats = self.get_stats()

        lines = [
            "Memory Statistics",
            "=" * 40,
            f"Total entries: {stats.total_entries} / {self._capacity}",
            "",
            "Entries by type:",
        ]

        for mem_type, count in sorted(stats.by_type.items()):
            lines.append(f"  - {mem_type}: {count}")

        lines.extend(["", "Entries by source:"])
        for source, count in sorted(stats.by_source.items()):
            lines.append(f"  - {source}: {count}")

        return "\n".join(lines)

    def close(self):
        """Close the memory manager and release resources."""
        self._snapshots.close()


def format_context(results: List[MemorySearchResult]) -> str:
    """
    Format search results into a context block.

    Each line reads ``[<type>] <content> (similarity: <pct>%)``, in
    ranking order, under a fixed header.
    """
    if not results:
        return NO_CONTEXT_MESSAGE

    lines = [CONTEXT_HEADER]
    for result in results:
        lines.append(
            f"[{result.entry.metadata.type.value}] {result.entry.content} "
            f"(similarity: {result.similarity * 100:.1f}%)"
        )
    return "\n".join(lines)

"""
Memory storage backends.

Provides key-value backends and whole-store snapshot persistence
for memory entries.
"""

import json
import logging
import os
import sqlite3
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Sequence

from .types import MemoryEntry, utc_now

if TYPE_CHECKING:
    from ..config import StorageConfig


logger = logging.getLogger(__name__)


DEFAULT_SNAPSHOT_KEY = "context-memory"


class KeyValueBackend(ABC):
    """Abstract base class for durable key-value backends."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: The storage key

        Returns:
            The stored string, or None if the key is absent
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: The storage key
            value: The string to store
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        pass

    def close(self) -> None:
        """Release any resources held by the backend."""


class InMemoryBackend(KeyValueBackend):
    """Process-local backend, useful for tests and throwaway stores."""

    def __init__(self):
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None


class FileBackend(KeyValueBackend):
    """
    File-based backend storing one file per key.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so readers never see a partial value.
    """

    # Default storage location
    DEFAULT_DIR = ".context_memory"

    def __init__(self, directory: Optional[str] = None):
        """
        Initialize file storage.

        Args:
            directory: Directory holding the value files. If None, uses default.
        """
        if directory is None:
            directory = str(Path.home() / self.DEFAULT_DIR)

        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        safe_name = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe_name}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        path = self._path_for(key)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.directory), prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        if path.exists():
            path.unlink()
            return True
        return False


class SQLiteBackend(KeyValueBackend):
    """
    SQLite-based key-value backend.

    Thread-safe with per-thread connections.
    """

    # Default database location
    DEFAULT_DB_PATH = ".context_memory/memory.db"

    # Schema version for migrations
    SCHEMA_VERSION = 1

    def __init__(
        self,
        db_path: Optional[str] = None,
        auto_create: bool = True,
    ):
        """
        Initialize SQLite storage.

        Args:
            db_path: Path to the database file. If None, uses default.
            auto_create: Whether to create the database if it doesn't exist.
        """
        if db_path is None:
            home = Path.home()
            db_path = str(home / self.DEFAULT_DB_PATH)

        self.db_path = db_path
        self._local = threading.local()

        if auto_create:
            self._ensure_db_exists()
            self._ensure_schema()

    def _ensure_db_exists(self):
        """Ensure the database directory exists."""
        db_dir = Path(self.db_path).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    @property
    def _conn(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, 'conn') or self._local.conn is None:
            self._local.conn = sqlite3.connect(self.db_path)
            self._local.conn.row_factory = sqlite3.Row
        return self._local.conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Cursor]:
        """Context manager for database transactions."""
        cursor = self._conn.cursor()
        try:
            yield cursor
            self._conn.commit()
        except Exception:
            self._conn.rollback()
            raise
        finally:
            cursor.close()

    def _ensure_schema(self):
        """Create the database schema if needed."""
        with self._transaction() as cursor:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """)

            cursor.execute("SELECT version FROM schema_version LIMIT 1")
            row = cursor.fetchone()
            current_version = row["version"] if row else 0

            if current_version < self.SCHEMA_VERSION:
                self._apply_migrations(cursor, current_version)

    def _apply_migrations(self, cursor: sqlite3.Cursor, from_version: int):
        """Apply schema migrations."""
        if from_version < 1:
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT
                )
            """)

            cursor.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (self.SCHEMA_VERSION,)
            )

    def get(self, key: str) -> Optional[str]:
        with self._transaction() as cursor:
            cursor.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = cursor.fetchone()
        return row["value"] if row else None

    def set(self, key: str, value: str) -> None:
        with self._transaction() as cursor:
            cursor.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, utc_now().isoformat()),
            )
        logger.debug(f"Stored {len(value)} bytes under key: {key}")

    def delete(self, key: str) -> bool:
        with self._transaction() as cursor:
            cursor.execute("DELETE FROM kv_store WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def close(self):
        """Close the database connection."""
        if hasattr(self._local, 'conn') and self._local.conn:
            self._local.conn.close()
            self._local.conn = None


class SnapshotStore:
    """
    Whole-collection snapshot persistence.

    Serializes every entry into one JSON blob stored under a single key.
    Failures are logged and never raised: a failed save leaves the
    previous snapshot in place (possibly stale), a failed load yields
    an empty collection.
    """

    def __init__(self, backend: KeyValueBackend, key: str = DEFAULT_SNAPSHOT_KEY):
        self.backend = backend
        self.key = key

    def save(self, entries: Sequence[MemoryEntry]) -> bool:
        """
        Persist the full ordered entry collection.

        Returns:
            True if the snapshot was written
        """
        try:
            blob = json.dumps([entry.to_dict() for entry in entries])
            self.backend.set(self.key, blob)
        except Exception as e:
            logger.error(f"Failed to save memory snapshot: {e}", exc_info=True)
            return False

        logger.debug(
            "Saved memory snapshot",
            extra={"attributes": {"key": self.key, "entries": len(entries)}},
        )
        return True

    def load(self, dimension: Optional[int] = None) -> List[MemoryEntry]:
        """
        Load the entry collection from the backend.

        Args:
            dimension: Embedding dimension every entry must have. A
                snapshot written with a different embedder is rejected.

        Returns:
            The stored entries, or an empty list if the snapshot is
            missing or cannot be read
        """
        try:
            blob = self.backend.get(self.key)
            if blob is None:
                return []

            data = json.loads(blob)
            if not isinstance(data, list):
                raise ValueError(f"Expected a JSON array, got {type(data).__name__}")

            entries = [MemoryEntry.from_dict(item) for item in data]

            if dimension is not None:
                for entry in entries:
                    if len(entry.embedding) != dimension:
                        raise ValueError(
                            f"Entry {entry.id} has a {len(entry.embedding)}-dimensional "
                            f"embedding, expected {dimension}"
                        )
        except Exception as e:
            logger.error(f"Failed to load memory snapshot: {e}", exc_info=True)
            return []

        logger.info(
            f"Loaded {len(entries)} memory entries from snapshot",
            extra={"attributes": {"key": self.key, "entries": len(entries)}},
        )
        return entries

    def close(self):
        self.backend.close()


def build_backend(config: "StorageConfig") -> KeyValueBackend:
    """
    Create the key-value backend named in the storage configuration.

    Args:
        config: Storage configuration

    Returns:
        A backend instance

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = config.backend.lower()

    if backend == "memory":
        return InMemoryBackend()
    if backend == "file":
        return FileBackend(directory=config.path)
    if backend == "sqlite":
        return SQLiteBackend(db_path=config.path)

    raise ValueError(
        f"Unknown storage backend: {config.backend!r} "
        "(expected 'memory', 'file' or 'sqlite')"
    )

"""
Configuration Module - Load and manage memory store configuration.

This module provides support for loading configuration from:
- YAML configuration files (.context-memory.yml)
- Environment variables
- Programmatic configuration

Configuration precedence (highest to lowest):
1. Programmatic configuration (passed as keyword overrides)
2. Environment variables
3. Configuration file
4. Default values
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from .memory.embeddings import DEFAULT_ALPHABET
from .memory.storage import DEFAULT_SNAPSHOT_KEY


logger = logging.getLogger(__name__)


# Default configuration file names (in order of precedence)
CONFIG_FILE_NAMES = [
    ".context-memory.yml",
    ".context-memory.yaml",
    "context-memory.yml",
    "context-memory.yaml",
]

ENV_PREFIX = "CONTEXT_MEMORY_"


@dataclass
class StorageConfig:
    """Configuration for snapshot storage."""

    backend: str = "memory"  # "memory", "file" or "sqlite"
    path: Optional[str] = None  # directory for "file", database for "sqlite"
    key: str = DEFAULT_SNAPSHOT_KEY


@dataclass
class RetrievalConfig:
    """Configuration for search and context assembly."""

    default_limit: int = 10
    default_threshold: float = 0.1
    context_limit: int = 5
    tie_tolerance: float = 0.01


@dataclass
class EmbeddingConfig:
    """Configuration for the default embedding provider."""

    alphabet: str = DEFAULT_ALPHABET


@dataclass
class MemoryConfig:
    """
    Complete configuration for the memory store.

    Example YAML configuration:
        ```yaml
        capacity: 1000

        storage:
          backend: "sqlite"
          path: "~/.context_memory/memory.db"

        retrieval:
          context_limit: 5
          default_threshold: 0.1

        logging:
          level: "INFO"
          json: false
        ```
    """

    capacity: int = 1000
    log_level: str = "INFO"
    json_logs: bool = False

    storage: StorageConfig = field(default_factory=StorageConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "MemoryConfig":
        """Create configuration from dictionary."""
        storage_data = data.get("storage") or {}
        retrieval_data = data.get("retrieval") or {}
        embedding_data = data.get("embedding") or {}
        logging_data = data.get("logging") or {}

        path = storage_data.get("path")
        if path:
            path = os.path.expanduser(str(path))

        return cls(
            capacity=int(data.get("capacity", 1000)),
            log_level=str(logging_data.get("level", "INFO")).upper(),
            json_logs=bool(logging_data.get("json", False)),
            storage=StorageConfig(
                backend=storage_data.get("backend", "memory"),
                path=path,
                key=storage_data.get("key", DEFAULT_SNAPSHOT_KEY),
            ),
            retrieval=RetrievalConfig(
                default_limit=int(retrieval_data.get("default_limit", 10)),
                default_threshold=float(retrieval_data.get("default_threshold", 0.1)),
                context_limit=int(retrieval_data.get("context_limit", 5)),
                tie_tolerance=float(retrieval_data.get("tie_tolerance", 0.01)),
            ),
            embedding=EmbeddingConfig(
                alphabet=embedding_data.get("alphabet", DEFAULT_ALPHABET),
            ),
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "capacity": self.capacity,
            "storage": {
                "backend": self.storage.backend,
                "path": self.storage.path,
                "key": self.storage.key,
            },
            "retrieval": {
                "default_limit": self.retrieval.default_limit,
                "default_threshold": self.retrieval.default_threshold,
                "context_limit": self.retrieval.context_limit,
                "tie_tolerance": self.retrieval.tie_tolerance,
            },
            "embedding": {
                "alphabet": self.embedding.alphabet,
            },
            "logging": {
                "level": self.log_level,
                "json": self.json_logs,
            },
        }


def find_config_file(start_path: Optional[str] = None) -> Optional[Path]:
    """
    Find the configuration file starting from the given path.

    Searches in the following order:
    1. The specified start_path directory
    2. Current working directory
    3. Parent directories up to the root
    4. User home directory

    Args:
        start_path: Directory to start searching from.

    Returns:
        Path to configuration file if found, None otherwise.
    """
    search_dirs = []

    if start_path:
        search_dirs.append(Path(start_path))

    search_dirs.append(Path.cwd())

    current = Path.cwd()
    while current.parent != current:
        current = current.parent
        search_dirs.append(current)

    search_dirs.append(Path.home())

    for directory in search_dirs:
        for config_name in CONFIG_FILE_NAMES:
            config_path = directory / config_name
            if config_path.exists() and config_path.is_file():
                logger.debug(f"Found config file: {config_path}")
                return config_path

    return None


def load_yaml_file(file_path: Path) -> dict:
    """
    Load a YAML configuration file.

    Args:
        file_path: Path to the YAML file.

    Returns:
        Dictionary with configuration data, empty if the file is unusable.
    """
    try:
        with open(file_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Error loading config file {file_path}: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Ignoring config file {file_path}: top level is not a mapping")
        return {}
    return data


def load_config_from_env() -> dict:
    """
    Load configuration from environment variables.

    Supported environment variables:
    - CONTEXT_MEMORY_CAPACITY: Maximum number of entries
    - CONTEXT_MEMORY_BACKEND: Storage backend (memory, file, sqlite)
    - CONTEXT_MEMORY_PATH: Storage directory or database path
    - CONTEXT_MEMORY_KEY: Snapshot storage key
    - CONTEXT_MEMORY_THRESHOLD: Default similarity threshold
    - CONTEXT_MEMORY_LOG_LEVEL: Log level
    - CONTEXT_MEMORY_JSON_LOGS: "1"/"true" for JSON log output

    Returns:
        Dictionary with configuration from environment.
    """
    config: dict = {"storage": {}, "retrieval": {}, "logging": {}}

    if os.environ.get(f"{ENV_PREFIX}CAPACITY"):
        try:
            config["capacity"] = int(os.environ[f"{ENV_PREFIX}CAPACITY"])
        except ValueError:
            pass

    if os.environ.get(f"{ENV_PREFIX}BACKEND"):
        config["storage"]["backend"] = os.environ[f"{ENV_PREFIX}BACKEND"]

    if os.environ.get(f"{ENV_PREFIX}PATH"):
        config["storage"]["path"] = os.environ[f"{ENV_PREFIX}PATH"]

    if os.environ.get(f"{ENV_PREFIX}KEY"):
        config["storage"]["key"] = os.environ[f"{ENV_PREFIX}KEY"]

    if os.environ.get(f"{ENV_PREFIX}THRESHOLD"):
        try:
            config["retrieval"]["default_threshold"] = float(
                os.environ[f"{ENV_PREFIX}THRESHOLD"]
            )
        except ValueError:
            pass

    if os.environ.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config["logging"]["level"] = os.environ[f"{ENV_PREFIX}LOG_LEVEL"]

    if os.environ.get(f"{ENV_PREFIX}JSON_LOGS"):
        config["logging"]["json"] = (
            os.environ[f"{ENV_PREFIX}JSON_LOGS"].lower() in ("1", "true", "yes")
        )

    return config


# Keyword overrides that live in a nested section
_OVERRIDE_SECTIONS = {
    "backend": "storage",
    "path": "storage",
    "key": "storage",
    "default_limit": "retrieval",
    "default_threshold": "retrieval",
    "context_limit": "retrieval",
    "tie_tolerance": "retrieval",
    "alphabet": "embedding",
    "log_level": ("logging", "level"),
    "json_logs": ("logging", "json"),
}


def load_config(
    config_path: Optional[str] = None,
    search_path: Optional[str] = None,
    **overrides: Any,
) -> MemoryConfig:
    """
    Load configuration from all sources.

    Configuration precedence (highest to lowest):
    1. Overrides passed as keyword arguments
    2. Environment variables
    3. Configuration file
    4. Default values

    Args:
        config_path: Optional explicit path to config file.
        search_path: Optional directory to start searching for a config file.
        **overrides: Configuration overrides. None values are ignored.

    Returns:
        Merged MemoryConfig.
    """
    merged_config: dict = {}

    if config_path:
        file_path = Path(config_path)
        if file_path.exists():
            merged_config = _deep_merge(merged_config, load_yaml_file(file_path))
        else:
            logger.warning(f"Config file not found: {config_path}")
    else:
        config_file = find_config_file(search_path)
        if config_file:
            merged_config = _deep_merge(merged_config, load_yaml_file(config_file))

    merged_config = _deep_merge(merged_config, load_config_from_env())

    if overrides:
        override_config: dict = {}
        for key, value in overrides.items():
            if value is None:
                continue
            section = _OVERRIDE_SECTIONS.get(key)
            if section is None:
                override_config[key] = value
            elif isinstance(section, tuple):
                override_config.setdefault(section[0], {})[section[1]] = value
            else:
                override_config.setdefault(section, {})[key] = value
        merged_config = _deep_merge(merged_config, override_config)

    return MemoryConfig.from_dict(merged_config)


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary.
        override: Dictionary with values to override.

    Returns:
        Merged dictionary.
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result

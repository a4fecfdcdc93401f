"""
Pytest configuration and shared fixtures.
"""

import logging
import math
import os
import pytest
from typing import Dict, List

from context_memory.memory import (
    EmbeddingProvider,
    InMemoryBackend,
    MemoryManager,
)


class StubEmbedding(EmbeddingProvider):
    """Embedding provider returning fixed vectors for known texts."""

    def __init__(self, vectors: Dict[str, List[float]], dimension: int = 2):
        self.vectors = vectors
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> List[float]:
        return list(self.vectors.get(text, [0.0] * self._dimension))


def unit(angle_cos: float) -> List[float]:
    """2-d unit vector whose cosine with [1, 0] is ``angle_cos``."""
    return [angle_cos, math.sqrt(1.0 - angle_cos * angle_cos)]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep CONTEXT_MEMORY_* variables from leaking into tests."""
    for name in list(os.environ):
        if name.startswith("CONTEXT_MEMORY_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Remove handlers installed by configure_logging during a test."""
    logger = logging.getLogger("context_memory")
    handlers = list(logger.handlers)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)


@pytest.fixture
def backend():
    """Shared in-memory backend, so a second manager can 'restart' on it."""
    return InMemoryBackend()


@pytest.fixture
def manager(backend):
    """Memory manager with default settings."""
    manager = MemoryManager(backend=backend)
    yield manager
    manager.close()


@pytest.fixture
def stub_vectors():
    """Vectors with known similarities to the query 'q' = [1, 0]."""
    return {
        "q": [1.0, 0.0],
        "exact": [1.0, 0.0],
        "near": unit(0.995),
        "half": unit(0.5),
        "weak": unit(0.05),
        "orthogonal": [0.0, 1.0],
    }


@pytest.fixture
def stub_manager(backend, stub_vectors):
    """Memory manager using the stub embedding."""
    manager = MemoryManager(
        backend=backend,
        embedding_provider=StubEmbedding(stub_vectors),
    )
    yield manager
    manager.close()

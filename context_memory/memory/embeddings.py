"""
Embedding providers for semantic search.

Provides vector embeddings for memory entries to enable
similarity search.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import List, Sequence

logger = logging.getLogger(__name__)


DEFAULT_ALPHABET = "abcdefghijklmnopqrstuvwxyz0123456789 "


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """
    Calculate cosine similarity between two vectors.

    Returns 0.0 when either vector is empty or has zero magnitude, or
    when the dimensions differ.
    """
    if not vec1 or not vec2:
        return 0.0

    if len(vec1) != len(vec2):
        return 0.0

    # Dot product
    dot = sum(a * b for a, b in zip(vec1, vec2))

    # Magnitudes
    mag1 = math.sqrt(sum(a * a for a in vec1))
    mag2 = math.sqrt(sum(b * b for b in vec2))

    if mag1 == 0 or mag2 == 0:
        return 0.0

    return dot / (mag1 * mag2)


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for text.

        Args:
            text: The text to embed

        Returns:
            A list of floats representing the embedding vector
        """
        pass

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors
        """
        return [self.embed(text) for text in texts]

    def similarity(self, vec1: List[float], vec2: List[float]) -> float:
        """
        Calculate similarity between two embedding vectors.

        Args:
            vec1: First embedding vector
            vec2: Second embedding vector

        Returns:
            Cosine similarity, 0.0 for zero or mismatched vectors
        """
        return cosine_similarity(vec1, vec2)

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Get the embedding dimension."""
        pass


class CharFrequencyEmbedding(EmbeddingProvider):
    """
    Character-frequency embedding provider.

    Counts how often each alphabet symbol occurs in the lower-cased
    text and L2-normalizes the counts. This is a stand-in for a real
    semantic model: it is deterministic and needs no external
    libraries, but only captures surface character statistics.

    Characters outside the alphabet are ignored. Text with no alphabet
    characters embeds to the zero vector.
    """

    def __init__(self, alphabet: str = DEFAULT_ALPHABET):
        """
        Initialize the embedding provider.

        Args:
            alphabet: Symbols to count, one dimension each
        """
        if not alphabet:
            raise ValueError("alphabet must not be empty")
        if len(set(alphabet)) != len(alphabet):
            raise ValueError("alphabet must not contain duplicate symbols")

        self._alphabet = alphabet
        self._index = {char: i for i, char in enumerate(alphabet)}

    @property
    def alphabet(self) -> str:
        return self._alphabet

    @property
    def dimension(self) -> int:
        """Get the embedding dimension."""
        return len(self._alphabet)

    def embed(self, text: str) -> List[float]:
        """Generate a character-frequency embedding for text."""
        vector = [0.0] * self.dimension
        if not text:
            return vector

        for char in text.lower():
            index = self._index.get(char)
            if index is not None:
                vector[index] += 1.0

        # L2 normalize
        return self._normalize(vector)

    def _normalize(self, vector: List[float]) -> List[float]:
        """L2 normalize a vector."""
        magnitude = math.sqrt(sum(x * x for x in vector))
        if magnitude == 0:
            return vector
        return [x / magnitude for x in vector]


def get_embedding_provider(alphabet: str = DEFAULT_ALPHABET) -> EmbeddingProvider:
    """
    Get the default embedding provider.

    Args:
        alphabet: Symbols the character-frequency provider counts

    Returns:
        An embedding provider instance
    """
    logger.debug(f"Using character-frequency embeddings ({len(alphabet)} dims)")
    return CharFrequencyEmbedding(alphabet=alphabet)

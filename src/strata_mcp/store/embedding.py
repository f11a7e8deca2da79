"""Embedding service for semantic search.

Provides dense vectors without a model download by feature hashing: every
token is hashed into one of ``dim`` buckets with a sign, and the resulting
vector is L2-normalised. Similar texts share tokens and therefore land close
together under cosine similarity, which is all hybrid search needs.

Embedding Format:
- Dimensions: 384 (default)
- Storage: float32
"""

from __future__ import annotations

import hashlib
import logging
import re

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_DIM = 384
MAX_TEXT_CHARS = 10000

_WORD = re.compile(r"\w+", re.UNICODE)


def tokenize_words(text: str) -> list[str]:
    """Lower-cased word tokens used by both keyword and semantic scoring."""
    return [w.lower() for w in _WORD.findall(text)]


class HashingEmbedder:
    """Deterministic feature-hashing embedder."""

    def __init__(self, dim: int = DEFAULT_DIM) -> None:
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def embed(self, text: str) -> np.ndarray:
        """Embed one text into a unit-length float32 vector (zeros for empty text)."""
        if len(text) > MAX_TEXT_CHARS:
            text = text[:MAX_TEXT_CHARS]

        vec = np.zeros(self._dim, dtype=np.float32)
        for token in tokenize_words(text):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            bucket = int.from_bytes(digest[:4], "little") % self._dim
            sign = 1.0 if digest[4] & 1 else -1.0
            vec[bucket] += sign

        norm = np.linalg.norm(vec)
        if norm > 0:
            vec /= norm
        return vec

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        if not texts:
            return []
        return [self.embed(t) for t in texts]


def similarity(a: np.ndarray, b: np.ndarray, metric: str = "cosine") -> float:
    """Score two vectors; higher is always more similar.

    Args:
        a: First vector.
        b: Second vector.
        metric: ``cosine``, ``euclidean`` (returned as ``1 / (1 + distance)``)
            or ``dotproduct``.

    Returns:
        Similarity score, 0.0 for zero-length cosine inputs.
    """
    if metric == "dotproduct":
        return float(np.dot(a, b))
    if metric == "euclidean":
        return float(1.0 / (1.0 + np.linalg.norm(a - b)))

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.dot(a, b) / (norm_a * norm_b))

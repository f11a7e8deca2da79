"""Ranking for cross-primitive search.

Three modes:
- keyword: BM25 over word tokens
- semantic: cosine similarity of hashed embeddings
- hybrid: reciprocal rank fusion of the two rankings
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass

import numpy as np

from .embedding import HashingEmbedder, tokenize_words
from .records import SearchHit

SEARCH_MODES = ("keyword", "semantic", "hybrid")

BM25_K1 = 1.2
BM25_B = 0.75
RRF_K = 60
SNIPPET_CHARS = 160


@dataclass(eq=False)
class Document:
    """One searchable item: a key of a keyed primitive, or an event."""

    entity: str
    primitive: str
    text: str
    timestamp: int
    embedding: np.ndarray | None = None


def keyword_scores(documents: list[Document], query: str) -> np.ndarray:
    """BM25 score of every document against ``query``."""
    scores = np.zeros(len(documents), dtype=np.float64)
    terms = set(tokenize_words(query))
    if not terms or not documents:
        return scores

    counts = [Counter(tokenize_words(d.text)) for d in documents]
    lengths = np.array([sum(c.values()) for c in counts], dtype=np.float64)
    avg_length = float(lengths.mean()) or 1.0
    n = len(documents)

    for term in terms:
        tf = np.array([c[term] for c in counts], dtype=np.float64)
        df = int(np.count_nonzero(tf))
        if df == 0:
            continue
        idf = math.log(1.0 + (n - df + 0.5) / (df + 0.5))
        norm = BM25_K1 * (1.0 - BM25_B + BM25_B * lengths / avg_length)
        scores += idf * tf * (BM25_K1 + 1.0) / (tf + norm)
    return scores


def semantic_scores(documents: list[Document], query: str, embedder: HashingEmbedder) -> np.ndarray:
    if not documents:
        return np.zeros(0, dtype=np.float64)
    q = embedder.embed(query)
    matrix = np.stack(
        [d.embedding if d.embedding is not None else embedder.embed(d.text) for d in documents]
    )
    # Embeddings are unit length, so the dot product is the cosine.
    return (matrix @ q).astype(np.float64)


def _fuse(*rankings: np.ndarray) -> np.ndarray:
    fused = np.zeros(len(rankings[0]), dtype=np.float64)
    for scores in rankings:
        order = [i for i in np.argsort(-scores, kind="stable") if scores[i] > 0]
        for position, idx in enumerate(order):
            fused[idx] += 1.0 / (RRF_K + position + 1)
    return fused


def _snippet(text: str) -> str | None:
    text = " ".join(text.split())
    if not text:
        return None
    if len(text) <= SNIPPET_CHARS:
        return text
    return text[: SNIPPET_CHARS - 3] + "..."


def rank(
    documents: list[Document],
    query: str,
    *,
    k: int,
    mode: str,
    embedder: HashingEmbedder,
) -> list[SearchHit]:
    """Rank ``documents`` for ``query`` and return the top ``k`` hits.

    Only documents with a positive score are returned. Ranks start at 1.
    """
    if k <= 0 or not documents:
        return []

    if mode == "keyword":
        scores = keyword_scores(documents, query)
    elif mode == "semantic":
        scores = semantic_scores(documents, query, embedder)
    else:
        scores = _fuse(
            keyword_scores(documents, query),
            semantic_scores(documents, query, embedder),
        )

    order = [i for i in np.argsort(-scores, kind="stable") if scores[i] > 0][:k]
    return [
        SearchHit(
            entity=documents[i].entity,
            primitive=documents[i].primitive,
            score=float(scores[i]),
            rank=position + 1,
            snippet=_snippet(documents[i].text),
        )
        for position, i in enumerate(order)
    ]

from __future__ import annotations

import numpy as np
import pytest

from strata_mcp.store.embedding import HashingEmbedder
from strata_mcp.store.search import SNIPPET_CHARS, Document, keyword_scores, rank


@pytest.fixture
def embedder() -> HashingEmbedder:
    return HashingEmbedder()


def _docs() -> list[Document]:
    return [
        Document(entity="user:1", primitive="json", text="user:1 name Alice likes hiking", timestamp=1),
        Document(entity="user:2", primitive="json", text="user:2 name Bob likes chess", timestamp=2),
        Document(entity="note", primitive="kv", text="note groceries milk eggs", timestamp=3),
    ]


def test_keyword_scores_only_matching_documents() -> None:
    scores = keyword_scores(_docs(), "hiking")
    assert scores[0] > 0
    assert scores[1] == 0 and scores[2] == 0


def test_keyword_scores_empty_query() -> None:
    assert np.all(keyword_scores(_docs(), "   ") == 0)


@pytest.mark.parametrize("mode", ["keyword", "semantic", "hybrid"])
def test_best_match_ranks_first(mode: str, embedder: HashingEmbedder) -> None:
    hits = rank(_docs(), "Alice hiking", k=10, mode=mode, embedder=embedder)
    assert hits[0].entity == "user:1"
    assert [h.rank for h in hits] == list(range(1, len(hits) + 1))
    assert all(h.score > 0 for h in hits)


def test_k_limits_results(embedder: HashingEmbedder) -> None:
    hits = rank(_docs(), "name likes", k=1, mode="keyword", embedder=embedder)
    assert len(hits) == 1


def test_no_match_returns_nothing(embedder: HashingEmbedder) -> None:
    assert rank(_docs(), "zebra", k=10, mode="keyword", embedder=embedder) == []
    assert rank([], "zebra", k=10, mode="hybrid", embedder=embedder) == []
    assert rank(_docs(), "Alice", k=0, mode="keyword", embedder=embedder) == []


def test_snippet_is_truncated(embedder: HashingEmbedder) -> None:
    long_doc = Document(entity="big", primitive="kv", text="big " + "word " * 200, timestamp=1)
    (hit,) = rank([long_doc], "big", k=1, mode="keyword", embedder=embedder)
    assert hit.snippet is not None
    assert len(hit.snippet) == SNIPPET_CHARS
    assert hit.snippet.endswith("...")


def test_embedder_is_deterministic_and_normalised(embedder: HashingEmbedder) -> None:
    a = embedder.embed("hello world")
    b = embedder.embed("hello world")
    assert np.array_equal(a, b)
    assert float(np.linalg.norm(a)) == pytest.approx(1.0, rel=1e-5)
    assert not np.any(embedder.embed(""))

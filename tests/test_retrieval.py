"""Tests for retrieval components."""

import pytest

from conftest import KeywordEmbeddingService
from retrieval.embedder import EmbeddingCache
from retrieval.knowledge_base import (
    KnowledgeBase,
    KnowledgeFragment,
    Retriever,
    cosine_similarity,
    format_fragments,
)


@pytest.fixture
def knowledge_dir(tmp_path):
    (tmp_path / "policies.txt").write_text(
        "Refund policy: refunds are processed within seven business days.", encoding="utf-8"
    )
    (tmp_path / "pricing.txt").write_text("Website price starts at 50k.", encoding="utf-8")
    (tmp_path / "services.txt").write_text("WhatsApp service bots and website builds.", encoding="utf-8")
    (tmp_path / "about.txt").write_text("   ", encoding="utf-8")
    return tmp_path


@pytest.fixture
def knowledge_base(knowledge_dir):
    return KnowledgeBase(KeywordEmbeddingService(), directory=str(knowledge_dir))


# ── Knowledge Base ────────────────────────────────────

class TestKnowledgeBase:
    def test_load_skips_missing_and_empty(self, knowledge_base):
        ids = [fragment.id for fragment in knowledge_base.load_documents()]
        assert ids == ["chunk:services", "chunk:pricing", "chunk:policies"]

    def test_implements_retriever(self, knowledge_base):
        assert isinstance(knowledge_base, Retriever)

    async def test_ranks_by_similarity(self, knowledge_base):
        result = await knowledge_base.retrieve("refund policy", top_k=3, min_score=0.2)
        assert result.scored[0].id == "chunk:policies"
        assert result.best_score == pytest.approx(result.scored[0].score)
        assert [f.id for f in result.chunks] == ["chunk:policies"]
        assert all(f.score >= 0.2 for f in result.chunks)

    async def test_top_k_limits_scored(self, knowledge_base):
        result = await knowledge_base.retrieve("website price", top_k=1, min_score=0.0)
        assert len(result.scored) == 1
        assert result.scored[0].id == "chunk:pricing"

    async def test_scored_kept_below_threshold(self, knowledge_base):
        result = await knowledge_base.retrieve("refund policy", top_k=3, min_score=0.99)
        assert result.chunks == []
        assert result.scored

    async def test_blank_query(self, knowledge_base):
        result = await knowledge_base.retrieve("   ")
        assert result.scored == []
        assert result.best_score == 0.0
        assert knowledge_base.embedding_service.calls == []

    async def test_index_built_once(self, knowledge_base):
        await knowledge_base.retrieve("refund")
        await knowledge_base.retrieve("price")
        documents = [c for c in knowledge_base.embedding_service.calls if c not in ("refund", "price")]
        assert len(documents) == 3

    async def test_reset_reloads(self, knowledge_base, knowledge_dir):
        await knowledge_base.retrieve("refund")
        (knowledge_dir / "faqs.txt").write_text("Support hours are 10 to 7.", encoding="utf-8")
        knowledge_base.reset()
        await knowledge_base.retrieve("refund")
        ids = [fragment.id for fragment, _ in knowledge_base._index]
        assert "chunk:faqs" in ids

    async def test_empty_directory(self, tmp_path):
        knowledge_base = KnowledgeBase(KeywordEmbeddingService(), directory=str(tmp_path))
        result = await knowledge_base.retrieve("refund policy")
        assert result.scored == []
        assert result.chunks == []


def test_cosine_similarity():
    assert cosine_similarity([1, 0], [1, 0]) == pytest.approx(1.0)
    assert cosine_similarity([1, 0], [0, 1]) == pytest.approx(0.0)
    assert cosine_similarity([0, 0], [1, 1]) == 0.0


def test_format_fragments_adds_marker():
    text = format_fragments([
        KnowledgeFragment(id="policies", title="Policies", text="Refunds in 7 days."),
        KnowledgeFragment(id="chunk:faqs", text="Open daily."),
    ])
    assert text == "[chunk:policies] Policies: Refunds in 7 days.\n[chunk:faqs] Open daily."


# ── Embedding Cache ───────────────────────────────────

class TestEmbeddingCache:
    def test_hit_and_miss(self):
        cache = EmbeddingCache(maxsize=2)
        assert cache.get("refund") is None
        cache.put("refund", [1.0])
        assert cache.get(" Refund ") == [1.0]
        assert cache.stats() == {"size": 1, "hits": 1, "misses": 1}

    def test_evicts_least_recent(self):
        cache = EmbeddingCache(maxsize=2)
        cache.put("a", [1.0])
        cache.put("b", [2.0])
        cache.get("a")
        cache.put("c", [3.0])
        assert cache.get("b") is None
        assert cache.get("a") == [1.0]

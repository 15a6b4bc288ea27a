"""
Knowledge Base retrieval for the sales assistant.

Loads a small set of company documents, embeds them once and ranks them
against a query by cosine similarity.
"""

import asyncio
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from .embedder import EmbeddingService

logger = logging.getLogger(__name__)

FRAGMENT_PREFIX = "chunk:"

# (name, title, filename)
DEFAULT_DOCUMENTS: List[Tuple[str, str, str]] = [
    ("about", "About Company", "about.txt"),
    ("services", "Services", "services.txt"),
    ("pricing", "Pricing", "pricing.txt"),
    ("policies", "Policies", "policies.txt"),
    ("faqs", "FAQs", "faqs.txt"),
]


@dataclass
class KnowledgeFragment:
    """A retrievable unit of source text."""
    id: str
    text: str
    title: Optional[str] = None
    score: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {"id": self.id, "title": self.title, "text": self.text, "score": self.score}


@dataclass
class RetrievalResult:
    """Ranked fragments for a query."""
    query: str
    top_k: int = 0
    min_score: float = 0.0
    scored: List[KnowledgeFragment] = field(default_factory=list)
    chunks: List[KnowledgeFragment] = field(default_factory=list)

    @property
    def best_score(self) -> float:
        return self.scored[0].score if self.scored else 0.0


@runtime_checkable
class Retriever(Protocol):
    """Retrieval collaborator: query -> ranked fragments."""

    async def retrieve(self, query: str, top_k: int = 3, min_score: float = 0.2) -> RetrievalResult:
        ...


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def format_fragments(fragments: List[KnowledgeFragment]) -> str:
    """Render fragments for the prompt, each prefixed by its citation marker."""
    lines = []
    for fragment in fragments:
        marker = fragment.id if fragment.id.startswith(FRAGMENT_PREFIX) else f"{FRAGMENT_PREFIX}{fragment.id}"
        title = f"{fragment.title}: " if fragment.title else ""
        lines.append(f"[{marker}] {title}{fragment.text}")
    return "\n".join(lines)


class KnowledgeBase:
    """
    In-process vector index over the company documents.

    The index is built lazily on first retrieval and kept for the
    process lifetime.
    """

    def __init__(
        self,
        embedding_service: EmbeddingService,
        directory: str = "./knowledge",
        documents: Optional[List[Tuple[str, str, str]]] = None,
    ):
        self.embedding_service = embedding_service
        self.directory = Path(directory)
        self.documents = documents or DEFAULT_DOCUMENTS
        self._index: Optional[List[Tuple[KnowledgeFragment, List[float]]]] = None
        self._lock = asyncio.Lock()

    def load_documents(self) -> List[KnowledgeFragment]:
        """Read the document files; missing or empty files are skipped."""
        fragments = []
        for name, title, filename in self.documents:
            path = self.directory / filename
            if not path.exists():
                logger.debug(f"Knowledge file missing: {path}")
                continue
            text = path.read_text(encoding="utf-8").strip()
            if not text:
                continue
            fragments.append(KnowledgeFragment(id=f"{FRAGMENT_PREFIX}{name}", title=title, text=text))
        return fragments

    async def _get_index(self) -> List[Tuple[KnowledgeFragment, List[float]]]:
        if self._index is not None:
            return self._index
        async with self._lock:
            if self._index is None:
                fragments = self.load_documents()
                vectors = await self.embedding_service.embed_texts([f.text for f in fragments])
                self._index = list(zip(fragments, vectors))
                logger.info(f"Knowledge index built: {len(self._index)} documents from {self.directory}")
        return self._index

    async def retrieve(self, query: str, top_k: int = 3, min_score: float = 0.2) -> RetrievalResult:
        """
        Rank documents against a query.

        Returns:
            RetrievalResult where `scored` is the top_k list and `chunks`
            is that list filtered at min_score.
        """
        if not query or not query.strip():
            return RetrievalResult(query="", top_k=0, min_score=0.0)

        query_vector, index = await asyncio.gather(
            self.embedding_service.embed_text(query),
            self._get_index(),
        )

        scored = [
            KnowledgeFragment(
                id=fragment.id,
                title=fragment.title,
                text=fragment.text,
                score=cosine_similarity(query_vector, vector),
            )
            for fragment, vector in index
        ]
        scored.sort(key=lambda f: f.score, reverse=True)
        scored = scored[:top_k]
        chunks = [f for f in scored if f.score >= min_score]

        return RetrievalResult(query=query, top_k=top_k, min_score=min_score, scored=scored, chunks=chunks)

    def reset(self):
        """Drop the index so the next retrieval reloads the documents."""
        self._index = None

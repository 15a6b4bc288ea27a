"""
Retrieval Module for the sales assistant.

This module provides knowledge retrieval:
- Embedding generation (OpenAI/Bedrock)
- In-process document index with cosine ranking
- Fragment formatting with citation markers
"""

from .embedder import EmbeddingService, EmbeddingConfig, EmbeddingProvider
from .knowledge_base import (
    KnowledgeBase,
    KnowledgeFragment,
    RetrievalResult,
    Retriever,
    format_fragments,
)

__all__ = [
    "EmbeddingService",
    "EmbeddingConfig",
    "EmbeddingProvider",
    "KnowledgeBase",
    "KnowledgeFragment",
    "RetrievalResult",
    "Retriever",
    "format_fragments",
]

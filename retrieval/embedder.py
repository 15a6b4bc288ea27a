"""
Embeddings for knowledge retrieval.

Customer messages are embedded once per turn and the knowledge documents
once per process, so only single-text lookups go through the cache.
"""

import asyncio
import json
import logging
from collections import OrderedDict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

# Titan rejects inputs past ~8K tokens
TITAN_MAX_CHARS = 25000


class EmbeddingCache:
    """LRU cache of message embeddings keyed by whitespace/case-normalized text."""

    def __init__(self, maxsize: int = 500):
        self.maxsize = maxsize
        self._entries: "OrderedDict[str, List[float]]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def normalize(text: str) -> str:
        return " ".join(text.lower().split())

    def get(self, text: str) -> Optional[List[float]]:
        key = self.normalize(text)
        vector = self._entries.get(key)
        if vector is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return vector

    def put(self, text: str, embedding: List[float]) -> None:
        key = self.normalize(text)
        self._entries[key] = embedding
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            self._entries.popitem(last=False)

    def stats(self) -> Dict[str, int]:
        return {"size": len(self._entries), "hits": self.hits, "misses": self.misses}


class EmbeddingProvider(Enum):
    OPENAI = "openai"
    BEDROCK_TITAN = "bedrock_titan"


@dataclass
class EmbeddingConfig:
    provider: EmbeddingProvider = EmbeddingProvider.OPENAI
    model_id: str = "text-embedding-3-small"
    batch_size: int = 25
    aws_region: str = "us-east-1"
    openai_api_key: Optional[str] = None


class EmbeddingService:
    """
    Embeds customer messages and knowledge documents.

    The SDK client is created up front; calls are blocking and run in a
    worker thread. `cache_size` > 0 enables the message cache.
    """

    def __init__(self, config: Optional[EmbeddingConfig] = None, cache_size: int = 0):
        self.config = config or EmbeddingConfig()
        self.cache: Optional[EmbeddingCache] = EmbeddingCache(cache_size) if cache_size > 0 else None
        self._client = self._create_client()
        self._embed_batch: Callable[[List[str]], List[List[float]]] = (
            self._titan_batch
            if self.config.provider == EmbeddingProvider.BEDROCK_TITAN
            else self._openai_batch
        )

    def _create_client(self):
        provider = self.config.provider
        try:
            if provider == EmbeddingProvider.BEDROCK_TITAN:
                import boto3
                client = boto3.client("bedrock-runtime", region_name=self.config.aws_region)
            else:
                from openai import OpenAI
                client = OpenAI(api_key=self.config.openai_api_key)
        except Exception as e:
            logger.error(f"Could not create {provider.value} embedding client: {e}")
            raise
        logger.info(f"Embedding client ready: {provider.value} ({self.config.model_id})")
        return client

    async def embed_text(self, text: str) -> List[float]:
        """Embed one customer message, consulting the cache first."""
        if self.cache is not None:
            cached = self.cache.get(text)
            if cached is not None:
                return cached

        vector = (await asyncio.to_thread(self._embed_batch, [text]))[0]

        if self.cache is not None:
            self.cache.put(text, vector)
        return vector

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        """Embed knowledge documents in `batch_size` groups, preserving order."""
        vectors: List[List[float]] = []
        size = max(1, self.config.batch_size)
        for start in range(0, len(texts), size):
            vectors.extend(await asyncio.to_thread(self._embed_batch, texts[start:start + size]))
        return vectors

    def _titan_batch(self, texts: List[str]) -> List[List[float]]:
        # Titan takes one input per request
        vectors = []
        for text in texts:
            try:
                response = self._client.invoke_model(
                    modelId=self.config.model_id,
                    body=json.dumps({"inputText": text[:TITAN_MAX_CHARS]}),
                    contentType="application/json",
                    accept="application/json",
                )
            except Exception as e:
                logger.error(f"Titan embedding request failed: {e}")
                raise
            vectors.append(json.loads(response["body"].read())["embedding"])
        return vectors

    def _openai_batch(self, texts: List[str]) -> List[List[float]]:
        try:
            response = self._client.embeddings.create(model=self.config.model_id, input=texts)
        except Exception as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise
        logger.debug(f"Embedded {len(texts)} texts with {self.config.model_id}")
        return [item.embedding for item in response.data]

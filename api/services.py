"""
Service initialization and dependency injection for the sales assistant API.

Creates and manages all service instances used by the API.
"""

import asyncio
import logging
from typing import Dict, Optional

from config.settings import get_settings, Settings
from dialogue.state_store import InMemoryStateStore
from retrieval.embedder import EmbeddingService, EmbeddingConfig, EmbeddingProvider
from retrieval.knowledge_base import KnowledgeBase
from llm.orchestrator import TurnOrchestrator
from llm.providers import BedrockProvider, OpenAIProvider, TextGenerator
from .channels.whatsapp import MetaCloudWhatsApp, WhatsAppAdminNotifier
from .handoff.manager import HandoffManager

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.state_store: Optional[InMemoryStateStore] = None
        self.embedding_service: Optional[EmbeddingService] = None
        self.knowledge_base: Optional[KnowledgeBase] = None
        self.generator: Optional[TextGenerator] = None
        self.whatsapp: Optional[MetaCloudWhatsApp] = None
        self.handoff_manager: Optional[HandoffManager] = None
        self.orchestrator: Optional[TurnOrchestrator] = None
        self._user_locks: Dict[str, asyncio.Lock] = {}
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services with provider: {self.settings.llm_provider}")

        self.state_store = InMemoryStateStore(history_limit=self.settings.history_limit)
        self._init_channels()

        try:
            self._init_embedding()
            self._init_knowledge_base()
            self._init_generator()
            self._init_orchestrator()
            self._initialized = True
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            self._initialized = True
            logger.warning("API starting in degraded mode")

    def _init_channels(self):
        """Initialize WhatsApp and the admin notification sink."""
        s = self.settings

        notify = None
        if s.whatsapp_configured:
            self.whatsapp = MetaCloudWhatsApp(s.whatsapp_api_token, s.whatsapp_phone_number_id)
            if s.admin_number:
                notify = WhatsAppAdminNotifier(self.whatsapp, s.admin_number).notify
            logger.info("WhatsApp channel ready")
        else:
            logger.warning("WhatsApp credentials not set, outbound messages disabled")

        self.handoff_manager = HandoffManager(notify=notify)

    def _init_embedding(self):
        """Initialize embedding service."""
        s = self.settings

        provider = EmbeddingProvider.BEDROCK_TITAN if s.is_bedrock else EmbeddingProvider.OPENAI
        config = EmbeddingConfig(
            provider=provider,
            model_id=s.embed_model_id,
            aws_region=s.aws_region,
            openai_api_key=s.openai_api_key,
        )
        self.embedding_service = EmbeddingService(config, cache_size=s.embedding_cache_size)
        logger.info(f"Embedding service ready: {provider.value}")

    def _init_knowledge_base(self):
        """Initialize the knowledge base; the index is built on first query."""
        self.knowledge_base = KnowledgeBase(
            embedding_service=self.embedding_service,
            directory=self.settings.knowledge_directory,
        )

    def _init_generator(self):
        """Initialize the generation provider."""
        s = self.settings

        if s.is_bedrock:
            self.generator = BedrockProvider(
                model_id=s.llm_model_id,
                region=s.aws_region,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
            )
        else:
            self.generator = OpenAIProvider(
                api_key=s.openai_api_key,
                model_id=s.llm_model_id,
                max_tokens=s.max_tokens,
                temperature=s.temperature,
            )
        logger.info(f"Generator ready: {s.llm_provider} ({s.llm_model_id})")

    def _init_orchestrator(self):
        """Initialize the turn orchestrator."""
        s = self.settings

        self.orchestrator = TurnOrchestrator(
            state_store=self.state_store,
            retriever=self.knowledge_base,
            generator=self.generator,
            brand_name=s.brand_name,
            rag_top_k=s.rag_top_k,
            rag_min_score=s.rag_min_score,
            rag_max_chunks=s.rag_max_chunks,
            history_window=s.history_window,
        )
        self.orchestrator.set_handoff_manager(self.handoff_manager)
        logger.info("Turn orchestrator ready")

    def user_lock(self, user_id: str) -> asyncio.Lock:
        """Per-user lock serialising turns for one user."""
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        return lock

    def release_user_lock(self, user_id: str) -> None:
        """Forget an idle user lock once the conversation is cleared."""
        lock = self._user_locks.get(user_id)
        if lock is not None and not lock.locked():
            del self._user_locks[user_id]

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.orchestrator is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "embedding": self.embedding_service is not None,
            "embedding_cache": self.embedding_service.cache.stats()
            if self.embedding_service and self.embedding_service.cache else None,
            "knowledge_base": self.knowledge_base is not None,
            "generator": self.generator is not None,
            "whatsapp": self.whatsapp is not None,
            "admin_notifications": bool(self.handoff_manager and self.handoff_manager.is_configured),
            "orchestrator": self.orchestrator is not None,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()

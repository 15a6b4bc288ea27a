"""Shared fixtures for sales assistant tests."""

import os
from typing import Callable, List, Optional, Sequence, Union

import pytest
from fastapi.testclient import TestClient

# Ensure we use test settings
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("WHATSAPP_VERIFY_TOKEN", "verify-me")

from api.channels.base import ChannelMessage, ChannelProvider, ChannelResponse
from dialogue.state_store import InMemoryStateStore
from llm.orchestrator import TurnOrchestrator
from llm.providers.base import GenerationContext, GenerationResult
from retrieval.knowledge_base import KnowledgeFragment, RetrievalResult


# ── Fakes ─────────────────────────────────────────────

class ScriptedGenerator:
    """Returns canned replies in order; the last one repeats."""

    def __init__(self, replies: Union[str, Sequence[str]] = ""):
        self.replies: List[str] = [replies] if isinstance(replies, str) else list(replies)
        self.calls: List[dict] = []
        self.error: Optional[Exception] = None

    async def generate(self, instructions: str, message: str, context: GenerationContext) -> GenerationResult:
        self.calls.append({"instructions": instructions, "message": message, "context": context})
        if self.error is not None:
            raise self.error
        if not self.replies:
            return GenerationResult(final_output="")
        index = min(len(self.calls) - 1, len(self.replies) - 1)
        return GenerationResult(final_output=self.replies[index])


class StaticRetriever:
    """Returns fixed fragments with fixed scores."""

    def __init__(self, fragments: Optional[List[KnowledgeFragment]] = None):
        self.fragments = fragments or []
        self.queries: List[str] = []

    async def retrieve(self, query: str, top_k: int = 3, min_score: float = 0.2) -> RetrievalResult:
        self.queries.append(query)
        scored = sorted(self.fragments, key=lambda f: f.score, reverse=True)[:top_k]
        chunks = [f for f in scored if f.score >= min_score]
        return RetrievalResult(query=query, top_k=top_k, min_score=min_score, scored=scored, chunks=chunks)


class RecordingNotifier:
    def __init__(self, result: bool = True, error: Optional[Exception] = None):
        self.sent: List[str] = []
        self.result = result
        self.error = error

    async def notify(self, text: str) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append(text)
        return self.result


class RecordingChannel(ChannelProvider):
    def __init__(self):
        self.sent: List[ChannelMessage] = []

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        self.sent.append(message)
        return ChannelResponse(success=True, message_id=f"wamid.{len(self.sent)}")

    async def health_check(self) -> bool:
        return True


class KeywordEmbeddingService:
    """Bag-of-keywords vectors, enough for cosine ranking in tests."""

    VOCABULARY = ["refund", "policy", "price", "service", "website", "whatsapp"]

    def __init__(self):
        self.calls: List[str] = []

    def _vector(self, text: str) -> List[float]:
        lowered = text.lower()
        return [float(lowered.count(word)) for word in self.VOCABULARY]

    async def embed_text(self, text: str) -> List[float]:
        self.calls.append(text)
        return self._vector(text)

    async def embed_texts(self, texts: List[str]) -> List[List[float]]:
        self.calls.extend(texts)
        return [self._vector(text) for text in texts]


# ── Fixtures ──────────────────────────────────────────

@pytest.fixture
def policy_fragments():
    return [
        KnowledgeFragment(
            id="chunk:policies",
            title="Policies",
            text="Refunds are processed within seven business days of approval.",
            score=0.81,
        ),
        KnowledgeFragment(
            id="chunk:faqs",
            title="FAQs",
            text="Support hours are 10am to 7pm, Monday to Saturday.",
            score=0.47,
        ),
        KnowledgeFragment(id="chunk:about", title="About Company", text="We build software.", score=0.12),
    ]


@pytest.fixture
def generator():
    return ScriptedGenerator("Theek hai.")


@pytest.fixture
def retriever(policy_fragments):
    return StaticRetriever(policy_fragments)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def state_store():
    return InMemoryStateStore()


@pytest.fixture
def make_orchestrator(state_store) -> Callable[..., TurnOrchestrator]:
    def _make(generator, retriever=None, handoff_manager=None, **kwargs) -> TurnOrchestrator:
        orchestrator = TurnOrchestrator(
            state_store=state_store,
            retriever=retriever or StaticRetriever(),
            generator=generator,
            **kwargs,
        )
        if handoff_manager is not None:
            orchestrator.set_handoff_manager(handoff_manager)
        return orchestrator
    return _make


@pytest.fixture
def services(generator, retriever, notifier, channel, state_store, make_orchestrator, monkeypatch):
    """Services container wired with fakes instead of cloud clients."""
    from api import services as services_module
    from api.handoff.manager import HandoffManager
    from config.settings import get_settings

    svc = services_module.Services()
    svc.settings = get_settings()
    svc.state_store = state_store
    svc.knowledge_base = retriever
    svc.generator = generator
    svc.whatsapp = channel
    svc.handoff_manager = HandoffManager(notify=notifier.notify)
    svc.orchestrator = make_orchestrator(generator, retriever, handoff_manager=svc.handoff_manager)
    svc._initialized = True

    monkeypatch.setattr(services_module, "_services", svc)
    return svc


@pytest.fixture
def client(services):
    """Create a FastAPI test client."""
    from api.main import app
    return TestClient(app)

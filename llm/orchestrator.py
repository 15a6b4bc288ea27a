"""
Turn Orchestrator for the sales assistant.

Runs one incoming message through the dialogue state machine: history,
classification, topic shift, clarification, answer consumption, routing,
retrieval, generation and reply post-processing.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from dialogue.classifier import LexicalClassifier, MessageClassifier, apply_slot_updates
from dialogue.planner import QuestionPlanner
from dialogue.state import ConversationState, Stage
from dialogue.state_store import StateRepository
from dialogue.topic import TopicShift, TopicShiftDetector
from retrieval.knowledge_base import RetrievalResult, Retriever, format_fragments

from .prompt_templates import CannedReply, PromptTemplates, PromptType
from .providers.base import GenerationContext, TextGenerator
from .reply_processor import ReplyOutcome, ReplyPostProcessor, trailing_question

logger = logging.getLogger(__name__)


class RouteDecision(Enum):
    """How a turn was answered."""
    RAG_QUERY = "RAG_QUERY"
    SALES_CONTINUE = "SALES_CONTINUE"
    CLARIFY = "CLARIFY"
    NO_KNOWLEDGE = "NO_KNOWLEDGE"


@dataclass
class TurnRequest:
    """One incoming message."""
    user_id: str
    message: str


@dataclass
class TurnResult:
    """Reply for one turn plus routing metadata."""
    reply: str
    user_id: str
    route: RouteDecision
    stage: str
    topic: Optional[str] = None
    used_fragment_ids: List[str] = field(default_factory=list)
    dropped_lines: int = 0
    processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "reply": self.reply,
            "user_id": self.user_id,
            "route": self.route.value,
            "stage": self.stage,
            "topic": self.topic,
            "used_fragment_ids": self.used_fragment_ids,
            "dropped_lines": self.dropped_lines,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


class TurnOrchestrator:
    """
    Orchestrates one dialogue turn.

    Pipeline:
    1. Record the user message
    2. Classify the raw message (pre-mutation)
    3. Detect and apply a topic shift
    4. Short-circuit unclear input with a clarification request
    5. Consume the answer to the pending question
    6. Passive slot extraction and stage advance
    7. Route: knowledge query or sales flow
    8. Retrieve, gate on score, generate
    9. Post-process the reply
    10. Record the reply and its trailing question

    Collaborator failures propagate; the transport substitutes an apology.
    """

    def __init__(
        self,
        state_store: StateRepository,
        retriever: Retriever,
        generator: TextGenerator,
        classifier: Optional[MessageClassifier] = None,
        planner: Optional[QuestionPlanner] = None,
        topic_detector: Optional[TopicShiftDetector] = None,
        reply_processor: Optional[ReplyPostProcessor] = None,
        brand_name: str = "Consulting Desk",
        rag_top_k: int = 3,
        rag_min_score: float = 0.22,
        rag_max_chunks: int = 2,
        history_window: int = 15,
    ):
        """
        Initialize the orchestrator.

        Args:
            state_store: Per-user state repository
            retriever: Knowledge retrieval collaborator
            generator: Text generation collaborator
            classifier: Message classifier, keyword-based by default
            planner: Question planner
            topic_detector: Topic shift detector
            reply_processor: Reply post-processor
            brand_name: Brand name for prompts
            rag_top_k: Fragments requested from retrieval
            rag_min_score: Minimum best score for a knowledge answer
            rag_max_chunks: Fragments permitted as generation context
            history_window: Turns of history in the prompt
        """
        self.state_store = state_store
        self.retriever = retriever
        self.generator = generator
        self.classifier = classifier or LexicalClassifier()
        self.planner = planner or QuestionPlanner(self.classifier)
        self.topic_detector = topic_detector or TopicShiftDetector()
        self.reply_processor = reply_processor or ReplyPostProcessor(self.planner)
        self.brand_name = brand_name
        self.rag_top_k = rag_top_k
        self.rag_min_score = rag_min_score
        self.rag_max_chunks = rag_max_chunks
        self.history_window = history_window

        # Optional escalation sink (set via set_handoff_manager())
        self._handoff_manager = None

    def set_handoff_manager(self, manager: Any) -> None:
        """Attach the handoff manager used for lead escalation."""
        self._handoff_manager = manager

    async def process(self, request: TurnRequest) -> TurnResult:
        """
        Process one incoming message.

        Callers must not run two turns for the same user concurrently.
        """
        start_time = time.time()
        message = str(request.message or "")
        state = self.state_store.get(request.user_id)

        # Step 1: record the message
        state.append_history("user", message)

        # Step 2: classification on the raw message, before any mutation
        classification = self.classifier.classify(message)
        had_pending_question = state.last_question_type is not None

        # Step 3: topic shift
        shift = self.topic_detector.detect(state, message)
        self.topic_detector.apply(state, shift)

        # Step 4: clarification
        treat_as_unclear = classification.unclear and not state.pending_clarification
        state.pending_clarification = False
        if treat_as_unclear:
            state.pending_clarification = True
            reply = CannedReply.CLARIFICATION
            if shift.shifted and shift.note:
                reply = f"{shift.note}\n{reply}"
            self._log_route(state, RouteDecision.CLARIFY)
            return await self._finish(state, reply, RouteDecision.CLARIFY, start_time)

        # Step 5: consume the answer to the pending question
        if had_pending_question:
            self.planner.apply_answer(
                state, state.last_question_type, message, prior_question=state.last_question
            )
            state.last_question_type = None

        # Step 6: passive extraction and stage advance
        apply_slot_updates(state, self.classifier.extract_slot_updates(message))
        self.planner.advance_stage(state)

        # Step 7: routing
        knowledge_mode = (
            classification.knowledge_query
            and not classification.short_acknowledgement
            and not had_pending_question
        )
        route = RouteDecision.RAG_QUERY if knowledge_mode else RouteDecision.SALES_CONTINUE
        self._log_route(state, route)

        if knowledge_mode:
            return await self._knowledge_turn(state, message, shift, start_time)
        return await self._sales_turn(state, message, shift, start_time)

    # ── Routes ────────────────────────────────────────────

    async def _knowledge_turn(
        self,
        state: ConversationState,
        message: str,
        shift: TopicShift,
        start_time: float,
    ) -> TurnResult:
        result = await self.retriever.retrieve(
            message, top_k=self.rag_top_k, min_score=self.rag_min_score
        )
        best_score = result.best_score
        permitted = result.chunks[: self.rag_max_chunks]
        self._log_retrieval(result, permitted, best_score)

        if not permitted or best_score < self.rag_min_score:
            return await self._finish(
                state, CannedReply.NO_KNOWLEDGE, RouteDecision.NO_KNOWLEDGE, start_time
            )

        context = self._build_context(state, format_fragments(permitted), [f.id for f in permitted])
        raw = await self._generate(state, message, context, PromptType.KNOWLEDGE)
        outcome = self.reply_processor.process(
            state, raw, knowledge_mode=True, fragments=permitted, topic_note=shift.note
        )
        return await self._finish(state, outcome.text, RouteDecision.RAG_QUERY, start_time, outcome)

    async def _sales_turn(
        self,
        state: ConversationState,
        message: str,
        shift: TopicShift,
        start_time: float,
    ) -> TurnResult:
        raw = ""
        if message.strip():
            context = self._build_context(state, "", [])
            raw = await self._generate(state, message, context, PromptType.SALES_FLOW)
        else:
            logger.info(f"Blank message from {state.user_id}, skipping generation")

        outcome = self.reply_processor.process(state, raw, topic_note=shift.note)
        return await self._finish(state, outcome.text, RouteDecision.SALES_CONTINUE, start_time, outcome)

    # ── Helpers ───────────────────────────────────────────

    def _build_context(
        self, state: ConversationState, retrieved_context: str, fragment_ids: List[str]
    ) -> GenerationContext:
        next_type = self.planner.next_question_type(state)
        return GenerationContext(
            user_id=state.user_id,
            memory=state.format_history(self.history_window),
            retrieved_context=retrieved_context,
            fragment_ids=fragment_ids,
            stage=state.stage.value,
            slots={name.value: value.value for name, value in state.slots.items()},
            last_question=state.last_question,
            next_question_type=next_type.value if next_type else None,
        )

    async def _generate(
        self,
        state: ConversationState,
        message: str,
        context: GenerationContext,
        prompt_type: PromptType,
    ) -> str:
        next_question = self.planner.next_question(state)
        instructions = PromptTemplates.build_system_prompt(
            state_summary=state.summary(),
            history=context.memory,
            history_window=self.history_window,
            prompt_type=prompt_type,
            brand_name=self.brand_name,
            next_question=next_question.text if next_question else None,
        )
        result = await self.generator.generate(instructions, message, context)
        return (result.final_output or "").strip()

    async def _finish(
        self,
        state: ConversationState,
        reply: str,
        route: RouteDecision,
        start_time: float,
        outcome: Optional[ReplyOutcome] = None,
    ) -> TurnResult:
        """Record the reply, persist its trailing question and save state."""
        state.append_history("bot", reply)
        question, question_type = trailing_question(reply)
        state.last_question = question
        state.last_question_type = question_type

        reached_handoff = state.stage is Stage.HANDOFF and not state.handoff_notified
        if reached_handoff:
            state.handoff_notified = True
        self.state_store.put(state)

        if reached_handoff:
            await self._escalate(state)

        processing_time = (time.time() - start_time) * 1000
        return TurnResult(
            reply=reply,
            user_id=state.user_id,
            route=route,
            stage=state.stage.value,
            topic=state.topic.value if state.topic else None,
            used_fragment_ids=outcome.used_fragment_ids if outcome else [],
            dropped_lines=outcome.dropped_lines if outcome else 0,
            processing_time_ms=round(processing_time, 2),
        )

    async def _escalate(self, state: ConversationState) -> None:
        if self._handoff_manager is None:
            return
        try:
            result = await self._handoff_manager.notify_lead(state)
            logger.info(f"Handoff escalation for {state.user_id}: {result.message}")
        except Exception as e:
            logger.error(f"Handoff escalation failed for {state.user_id}: {e}")

    def _log_route(self, state: ConversationState, route: RouteDecision) -> None:
        question_type = getattr(state.last_question_type, "value", None)
        logger.info(
            f"[ROUTER] user={state.user_id} "
            f"topic={state.topic.value if state.topic else 'none'} "
            f"stage={state.stage.value} "
            f"lastQuestionType={question_type or 'none'} "
            f"slotsFilled={state.filled_slot_names()} "
            f"decision={route.value}"
        )

    def _log_retrieval(self, result: RetrievalResult, permitted: List[Any], best_score: float) -> None:
        logger.info(f"[RAG] query: {result.query}")
        logger.info(f"[RAG] topK: {[(f.id, round(f.score, 4)) for f in result.scored]}")
        logger.info(f"[RAG] chosen: {[f.id for f in permitted]}")
        logger.info(
            f"[RAG] threshold: minScore={self.rag_min_score} bestScore={round(best_score, 4)} "
            f"decision={'PASS' if best_score >= self.rag_min_score else 'FAIL'}"
        )

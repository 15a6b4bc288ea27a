"""
Chat API Routes for the sales assistant.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator

from ..middleware.auth import api_key_auth
from ..middleware.metrics import record_turn, record_turn_error
from ..services import get_services
from llm.orchestrator import TurnRequest
from llm.prompt_templates import CannedReply

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / Response Models ─────────────────────────────────────

class ChatRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1, max_length=2000)

    @field_validator("message")
    @classmethod
    def message_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class ChatResponse(BaseModel):
    reply: str
    user_id: str
    route: str
    stage: str
    topic: Optional[str] = None
    processing_time_ms: float
    timestamp: str


class HistoryItem(BaseModel):
    role: str
    text: str
    timestamp: str


class ConversationHistory(BaseModel):
    user_id: str
    messages: List[HistoryItem]
    turn_count: int


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """
    Run one dialogue turn for a user.

    Turns for the same user are serialised. Collaborator failures are
    answered with an apology instead of an error.
    """
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Chat service is not available")

    async with services.user_lock(request.user_id):
        try:
            result = await services.orchestrator.process(
                TurnRequest(user_id=request.user_id, message=request.message)
            )
        except Exception as e:
            logger.error(f"Turn failed for {request.user_id}: {e}")
            record_turn_error()
            state = services.state_store.get(request.user_id)
            return ChatResponse(
                reply=CannedReply.APOLOGY,
                user_id=request.user_id,
                route="ERROR",
                stage=state.stage.value,
                topic=state.topic.value if state.topic else None,
                processing_time_ms=0.0,
                timestamp=datetime.utcnow().isoformat(),
            )

    record_turn(result.route.value, result.processing_time_ms, result.dropped_lines)

    return ChatResponse(
        reply=result.reply,
        user_id=result.user_id,
        route=result.route.value,
        stage=result.stage,
        topic=result.topic,
        processing_time_ms=result.processing_time_ms,
        timestamp=result.timestamp,
    )


@router.get("/chat/{user_id}/state")
async def get_state(user_id: str, _=Depends(api_key_auth)) -> Dict[str, Any]:
    """Return the conversation state snapshot for a user."""
    services = get_services()
    if services.state_store is None or not services.state_store.exists(user_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return services.state_store.get(user_id).to_dict()


@router.get("/chat/{user_id}/history", response_model=ConversationHistory)
async def get_history(user_id: str, _=Depends(api_key_auth)):
    """Return the bounded rolling history for a user."""
    services = get_services()
    if services.state_store is None or not services.state_store.exists(user_id):
        raise HTTPException(status_code=404, detail="Conversation not found")

    state = services.state_store.get(user_id)
    messages = [HistoryItem(**entry.to_dict()) for entry in state.history]
    return ConversationHistory(
        user_id=user_id,
        messages=messages,
        turn_count=sum(1 for entry in state.history if entry.role == "user"),
    )


@router.delete("/chat/{user_id}")
async def clear_conversation(user_id: str, _=Depends(api_key_auth)):
    """Forget a user's conversation, waiting for any turn in flight."""
    services = get_services()
    if services.state_store is not None:
        async with services.user_lock(user_id):
            services.state_store.clear(user_id)
        services.release_user_lock(user_id)
    return {"status": "cleared", "user_id": user_id}

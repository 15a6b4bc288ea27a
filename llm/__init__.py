"""
LLM Orchestration Module for the sales assistant.

This module handles:
- Generation provider abstraction (OpenAI, Bedrock)
- Prompt templates and canned replies
- Answer grounding and reply post-processing
- Turn orchestration
"""

from .guardrails import GroundingFilter, GroundingResult, strip_citations
from .orchestrator import RouteDecision, TurnOrchestrator, TurnRequest, TurnResult
from .prompt_templates import CannedReply, PromptTemplates, PromptType
from .reply_processor import ReplyOutcome, ReplyPostProcessor

__all__ = [
    "GroundingFilter",
    "GroundingResult",
    "strip_citations",
    "RouteDecision",
    "TurnOrchestrator",
    "TurnRequest",
    "TurnResult",
    "CannedReply",
    "PromptTemplates",
    "PromptType",
    "ReplyOutcome",
    "ReplyPostProcessor",
]

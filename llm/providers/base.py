"""
Generation collaborator contract for the sales assistant.

Providers turn (instructions, message, context) into a candidate reply.
Everything in the context is informational; nothing in it binds the model.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@dataclass
class GenerationContext:
    """Per-turn context passed alongside the prompt."""
    user_id: str
    memory: str = ""
    retrieved_context: str = ""
    fragment_ids: List[str] = field(default_factory=list)
    stage: str = ""
    slots: Dict[str, Any] = field(default_factory=dict)
    last_question: str = ""
    next_question_type: Optional[str] = None


@dataclass
class GenerationResult:
    """Output of one generation call."""
    final_output: str = ""


@runtime_checkable
class TextGenerator(Protocol):
    """Protocol for generation providers."""

    async def generate(
        self,
        instructions: str,
        message: str,
        context: GenerationContext,
    ) -> GenerationResult:
        ...

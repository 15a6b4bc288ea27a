"""
Reply Post-Processor for the sales assistant.

Turns a raw generated reply into the text sent to the user: grounds
knowledge answers, swaps redundant questions for the planner's next one,
keeps at most one question per turn and never returns an empty reply.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence

from dialogue.planner import QuestionPlanner, QuestionType
from dialogue.state import ConversationState

from .guardrails import GroundingFilter, strip_citations
from .prompt_templates import CannedReply

logger = logging.getLogger(__name__)


@dataclass
class ReplyOutcome:
    """Processed reply plus what happened to it."""
    text: str
    used_fragment_ids: List[str] = field(default_factory=list)
    dropped_lines: int = 0
    grounding_fallback: bool = False
    question_replaced: bool = False
    question_removed: bool = False
    question_appended: bool = False


def find_question_line(text: Optional[str]) -> Optional[str]:
    """Return the last line that ends with a question mark."""
    question = None
    for line in str(text or "").split("\n"):
        if line.strip().endswith("?"):
            question = line.strip()
    return question


def _replace_line(text: str, target: str, replacement: Optional[str]) -> str:
    lines = text.split("\n")
    for index in range(len(lines) - 1, -1, -1):
        if lines[index].strip() == target:
            if replacement:
                lines[index] = replacement
            else:
                del lines[index]
            break
    return "\n".join(line for line in lines if line.strip()).strip()


class ReplyPostProcessor:
    """
    Per-turn reply guard.

    Steps:
    1. Ground knowledge-mode answers and strip citation markers
    2. Find the trailing question line and classify it
    3. Replace or remove it if its slot is already filled
    4. Append the planner's question if none remains
    5. Prepend the topic-shift note
    6. Fall back to a generic next-step line if still empty
    """

    def __init__(
        self,
        planner: Optional[QuestionPlanner] = None,
        grounding_filter: Optional[GroundingFilter] = None,
    ):
        self.planner = planner or QuestionPlanner()
        self.grounding_filter = grounding_filter or GroundingFilter()

    def process(
        self,
        state: ConversationState,
        raw_reply: Optional[str],
        knowledge_mode: bool = False,
        fragments: Sequence[Any] = (),
        topic_note: str = "",
    ) -> ReplyOutcome:
        """
        Post-process a candidate reply.

        Args:
            state: Conversation state after this turn's slot updates
            raw_reply: Text from the generation collaborator
            knowledge_mode: Whether this was an explicit knowledge turn
            fragments: Fragments permitted as generation context
            topic_note: Acknowledgement line for a topic shift, if any

        Returns:
            ReplyOutcome
        """
        outcome = ReplyOutcome(text=str(raw_reply or "").strip())

        if knowledge_mode:
            grounded = self.grounding_filter.filter(outcome.text, fragments)
            outcome.used_fragment_ids = grounded.used_ids
            outcome.dropped_lines = len(grounded.dropped_lines)
            outcome.text = strip_citations(grounded.text)
            if not outcome.text:
                outcome.text = CannedReply.NO_KNOWLEDGE
                outcome.grounding_fallback = True

        outcome.text = self._guard_question(state, outcome)

        if not outcome.text:
            outcome.text = CannedReply.NEXT_STEP

        if topic_note:
            outcome.text = f"{topic_note}\n{outcome.text}"

        return outcome

    def _guard_question(self, state: ConversationState, outcome: ReplyOutcome) -> str:
        text = outcome.text
        next_question = self.planner.next_question(state)

        question_line = find_question_line(text)
        question_type = self.planner.classify_question_type(question_line)

        if question_line and question_type and self.planner.is_answered(state, question_type):
            if next_question is not None:
                text = _replace_line(text, question_line, next_question.text)
                outcome.question_replaced = True
            else:
                text = _replace_line(text, question_line, None)
                outcome.question_removed = True
            logger.debug(
                f"Redundant {question_type.value} question for {state.user_id} "
                f"{'replaced' if next_question else 'removed'}"
            )

        if next_question is not None and not find_question_line(text):
            text = f"{text}\n{next_question.text}" if text else next_question.text
            outcome.question_appended = True

        return text.strip()


def trailing_question(text: Optional[str]) -> tuple:
    """(question line, question type) for the reply about to be sent."""
    line = find_question_line(text)
    question_type: Optional[QuestionType] = QuestionPlanner.classify_question_type(line)
    return line or "", question_type

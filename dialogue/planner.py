"""
Question Planner for the sales assistant.

Decides the next mandatory question from slot-fill status, maps arbitrary
question text back to the slot it targets, consumes answers and walks the
stage funnel forward.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .classifier import LexicalClassifier, MessageClassifier
from .state import ConversationState, SlotName, SlotValue, Stage

logger = logging.getLogger(__name__)


class QuestionType(Enum):
    """Slot-targeted questions the assistant can have pending."""
    BUSINESS_TYPE = "business_type"
    GOAL = "goal"
    CHANNEL = "channel"
    FEATURES = "features"
    BUDGET = "budget"
    TIMELINE = "timeline"
    WEBSITE_TYPE = "website_type"


@dataclass
class PlannedQuestion:
    """A question the planner wants asked next."""
    question_type: QuestionType
    text: str


# Slot that answers each question type
QUESTION_SLOTS: Dict[QuestionType, SlotName] = {
    QuestionType.BUSINESS_TYPE: SlotName.BUSINESS_TYPE,
    QuestionType.GOAL: SlotName.PRIMARY_NEED,
    QuestionType.WEBSITE_TYPE: SlotName.PRIMARY_NEED,
    QuestionType.CHANNEL: SlotName.ORDERING_SYSTEM,
    QuestionType.FEATURES: SlotName.FEATURES,
    QuestionType.BUDGET: SlotName.BUDGET,
    QuestionType.TIMELINE: SlotName.TIMELINE,
}

QUESTION_TEXTS: Dict[QuestionType, str] = {
    QuestionType.BUSINESS_TYPE: "Aapka business kis type ka hai?",
    QuestionType.GOAL: "Main goal kya hai? Website, WhatsApp orders, ya automation?",
    QuestionType.CHANNEL: "Orders zyada WhatsApp par aate hain?",
    QuestionType.FEATURES: "Kaun se features chahiye? Orders, menu, booking, ya support?",
    QuestionType.BUDGET: "Budget range kya socha hai?",
    QuestionType.TIMELINE: "Timeline kya chahiye?",
}

# Checked in order, first hit wins
QUESTION_KEYWORDS: List[Tuple[QuestionType, List[str]]] = [
    (QuestionType.BUSINESS_TYPE, ["business", "kis type"]),
    (QuestionType.GOAL, ["main goal", "goal", "kis type ka solution"]),
    (QuestionType.CHANNEL, ["whatsapp par orders", "orders aate", "whatsapp par aate"]),
    (QuestionType.FEATURES, ["features", "requirements"]),
    (QuestionType.BUDGET, ["budget"]),
    (QuestionType.TIMELINE, ["timeline", "timeframe"]),
    (QuestionType.WEBSITE_TYPE, ["website kis type", "website type"]),
]


class QuestionPlanner:
    """
    State machine over slot-fill status.

    Priority order (first unmet wins):
    1. business type
    2. primary need (goal)
    3. channel, when a WhatsApp bot is wanted
    4. features, in the requirements stage
    5. budget, in the proposal stage
    6. timeline, in the proposal stage
    """

    def __init__(self, classifier: Optional[MessageClassifier] = None):
        self.classifier = classifier or LexicalClassifier()

    def next_question_type(self, state: ConversationState) -> Optional[QuestionType]:
        if not state.is_filled(SlotName.BUSINESS_TYPE):
            return QuestionType.BUSINESS_TYPE
        if not state.is_filled(SlotName.PRIMARY_NEED):
            return QuestionType.GOAL
        wants_bot = state.slot(SlotName.WANTS_WHATSAPP_BOT)
        if wants_bot.flag and not state.is_filled(SlotName.ORDERING_SYSTEM):
            return QuestionType.CHANNEL
        if state.stage is Stage.REQUIREMENTS and not state.is_filled(SlotName.FEATURES):
            return QuestionType.FEATURES
        if state.stage is Stage.PROPOSAL and not state.is_filled(SlotName.BUDGET):
            return QuestionType.BUDGET
        if state.stage is Stage.PROPOSAL and not state.is_filled(SlotName.TIMELINE):
            return QuestionType.TIMELINE
        return None

    def next_question(self, state: ConversationState) -> Optional[PlannedQuestion]:
        question_type = self.next_question_type(state)
        if question_type is None:
            return None
        return PlannedQuestion(question_type=question_type, text=QUESTION_TEXTS[question_type])

    @staticmethod
    def classify_question_type(question: Optional[str]) -> Optional[QuestionType]:
        """Map a question string back to the slot it targets."""
        lowered = str(question or "").lower()
        if not lowered:
            return None
        for question_type, keywords in QUESTION_KEYWORDS:
            if any(k in lowered for k in keywords):
                return question_type
        return None

    @staticmethod
    def is_answered(state: ConversationState, question_type: Optional[QuestionType]) -> bool:
        if question_type is None:
            return False
        return state.is_filled(QUESTION_SLOTS[question_type])

    def apply_answer(
        self,
        state: ConversationState,
        question_type: Optional[QuestionType],
        raw_answer: str,
        prior_question: str = "",
    ) -> bool:
        """
        Consume an answer to a pending question.

        Every slot touched here is write-once. Returns True if a slot changed.
        """
        if question_type is None:
            return False

        text = str(raw_answer or "").strip()
        lowered = text.lower()
        prior = str(prior_question or "").lower()

        if question_type is QuestionType.BUSINESS_TYPE:
            return state.fill_if_empty(SlotName.BUSINESS_TYPE, SlotValue.of_text(text))

        if question_type is QuestionType.GOAL:
            if state.is_filled(SlotName.PRIMARY_NEED):
                return False
            if self.classifier.is_affirmative(text):
                # "yes" to a goal question: the option named in the question wins
                if "whatsapp" in prior:
                    state.fill_if_empty(SlotName.WANTS_WHATSAPP_BOT, SlotValue.of_flag(True))
                    return state.fill_if_empty(SlotName.PRIMARY_NEED, SlotValue.of_text("whatsapp bot"))
                if "website" in prior:
                    state.fill_if_empty(SlotName.WANTS_WEBSITE, SlotValue.of_flag(True))
                    return state.fill_if_empty(SlotName.PRIMARY_NEED, SlotValue.of_text("website"))
                return False
            changed = state.fill_if_empty(SlotName.PRIMARY_NEED, SlotValue.of_text(text))
            if "website" in lowered or "web" in lowered:
                state.fill_if_empty(SlotName.WANTS_WEBSITE, SlotValue.of_flag(True))
            if "whatsapp" in lowered:
                state.fill_if_empty(SlotName.WANTS_WHATSAPP_BOT, SlotValue.of_flag(True))
            if "ordering" in lowered:
                state.fill_if_empty(SlotName.ORDERING_SYSTEM, SlotValue.of_flag(True))
            if "booking" in lowered:
                state.fill_if_empty(SlotName.BOOKING_SYSTEM, SlotValue.of_flag(True))
            return changed

        if question_type is QuestionType.CHANNEL:
            if self.classifier.is_affirmative(text) or "whatsapp" in lowered:
                return state.fill_if_empty(SlotName.ORDERING_SYSTEM, SlotValue.of_flag(True))
            if self.classifier.is_negative(text):
                return state.fill_if_empty(SlotName.ORDERING_SYSTEM, SlotValue.of_flag(False))
            return False

        if question_type is QuestionType.WEBSITE_TYPE:
            if state.is_filled(SlotName.PRIMARY_NEED):
                return False
            state.fill_if_empty(SlotName.WANTS_WEBSITE, SlotValue.of_flag(True))
            return state.fill_if_empty(SlotName.PRIMARY_NEED, SlotValue.of_text(text))

        return state.fill_if_empty(QUESTION_SLOTS[question_type], SlotValue.of_text(text))

    @staticmethod
    def advance_stage(state: ConversationState) -> Stage:
        """Walk the funnel forward. Handoff is terminal."""
        before = state.stage
        if state.is_filled(SlotName.BUSINESS_TYPE) and state.stage is Stage.DISCOVERY:
            state.stage = Stage.REQUIREMENTS
        if state.is_filled(SlotName.PRIMARY_NEED) and state.stage is Stage.REQUIREMENTS:
            state.stage = Stage.PROPOSAL
        if state.is_filled(SlotName.BUDGET) and state.is_filled(SlotName.TIMELINE):
            state.stage = Stage.HANDOFF
        if state.stage is not before:
            state.touch()
            logger.info(f"Stage advanced for {state.user_id}: {before.value} -> {state.stage.value}")
        return state.stage

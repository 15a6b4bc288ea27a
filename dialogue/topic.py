"""
Topic Shift Detector for the sales assistant.

Detects when the user pivots to a different service line and restarts
the funnel for it.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from .state import ConversationState, SlotName, SlotValue, Stage, Topic

logger = logging.getLogger(__name__)


@dataclass
class TopicShift:
    """Outcome of topic detection for one message."""
    shifted: bool
    topic: Optional[Topic]
    note: str = ""


class TopicShiftDetector:
    """
    Keyword precedence: website/e-commerce > WhatsApp + orders > automation.

    An empty inference never clears an existing topic.
    """

    WEBSITE_KEYWORDS = ["website", "web", "ecommerce", "e-commerce"]
    WHATSAPP_KEYWORDS = ["whatsapp"]
    ORDER_KEYWORDS = ["order", "orders"]
    AUTOMATION_KEYWORDS = ["automation"]

    NOTES: Dict[Topic, str] = {
        Topic.WEBSITE: "Theek hai, ab website wali requirement par chalte hain.",
        Topic.WHATSAPP_ORDERS: "Samajh gaya, WhatsApp orders wali requirement par aate hain.",
        Topic.AUTOMATION: "Theek hai, automation wali baat dekhte hain.",
    }

    # (want flag, primary need) pre-filled when a topic starts
    TOPIC_SLOTS: Dict[Topic, tuple] = {
        Topic.WEBSITE: (SlotName.WANTS_WEBSITE, "website"),
        Topic.WHATSAPP_ORDERS: (SlotName.WANTS_WHATSAPP_BOT, "whatsapp orders"),
        Topic.AUTOMATION: (None, "automation"),
    }

    def infer_topic(self, message: Optional[str]) -> Optional[Topic]:
        text = str(message or "").lower()
        if any(k in text for k in self.WEBSITE_KEYWORDS):
            return Topic.WEBSITE
        if any(k in text for k in self.WHATSAPP_KEYWORDS) and any(k in text for k in self.ORDER_KEYWORDS):
            return Topic.WHATSAPP_ORDERS
        if any(k in text for k in self.AUTOMATION_KEYWORDS):
            return Topic.AUTOMATION
        return None

    def detect(self, state: ConversationState, message: Optional[str]) -> TopicShift:
        inferred = self.infer_topic(message)
        if inferred is not None and inferred is not state.topic:
            return TopicShift(shifted=True, topic=inferred, note=self.note_for(inferred))
        return TopicShift(shifted=False, topic=state.topic)

    def note_for(self, topic: Optional[Topic]) -> str:
        if topic is None:
            return ""
        return self.NOTES.get(topic, "")

    def apply(self, state: ConversationState, shift: TopicShift) -> None:
        """Switch topic and restart the funnel at requirements."""
        if not shift.shifted or shift.topic is None:
            return

        previous = state.topic
        state.topic = shift.topic
        state.stage = Stage.REQUIREMENTS

        flag_slot, need = self.TOPIC_SLOTS[shift.topic]
        if flag_slot is not None:
            state.raise_flag(flag_slot)
        state.fill_if_empty(SlotName.PRIMARY_NEED, SlotValue.of_text(need))
        state.touch()

        logger.info(
            f"Topic shift for {state.user_id}: "
            f"{previous.value if previous else 'none'} -> {shift.topic.value}"
        )

"""
Lexical Classifier for the sales assistant.

Keyword/substring heuristics that map raw message text to routing flags
and slot writes. Vocabulary mixes English and Roman Urdu.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable

from .state import ConversationState, SlotKind, SlotName, SlotValue

logger = logging.getLogger(__name__)


class MessageCategory(Enum):
    """Coarse category of an incoming message."""
    UNCLEAR = "unclear"
    SHORT_ACKNOWLEDGEMENT = "short_acknowledgement"
    KNOWLEDGE_QUERY = "knowledge_query"
    OTHER = "other"


@dataclass
class MessageClassification:
    """All lexical flags for one message."""
    category: MessageCategory
    short_acknowledgement: bool = False
    knowledge_query: bool = False
    unclear: bool = False


@dataclass
class SlotUpdate:
    """A single slot write inferred from a message."""
    slot: SlotName
    value: SlotValue
    write_once: bool = True


@runtime_checkable
class MessageClassifier(Protocol):
    """Pluggable classifier seam; keyword tables today, an NLU model later."""

    def classify(self, text: str) -> MessageClassification:
        ...

    def extract_slot_updates(self, text: str) -> List[SlotUpdate]:
        ...

    def is_affirmative(self, text: str) -> bool:
        ...

    def is_negative(self, text: str) -> bool:
        ...


class LexicalClassifier:
    """
    Pure keyword classification.

    No state is read or written here except through apply_slot_updates,
    which honours write-once semantics for text slots.
    """

    # Exact-match vocabulary for short replies and menu selections
    SHORT_ACKNOWLEDGEMENTS = {
        "yes", "no", "han", "haan", "ok", "theek",
        "abhi bataya", "sub", "sub chahiye",
        "website", "restaurant", "ecommerce", "e-commerce",
    }

    AFFIRMATIVES = {"yes", "haan", "han", "ok", "theek"}

    NEGATIVES = {"no", "nahi", "nahin", "nah"}

    # Substring signals for policy / company-info questions
    KNOWLEDGE_SIGNALS = [
        "refund", "policy", "policies", "terms",
        "hours", "timing", "timings",
        "company info", "about company", "about you",
        "pricing policy",
    ]

    # Filler / mis-transcribed tokens
    UNCLEAR_TOKENS = {"sono", "suno", "sunno"}

    BUSINESS_TYPE_KEYWORDS = [
        ("restaurant", ["restaurant"]),
        ("ecommerce", ["ecommerce", "e-commerce"]),
    ]

    WEBSITE_KEYWORDS = ["website", "web"]
    WHATSAPP_KEYWORDS = ["whatsapp", "wa bot", "whatsapp bot"]
    ORDERING_KEYWORDS = ["ordering system", "online order", "orders"]
    BOOKING_KEYWORDS = ["booking"]
    BUDGET_KEYWORDS = ["budget"]
    TIMELINE_KEYWORDS = ["timeline"]

    @staticmethod
    def _normalize(text: Optional[str]) -> str:
        return str(text or "").strip().lower()

    def is_short_acknowledgement(self, text: Optional[str]) -> bool:
        return self._normalize(text) in self.SHORT_ACKNOWLEDGEMENTS

    def is_affirmative(self, text: Optional[str]) -> bool:
        return self._normalize(text) in self.AFFIRMATIVES

    def is_negative(self, text: Optional[str]) -> bool:
        return self._normalize(text) in self.NEGATIVES

    def is_explicit_knowledge_query(self, text: Optional[str]) -> bool:
        lowered = self._normalize(text)
        return any(signal in lowered for signal in self.KNOWLEDGE_SIGNALS)

    def is_unclear_utterance(self, text: Optional[str]) -> bool:
        return self._normalize(text) in self.UNCLEAR_TOKENS

    def classify(self, text: Optional[str]) -> MessageClassification:
        unclear = self.is_unclear_utterance(text)
        short = self.is_short_acknowledgement(text)
        knowledge = self.is_explicit_knowledge_query(text)

        if unclear:
            category = MessageCategory.UNCLEAR
        elif short:
            category = MessageCategory.SHORT_ACKNOWLEDGEMENT
        elif knowledge:
            category = MessageCategory.KNOWLEDGE_QUERY
        else:
            category = MessageCategory.OTHER

        return MessageClassification(
            category=category,
            short_acknowledgement=short,
            knowledge_query=knowledge,
            unclear=unclear,
        )

    def extract_slot_updates(self, text: Optional[str]) -> List[SlotUpdate]:
        """
        Scan a message for slot keywords.

        Primary need is first-category-wins: website, WhatsApp bot,
        ordering system, booking system.
        """
        lowered = self._normalize(text)
        updates: List[SlotUpdate] = []
        if not lowered:
            return updates

        for business_type, keywords in self.BUSINESS_TYPE_KEYWORDS:
            if any(k in lowered for k in keywords):
                updates.append(SlotUpdate(SlotName.BUSINESS_TYPE, SlotValue.of_text(business_type)))
                break

        need_rules = [
            (self.WEBSITE_KEYWORDS, SlotName.WANTS_WEBSITE, "website"),
            (self.WHATSAPP_KEYWORDS, SlotName.WANTS_WHATSAPP_BOT, "whatsapp bot"),
            (self.ORDERING_KEYWORDS, SlotName.ORDERING_SYSTEM, "ordering system"),
            (self.BOOKING_KEYWORDS, SlotName.BOOKING_SYSTEM, "booking system"),
        ]
        need_found = False
        for keywords, flag_slot, need in need_rules:
            if not any(k in lowered for k in keywords):
                continue
            updates.append(SlotUpdate(flag_slot, SlotValue.of_flag(True), write_once=False))
            if not need_found:
                updates.append(SlotUpdate(SlotName.PRIMARY_NEED, SlotValue.of_text(need)))
                need_found = True

        if any(k in lowered for k in self.BUDGET_KEYWORDS):
            updates.append(SlotUpdate(SlotName.BUDGET, SlotValue.of_text("discussed")))
        if any(k in lowered for k in self.TIMELINE_KEYWORDS):
            updates.append(SlotUpdate(SlotName.TIMELINE, SlotValue.of_text("discussed")))

        return updates


def apply_slot_updates(state: ConversationState, updates: List[SlotUpdate]) -> List[SlotName]:
    """Apply inferred writes to state. Returns the slots that changed."""
    changed: List[SlotName] = []
    for update in updates:
        if update.write_once:
            if state.fill_if_empty(update.slot, update.value):
                changed.append(update.slot)
        elif update.value.kind is SlotKind.FLAG and update.value.flag:
            before = state.slot(update.slot)
            state.raise_flag(update.slot)
            if before != state.slot(update.slot):
                changed.append(update.slot)
    if changed:
        logger.debug(f"Passive slot updates for {state.user_id}: {[s.value for s in changed]}")
    return changed

"""Tests for the lexical classifier."""

import pytest

from dialogue.classifier import (
    LexicalClassifier,
    MessageCategory,
    MessageClassifier,
    apply_slot_updates,
)
from dialogue.state import ConversationState, SlotName, SlotValue


@pytest.fixture
def classifier():
    return LexicalClassifier()


class TestFlags:
    @pytest.mark.parametrize("text", ["yes", " Haan ", "OK", "sub chahiye", "restaurant", "e-commerce"])
    def test_short_acknowledgements(self, classifier, text):
        assert classifier.is_short_acknowledgement(text)

    def test_short_acknowledgement_is_exact_match(self, classifier):
        assert not classifier.is_short_acknowledgement("yes please build a website")

    @pytest.mark.parametrize("text", ["What is your refund policy?", "office timings?", "tell me about company"])
    def test_knowledge_queries(self, classifier, text):
        assert classifier.is_explicit_knowledge_query(text)

    def test_non_knowledge_message(self, classifier):
        assert not classifier.is_explicit_knowledge_query("mujhe website chahiye")

    @pytest.mark.parametrize("text", ["suno", "Sono", " sunno "])
    def test_unclear_tokens(self, classifier, text):
        assert classifier.is_unclear_utterance(text)

    def test_unclear_only_when_whole_message(self, classifier):
        assert not classifier.is_unclear_utterance("suno, website chahiye")

    def test_empty_input_defaults(self, classifier):
        result = classifier.classify(None)
        assert result.category is MessageCategory.OTHER
        assert not (result.short_acknowledgement or result.knowledge_query or result.unclear)

    def test_category_precedence(self, classifier):
        assert classifier.classify("suno").category is MessageCategory.UNCLEAR
        assert classifier.classify("website").category is MessageCategory.SHORT_ACKNOWLEDGEMENT
        assert classifier.classify("refund policy?").category is MessageCategory.KNOWLEDGE_QUERY

    def test_implements_classifier_protocol(self, classifier):
        assert isinstance(classifier, MessageClassifier)


class TestSlotExtraction:
    def test_business_type_restaurant_wins(self, classifier):
        state = ConversationState(user_id="u1")
        apply_slot_updates(state, classifier.extract_slot_updates("restaurant aur ecommerce dono"))
        assert state.slot(SlotName.BUSINESS_TYPE).value == "restaurant"

    def test_primary_need_first_category_wins(self, classifier):
        state = ConversationState(user_id="u1")
        apply_slot_updates(state, classifier.extract_slot_updates("whatsapp bot with booking"))
        assert state.slot(SlotName.PRIMARY_NEED).value == "whatsapp bot"
        assert state.slot(SlotName.WANTS_WHATSAPP_BOT).value is True
        assert state.slot(SlotName.BOOKING_SYSTEM).value is True

    def test_website_beats_whatsapp(self, classifier):
        state = ConversationState(user_id="u1")
        apply_slot_updates(state, classifier.extract_slot_updates("website and whatsapp orders"))
        assert state.slot(SlotName.PRIMARY_NEED).value == "website"
        assert state.slot(SlotName.ORDERING_SYSTEM).value is True

    def test_budget_and_timeline_mark_discussed(self, classifier):
        state = ConversationState(user_id="u1")
        apply_slot_updates(state, classifier.extract_slot_updates("budget and timeline baad mein"))
        assert state.slot(SlotName.BUDGET).value == "discussed"
        assert state.slot(SlotName.TIMELINE).value == "discussed"

    def test_extraction_is_idempotent(self, classifier):
        state = ConversationState(user_id="u1")
        state.set_slot(SlotName.BUDGET, SlotValue.of_text("1 lakh"))
        message = "restaurant website, budget confirm"
        apply_slot_updates(state, classifier.extract_slot_updates(message))
        first = dict(state.slots)
        changed = apply_slot_updates(state, classifier.extract_slot_updates(message))
        assert changed == []
        assert state.slots == first
        assert state.slot(SlotName.BUDGET).value == "1 lakh"

    def test_primary_need_not_overwritten(self, classifier):
        state = ConversationState(user_id="u1")
        state.set_slot(SlotName.PRIMARY_NEED, SlotValue.of_text("automation"))
        apply_slot_updates(state, classifier.extract_slot_updates("website bhi"))
        assert state.slot(SlotName.PRIMARY_NEED).value == "automation"
        assert state.slot(SlotName.WANTS_WEBSITE).value is True

    def test_no_keywords_no_updates(self, classifier):
        assert classifier.extract_slot_updates("salam") == []
        assert classifier.extract_slot_updates("") == []

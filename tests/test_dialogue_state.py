"""Tests for conversation state and the state repository."""

from dialogue.state import ConversationState, SlotKind, SlotName, SlotValue, Stage
from dialogue.state_store import InMemoryStateStore, StateRepository


class TestSlotValue:
    def test_unset_is_not_filled(self):
        assert not SlotValue.unset().is_filled
        assert SlotValue.unset().value is None

    def test_blank_text_stays_unset(self):
        assert SlotValue.of_text("   ").kind is SlotKind.UNSET

    def test_false_flag_counts_as_filled(self):
        value = SlotValue.of_flag(False)
        assert value.is_filled
        assert value.value is False

    def test_text_is_trimmed(self):
        assert SlotValue.of_text("  restaurant ").value == "restaurant"


class TestConversationState:
    def test_new_state_defaults(self):
        state = ConversationState(user_id="u1")
        assert state.stage is Stage.DISCOVERY
        assert state.topic is None
        assert state.filled_slot_names() == []
        assert state.last_question_type is None

    def test_fill_if_empty_is_write_once(self):
        state = ConversationState(user_id="u1")
        assert state.fill_if_empty(SlotName.BUDGET, SlotValue.of_text("50k"))
        assert not state.fill_if_empty(SlotName.BUDGET, SlotValue.of_text("discussed"))
        assert state.slot(SlotName.BUDGET).value == "50k"

    def test_raise_flag_overrides_false(self):
        state = ConversationState(user_id="u1")
        state.set_slot(SlotName.WANTS_WEBSITE, SlotValue.of_flag(False))
        state.raise_flag(SlotName.WANTS_WEBSITE)
        assert state.slot(SlotName.WANTS_WEBSITE).value is True

    def test_history_is_bounded_fifo(self):
        state = ConversationState(user_id="u1")
        for i in range(40):
            state.append_history("user" if i % 2 == 0 else "bot", f"msg {i}")
        assert len(state.history) == 15
        assert [entry.text for entry in state.history] == [f"msg {i}" for i in range(25, 40)]

    def test_format_history_window(self):
        state = ConversationState(user_id="u1")
        state.append_history("user", "hi")
        state.append_history("bot", "salam")
        state.append_history("user", "website chahiye")
        assert state.format_history(2) == "Bot: salam\nUser: website chahiye"

    def test_to_dict_is_json_safe(self):
        state = ConversationState(user_id="u1")
        state.set_slot(SlotName.BUSINESS_TYPE, SlotValue.of_text("restaurant"))
        snapshot = state.to_dict()
        assert snapshot["stage"] == "discovery"
        assert snapshot["slots"]["business_type"] == "restaurant"
        assert snapshot["slots"]["budget"] is None
        assert isinstance(snapshot["updated_at"], str)

    def test_summary_mentions_stage_and_slots(self):
        state = ConversationState(user_id="u1")
        state.set_slot(SlotName.BUSINESS_TYPE, SlotValue.of_text("restaurant"))
        summary = state.summary()
        assert "stage=discovery" in summary
        assert "restaurant" in summary
        assert "lastQuestionType=none" in summary


class TestInMemoryStateStore:
    def test_implements_repository(self):
        assert isinstance(InMemoryStateStore(), StateRepository)

    def test_get_creates_on_first_access(self):
        store = InMemoryStateStore()
        assert not store.exists("u1")
        state = store.get("u1")
        assert state.user_id == "u1"
        assert store.exists("u1")
        assert store.get("u1") is state

    def test_history_limit_applies_to_new_states(self):
        store = InMemoryStateStore(history_limit=4)
        state = store.get("u1")
        for i in range(10):
            state.append_history("user", str(i))
        assert len(state.history) == 4

    def test_clear(self):
        store = InMemoryStateStore()
        store.get("u1")
        store.get("u2")
        store.clear("u1")
        assert store.all_user_ids() == ["u2"]

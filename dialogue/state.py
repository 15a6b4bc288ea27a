"""
Conversation State for the sales assistant.

Per-user record of topic, stage, collected slots, the pending question
and a bounded rolling history.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

HISTORY_LIMIT = 15


class Stage(Enum):
    """Macro phase of the dialogue, in funnel order."""
    DISCOVERY = "discovery"
    REQUIREMENTS = "requirements"
    PROPOSAL = "proposal"
    HANDOFF = "handoff"


class Topic(Enum):
    """Service lines the assistant can be discussing."""
    WEBSITE = "website"
    WHATSAPP_ORDERS = "restaurant_whatsapp_orders"
    AUTOMATION = "automation"


class SlotName(Enum):
    """Pieces of information the dialogue collects."""
    BUSINESS_TYPE = "business_type"
    PRIMARY_NEED = "primary_need"
    WANTS_WEBSITE = "wants_website"
    WANTS_WHATSAPP_BOT = "wants_whatsapp_bot"
    ORDERING_SYSTEM = "ordering_system"
    BOOKING_SYSTEM = "booking_system"
    BUDGET = "budget"
    TIMELINE = "timeline"
    FEATURES = "features"


class SlotKind(Enum):
    UNSET = "unset"
    TEXT = "text"
    FLAG = "flag"


@dataclass(frozen=True)
class SlotValue:
    """Tagged slot value: unset, free text, or a boolean flag."""
    kind: SlotKind = SlotKind.UNSET
    text: str = ""
    flag: bool = False

    @classmethod
    def unset(cls) -> "SlotValue":
        return cls()

    @classmethod
    def of_text(cls, text: str) -> "SlotValue":
        text = (text or "").strip()
        if not text:
            return cls()
        return cls(kind=SlotKind.TEXT, text=text)

    @classmethod
    def of_flag(cls, flag: bool) -> "SlotValue":
        return cls(kind=SlotKind.FLAG, flag=bool(flag))

    @property
    def is_filled(self) -> bool:
        return self.kind is not SlotKind.UNSET

    @property
    def value(self) -> Any:
        if self.kind is SlotKind.TEXT:
            return self.text
        if self.kind is SlotKind.FLAG:
            return self.flag
        return None


@dataclass
class HistoryEntry:
    """One message in the rolling transcript."""
    role: str  # user | bot
    text: str
    timestamp: str = field(default_factory=lambda: datetime.utcnow().isoformat())

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "text": self.text, "timestamp": self.timestamp}


def _empty_slots() -> Dict[SlotName, SlotValue]:
    return {name: SlotValue.unset() for name in SlotName}


@dataclass
class ConversationState:
    """Mutable dialogue state for a single user."""
    user_id: str
    topic: Optional[Topic] = None
    stage: Stage = Stage.DISCOVERY
    slots: Dict[SlotName, SlotValue] = field(default_factory=_empty_slots)
    last_question: str = ""
    last_question_type: Optional[Any] = None  # QuestionType, see dialogue.planner
    pending_clarification: bool = False
    handoff_notified: bool = False
    history: List[HistoryEntry] = field(default_factory=list)
    history_limit: int = HISTORY_LIMIT
    updated_at: datetime = field(default_factory=datetime.utcnow)

    # ── Slots ─────────────────────────────────────────────

    def slot(self, name: SlotName) -> SlotValue:
        return self.slots.get(name, SlotValue.unset())

    def is_filled(self, name: SlotName) -> bool:
        return self.slot(name).is_filled

    def set_slot(self, name: SlotName, value: SlotValue) -> None:
        self.slots[name] = value
        self.touch()

    def fill_if_empty(self, name: SlotName, value: SlotValue) -> bool:
        """Write-once: only writes when the slot is still unset."""
        if self.is_filled(name) or not value.is_filled:
            return False
        self.set_slot(name, value)
        return True

    def raise_flag(self, name: SlotName) -> None:
        """Passive inference only ever turns a flag on."""
        current = self.slot(name)
        if current.kind is SlotKind.FLAG and current.flag:
            return
        self.set_slot(name, SlotValue.of_flag(True))

    def filled_slot_names(self) -> List[str]:
        return [name.value for name, value in self.slots.items() if value.is_filled]

    # ── History ───────────────────────────────────────────

    def append_history(self, role: str, text: str) -> None:
        self.history.append(HistoryEntry(role=role, text=str(text or "")))
        if len(self.history) > self.history_limit:
            self.history = self.history[-self.history_limit:]
        self.touch()

    def format_history(self, window: Optional[int] = None) -> str:
        entries = self.history[-window:] if window else self.history
        return "\n".join(
            f"{'User' if entry.role == 'user' else 'Bot'}: {entry.text}" for entry in entries
        )

    # ── Misc ──────────────────────────────────────────────

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def summary(self) -> str:
        """One-line state summary for the system prompt."""
        slots = {name.value: value.value for name, value in self.slots.items() if value.is_filled}
        question_type = getattr(self.last_question_type, "value", None)
        return " | ".join([
            f"topic={self.topic.value if self.topic else 'none'}",
            f"stage={self.stage.value}",
            f"lastQuestionType={question_type or 'none'}",
            f"slots={slots}",
        ])

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe snapshot."""
        return {
            "user_id": self.user_id,
            "topic": self.topic.value if self.topic else None,
            "stage": self.stage.value,
            "slots": {name.value: value.value for name, value in self.slots.items()},
            "last_question": self.last_question,
            "last_question_type": getattr(self.last_question_type, "value", None),
            "pending_clarification": self.pending_clarification,
            "history": [entry.to_dict() for entry in self.history],
            "updated_at": self.updated_at.isoformat(),
        }

"""
Dialogue Module for the sales assistant.

This module provides the slot-filling state machine:
- Conversation state and the per-user state repository
- Lexical classification (acknowledgements, knowledge queries, unclear input)
- Question planning and answer consumption
- Topic shift detection
"""

from .state import ConversationState, SlotName, SlotValue, SlotKind, Stage, Topic
from .state_store import InMemoryStateStore, StateRepository
from .classifier import LexicalClassifier, MessageClassification, MessageCategory, SlotUpdate
from .planner import QuestionPlanner, QuestionType, PlannedQuestion
from .topic import TopicShiftDetector, TopicShift

__all__ = [
    "ConversationState",
    "SlotName",
    "SlotValue",
    "SlotKind",
    "Stage",
    "Topic",
    "InMemoryStateStore",
    "StateRepository",
    "LexicalClassifier",
    "MessageClassification",
    "MessageCategory",
    "SlotUpdate",
    "QuestionPlanner",
    "QuestionType",
    "PlannedQuestion",
    "TopicShiftDetector",
    "TopicShift",
]

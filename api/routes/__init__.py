"""
API Routes for the sales assistant.
"""

from . import chat, handoff, webhooks

__all__ = ["chat", "handoff", "webhooks"]

"""
API Module for the sales assistant.

FastAPI application with routes for:
- Chat turns and conversation state
- WhatsApp webhooks
- Human handoff
"""

from .main import create_app, app

__all__ = ["create_app", "app"]

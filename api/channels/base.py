"""
Abstract Channel Provider for the sales assistant.

Base class for messaging channel integrations.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class ChannelMessage:
    """Message to send via a channel."""
    to: str  # Phone number
    content: str


@dataclass
class ChannelResponse:
    """Response from channel send operation."""
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class InboundMessage:
    """A message received from a channel, already decoded."""
    sender: str
    message_type: str  # text | audio | image | ...
    text: str = ""
    message_id: Optional[str] = None

    @property
    def is_text(self) -> bool:
        return self.message_type == "text"

    @property
    def is_voice(self) -> bool:
        return self.message_type in ("audio", "voice")


class ChannelProvider(ABC):
    """Abstract base class for messaging channels."""

    @abstractmethod
    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        """Send a text message."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if channel is operational."""
        ...

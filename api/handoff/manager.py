"""
Human Handoff Manager for the sales assistant.

Escalates qualified leads and booking requests to a human admin through
an optional notification sink.
"""

import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from dialogue.state import ConversationState

logger = logging.getLogger(__name__)

NotifyFn = Callable[[str], Union[bool, None, Awaitable[Union[bool, None]]]]


@dataclass
class NotificationResult:
    """Outcome of a notification attempt."""
    delivered: bool
    message: str


@dataclass
class BookingRequest:
    """Details collected before a booking is requested."""
    name: str
    phone: str
    date: str
    time: str
    notes: str = ""

    def summary(self) -> str:
        notes = (self.notes or "").strip() or "N/A"
        return (
            "New booking request:\n"
            f"Name: {self.name}\n"
            f"Phone: {self.phone}\n"
            f"Date: {self.date}\n"
            f"Time: {self.time}\n"
            f"Notes: {notes}"
        )


def build_lead_summary(state: ConversationState) -> str:
    """Plain-text lead card for the admin."""
    lines = [f"New qualified lead: {state.user_id}"]
    if state.topic:
        lines.append(f"Topic: {state.topic.value}")
    for name, value in state.slots.items():
        if value.is_filled:
            lines.append(f"{name.value}: {value.value}")
    return "\n".join(lines)


class HandoffManager:
    """
    Sends escalations to the admin.

    A missing sink is reported as "not configured" and never raises.
    Sink failures are logged and reported as not delivered.
    """

    NOTIFIED = "Admin has been notified."
    NOT_CONFIGURED = "Admin notification is not configured."
    FAILED = "Admin notification failed."
    BOOKING_NOTED = "Your booking request is noted. Our team will confirm shortly."

    def __init__(self, notify: Optional[NotifyFn] = None):
        self._notify = notify

    @property
    def is_configured(self) -> bool:
        return self._notify is not None

    async def notify_admin(self, text: str) -> NotificationResult:
        """Send a free-text message to the admin."""
        if self._notify is None:
            return NotificationResult(delivered=False, message=self.NOT_CONFIGURED)

        try:
            outcome = self._notify(text)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        except Exception as e:
            logger.error(f"Admin notification failed: {e}")
            return NotificationResult(delivered=False, message=self.FAILED)

        if outcome is False:
            return NotificationResult(delivered=False, message=self.FAILED)

        logger.info("Admin notified")
        return NotificationResult(delivered=True, message=self.NOTIFIED)

    async def notify_lead(self, state: ConversationState) -> NotificationResult:
        """Escalate a conversation that reached handoff."""
        return await self.notify_admin(build_lead_summary(state))

    async def request_booking(self, booking: BookingRequest) -> str:
        """Forward a booking request. The user-facing reply does not depend on delivery."""
        result = await self.notify_admin(booking.summary())
        logger.info(f"Booking request for {booking.phone}: {result.message}")
        return self.BOOKING_NOTED

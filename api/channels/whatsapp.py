"""
WhatsApp Channel for the sales assistant.

Sends through the Meta Cloud API and decodes its webhook payloads.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .base import ChannelMessage, ChannelProvider, ChannelResponse, InboundMessage

logger = logging.getLogger(__name__)


class MetaCloudWhatsApp(ChannelProvider):
    """WhatsApp via Meta Cloud API."""

    BASE_URL = "https://graph.facebook.com/v18.0"

    def __init__(self, api_token: str, phone_number_id: str):
        self.api_token = api_token
        self.phone_number_id = phone_number_id

    async def send_message(self, message: ChannelMessage) -> ChannelResponse:
        url = f"{self.BASE_URL}/{self.phone_number_id}/messages"
        headers = {"Authorization": f"Bearer {self.api_token}", "Content-Type": "application/json"}
        payload = {
            "messaging_product": "whatsapp",
            "to": message.to,
            "type": "text",
            "text": {"body": message.content},
        }
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(url, json=payload, headers=headers, timeout=10)
                resp.raise_for_status()
                data = resp.json()
                msg_id = data.get("messages", [{}])[0].get("id")
                return ChannelResponse(success=True, message_id=msg_id)
        except Exception as e:
            logger.error(f"Meta WhatsApp send failed: {e}")
            return ChannelResponse(success=False, error=str(e))

    async def health_check(self) -> bool:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(
                    f"{self.BASE_URL}/{self.phone_number_id}",
                    headers={"Authorization": f"Bearer {self.api_token}"},
                    timeout=5,
                )
                return resp.status_code == 200
        except httpx.HTTPError:
            return False


def _objects(container: Dict[str, Any], key: str) -> List[Dict[str, Any]]:
    items = container.get(key)
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def parse_webhook(payload: Dict[str, Any]) -> List[InboundMessage]:
    """
    Decode a Meta Cloud API webhook body into inbound messages.

    Status callbacks and malformed entries yield nothing.
    """
    messages: List[InboundMessage] = []
    for entry in _objects(payload, "entry"):
        for change in _objects(entry, "changes"):
            value = change.get("value")
            for raw in _objects(value if isinstance(value, dict) else {}, "messages"):
                sender = raw.get("from")
                if not isinstance(sender, str) or not sender:
                    continue
                message_type = raw.get("type") or "unknown"
                text = ""
                if message_type == "text" and isinstance(raw.get("text"), dict):
                    text = raw["text"].get("body") or ""
                messages.append(InboundMessage(
                    sender=sender,
                    message_type=message_type,
                    text=text,
                    message_id=raw.get("id"),
                ))
    return messages


class WhatsAppAdminNotifier:
    """Notification sink that messages the admin's WhatsApp number."""

    def __init__(self, channel: ChannelProvider, admin_number: Optional[str]):
        self.channel = channel
        self.admin_number = admin_number

    async def notify(self, text: str) -> bool:
        if not self.admin_number:
            logger.warning("Admin number not configured, notification skipped")
            return False
        result = await self.channel.send_message(ChannelMessage(to=self.admin_number, content=text))
        if not result.success:
            logger.error(f"Admin notification failed: {result.error}")
        return result.success

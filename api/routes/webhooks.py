"""
Webhook Routes for the sales assistant.

Receives WhatsApp (Meta Cloud API) events and answers each text message
with one dialogue turn.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse

from ..channels.base import ChannelMessage, InboundMessage
from ..channels.whatsapp import parse_webhook
from ..middleware.metrics import record_turn, record_turn_error
from ..services import get_services
from config.settings import get_settings
from llm.orchestrator import TurnRequest
from llm.prompt_templates import CannedReply

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/webhooks/whatsapp")
async def verify_whatsapp(
    mode: str = Query(default="", alias="hub.mode"),
    token: str = Query(default="", alias="hub.verify_token"),
    challenge: str = Query(default="", alias="hub.challenge"),
):
    """Meta webhook verification handshake."""
    expected = get_settings().whatsapp_verify_token
    if mode == "subscribe" and expected and token == expected:
        logger.info("WhatsApp webhook verified")
        return PlainTextResponse(challenge)
    logger.warning("WhatsApp webhook verification rejected")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(request: Request, background_tasks: BackgroundTasks) -> Dict[str, Any]:
    """
    Receive WhatsApp events.

    Text messages run a turn, voice notes get a "please type" notice and
    any other content gets the unsupported-content notice. Status
    callbacks are acknowledged and ignored.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = {}

    messages = parse_webhook(payload if isinstance(payload, dict) else {})
    for message in messages:
        background_tasks.add_task(_handle_inbound, message)

    return {"status": "received", "messages": len(messages)}


async def _handle_inbound(message: InboundMessage) -> None:
    """Produce and send the reply for one inbound WhatsApp message."""
    if message.is_text:
        reply = await _run_turn(message.sender, message.text)
    elif message.is_voice:
        reply = CannedReply.VOICE_NOTE
    else:
        logger.info(f"Unsupported WhatsApp message type from {message.sender}: {message.message_type}")
        reply = CannedReply.UNSUPPORTED_CONTENT

    if reply:
        await _send(message.sender, reply)


async def _run_turn(user_id: str, text: str) -> str:
    services = get_services()
    if not services.is_ready:
        logger.warning("Chat service not ready, WhatsApp message answered with apology")
        return CannedReply.APOLOGY
    if not text.strip():
        return ""

    async with services.user_lock(user_id):
        try:
            result = await services.orchestrator.process(TurnRequest(user_id=user_id, message=text))
        except Exception as e:
            logger.error(f"Turn failed for {user_id}: {e}")
            record_turn_error()
            return CannedReply.APOLOGY

    record_turn(result.route.value, result.processing_time_ms, result.dropped_lines)
    return result.reply


async def _send(to: str, text: str) -> None:
    services = get_services()
    if services.whatsapp is None:
        logger.warning(f"WhatsApp not configured, reply to {to} not sent")
        return
    result = await services.whatsapp.send_message(ChannelMessage(to=to, content=text))
    if not result.success:
        logger.error(f"WhatsApp reply to {to} failed: {result.error}")

"""
Human handoff API routes for the sales assistant.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from api.middleware.auth import api_key_auth
from api.handoff.manager import BookingRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/handoff", tags=["handoff"])


class BookingPayload(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    date: str = Field(..., min_length=1)
    time: str = Field(..., min_length=1)
    notes: str = ""


class NotifyPayload(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000)


def _handoff_manager():
    from api.services import get_services
    manager = get_services().handoff_manager
    if manager is None:
        raise HTTPException(status_code=503, detail="Handoff service is not available")
    return manager


@router.post("/booking")
async def create_booking(payload: BookingPayload, _=Depends(api_key_auth)):
    """Forward a booking request to the admin."""
    reply = await _handoff_manager().request_booking(BookingRequest(**payload.model_dump()))
    return {"status": "accepted", "message": reply}


@router.post("/notify")
async def notify_admin(payload: NotifyPayload, _=Depends(api_key_auth)):
    """Send a free-text message to the admin."""
    result = await _handoff_manager().notify_admin(payload.message)
    return {"delivered": result.delivered, "message": result.message}

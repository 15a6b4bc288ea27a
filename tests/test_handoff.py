"""Tests for the handoff manager and routes."""

import pytest

from api.handoff.manager import BookingRequest, HandoffManager, build_lead_summary
from conftest import RecordingNotifier
from dialogue.state import ConversationState, SlotName, SlotValue, Topic


@pytest.fixture
def booking():
    return BookingRequest(name="Ali", phone="03001234567", date="2026-11-02", time="3pm")


# ── Manager ───────────────────────────────────────────

class TestHandoffManager:
    async def test_not_configured(self):
        result = await HandoffManager().notify_admin("hello")
        assert not result.delivered
        assert result.message == "Admin notification is not configured."

    async def test_notified(self):
        notifier = RecordingNotifier()
        result = await HandoffManager(notify=notifier.notify).notify_admin("hello")
        assert result.delivered
        assert result.message == "Admin has been notified."
        assert notifier.sent == ["hello"]

    async def test_sync_sink(self):
        sent = []
        result = await HandoffManager(notify=sent.append).notify_admin("hello")
        assert result.delivered
        assert sent == ["hello"]

    async def test_sink_error_is_soft(self):
        notifier = RecordingNotifier(error=ConnectionError("offline"))
        result = await HandoffManager(notify=notifier.notify).notify_admin("hello")
        assert not result.delivered

    async def test_sink_returns_false(self):
        result = await HandoffManager(notify=RecordingNotifier(result=False).notify).notify_admin("hello")
        assert not result.delivered

    async def test_booking(self, booking):
        notifier = RecordingNotifier()
        reply = await HandoffManager(notify=notifier.notify).request_booking(booking)
        assert reply == "Your booking request is noted. Our team will confirm shortly."
        assert notifier.sent[0].startswith("New booking request:")
        assert "Notes: N/A" in notifier.sent[0]

    async def test_booking_without_sink(self, booking):
        reply = await HandoffManager().request_booking(booking)
        assert reply == HandoffManager.BOOKING_NOTED


def test_lead_summary():
    state = ConversationState(user_id="923001234567", topic=Topic.WEBSITE)
    state.set_slot(SlotName.BUSINESS_TYPE, SlotValue.of_text("restaurant"))
    state.set_slot(SlotName.WANTS_WEBSITE, SlotValue.of_flag(True))
    summary = build_lead_summary(state)
    assert summary.splitlines() == [
        "New qualified lead: 923001234567",
        "Topic: website",
        "business_type: restaurant",
        "wants_website: True",
    ]


# ── Routes ────────────────────────────────────────────

BOOKING = {"name": "Ali", "phone": "03001234567", "date": "2026-11-02", "time": "3pm", "notes": "menu site"}


def test_booking_route(client, notifier):
    resp = client.post("/api/v1/handoff/booking", json=BOOKING)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Your booking request is noted. Our team will confirm shortly."
    assert "Notes: menu site" in notifier.sent[0]


def test_notify_route(client, notifier):
    resp = client.post("/api/v1/handoff/notify", json={"message": "Call this lead"})
    assert resp.json() == {"delivered": True, "message": "Admin has been notified."}
    assert notifier.sent == ["Call this lead"]


def test_booking_validation(client):
    resp = client.post("/api/v1/handoff/booking", json={"name": "Ali"})
    assert resp.status_code == 422


class TestApiKey:
    @pytest.fixture(autouse=True)
    def api_key(self, monkeypatch):
        monkeypatch.setattr("api.middleware.auth.get_api_key", lambda: "secret")

    def test_missing_key(self, client):
        resp = client.post("/api/v1/handoff/notify", json={"message": "hi"})
        assert resp.status_code == 401

    def test_wrong_key(self, client):
        resp = client.post("/api/v1/handoff/notify", json={"message": "hi"}, headers={"X-API-Key": "nope"})
        assert resp.status_code == 403

    def test_valid_key(self, client):
        resp = client.post("/api/v1/handoff/notify", json={"message": "hi"}, headers={"X-API-Key": "secret"})
        assert resp.status_code == 200

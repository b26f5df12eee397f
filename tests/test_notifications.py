import json

import httpx

from repario.models.status_settings import StatusSettingOut
from repario.services.notifications import (
    WhatsAppNotifier,
    build_status_message,
    notify_status_change,
)


def _setting(**overrides):
    values = {
        "status": "done",
        "default_message": "Your device is ready.",
        "allow_extra_note": True,
        "send_whatsapp": True,
    }
    values.update(overrides)
    return StatusSettingOut(**values)


def _notifier(handler):
    return WhatsAppNotifier(
        token="token-123",
        phone_number_id="555",
        api_url="https://graph.example.com/v17.0/",
        transport=httpx.MockTransport(handler),
    )


def test_send_posts_text_message():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"messages": [{"id": "wamid.1"}]})

    result = _notifier(handler).send("+9647700000000", "Hello")

    assert result.success is True
    assert result.details == {"messages": [{"id": "wamid.1"}]}
    request = requests[0]
    assert str(request.url) == "https://graph.example.com/v17.0/555/messages"
    assert request.headers["Authorization"] == "Bearer token-123"
    assert json.loads(request.content) == {
        "messaging_product": "whatsapp",
        "to": "+9647700000000",
        "type": "text",
        "text": {"body": "Hello"},
    }


def test_send_reports_api_error():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "Invalid parameter"}})

    result = _notifier(handler).send("+100", "Hello")

    assert result.success is False
    assert result.details == {"error": {"message": "Invalid parameter"}}


def test_send_reports_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = _notifier(handler).send("+100", "Hello")

    assert result.success is False
    assert "connection refused" in result.details


def test_unconfigured_notifier_sends_nothing():
    notifier = WhatsAppNotifier(token=None, phone_number_id=None, api_url="https://graph.example.com")

    result = notifier.send("+100", "Hello")

    assert notifier.configured is False
    assert result.success is False
    assert result.details == "Not configured"


def test_build_status_message():
    assert build_status_message(_setting(), "  Bring the receipt ") == "Your device is ready.\n\nBring the receipt"
    assert build_status_message(_setting(), "   ") == "Your device is ready."
    assert build_status_message(_setting(allow_extra_note=False), "ignored") == "Your device is ready."


def test_notify_status_change_skips():
    class Failing:
        def send(self, phone, message):
            raise AssertionError("should not send")

    disabled = notify_status_change(Failing(), _setting(send_whatsapp=False), "+100")
    assert disabled.success is False
    assert disabled.details == "Disabled for this status"

    no_phone = notify_status_change(Failing(), _setting(), None)
    assert no_phone.details == "Customer has no phone number"

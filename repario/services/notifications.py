# repario/services/notifications.py
"""
Outbound customer notifications on invoice status changes.

Delivery is best-effort: every failure is logged and returned as
`{"success": False, "details": ...}`, and the status change that triggered
it has already been committed.
"""

import logging
from typing import Any, Optional, Protocol

import httpx

from repario.core.config import get_settings
from repario.models.invoices import NotificationResult
from repario.models.status_settings import StatusSettingOut

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, phone: str, message: str) -> NotificationResult:
        ...


class WhatsAppNotifier:
    """Sends text messages through the WhatsApp Cloud API."""

    def __init__(
        self,
        token: Optional[str],
        phone_number_id: Optional[str],
        api_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.token = token
        self.phone_number_id = phone_number_id
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.token and self.phone_number_id)

    def send(self, phone: str, message: str) -> NotificationResult:
        if not self.configured:
            return NotificationResult(success=False, details="Not configured")

        payload = {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "text",
            "text": {"body": message},
        }
        url = f"{self.api_url}/{self.phone_number_id}/messages"

        try:
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    url,
                    json=payload,
                    headers={"Authorization": f"Bearer {self.token}"},
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning("WhatsApp API rejected message: %s", exc.response.status_code)
            return NotificationResult(success=False, details=_response_details(exc.response))
        except httpx.HTTPError as exc:
            logger.warning("WhatsApp API request failed: %s", exc)
            return NotificationResult(success=False, details=str(exc))

        return NotificationResult(success=True, details=_response_details(response))


def _response_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


def get_notifier() -> Notifier:
    settings = get_settings()
    return WhatsAppNotifier(
        token=settings.WHATSAPP_TOKEN,
        phone_number_id=settings.WHATSAPP_PHONE_NUMBER_ID,
        api_url=settings.WHATSAPP_API_URL,
        timeout=settings.WHATSAPP_TIMEOUT,
    )


def build_status_message(setting: StatusSettingOut, extra_note: Optional[str] = None) -> str:
    message = setting.default_message
    if setting.allow_extra_note and extra_note and extra_note.strip():
        message = f"{message}\n\n{extra_note.strip()}"
    return message


def notify_status_change(
    notifier: Notifier,
    setting: StatusSettingOut,
    phone: Optional[str],
    extra_note: Optional[str] = None,
) -> NotificationResult:
    if not setting.send_whatsapp:
        return NotificationResult(success=False, details="Disabled for this status")
    if not phone:
        return NotificationResult(success=False, details="Customer has no phone number")

    result = notifier.send(phone, build_status_message(setting, extra_note))
    if not result.success:
        logger.warning("Status notification for status %s was not delivered", setting.status)
    return result

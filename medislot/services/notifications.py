"""Outbound notifications for booking events.

Delivery is best effort. Notifiers are built once at application startup,
stored on the application state and handed to request handlers, which
schedule sends as background tasks after the booking has committed. A
failed send is logged and never affects the booking outcome.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from medislot.core.config import Settings

logger = logging.getLogger(__name__)


# Message templates keyed by event
TEMPLATES: dict[str, dict[str, str]] = {
    "reservation_booked": {
        "subject": "Your appointment is confirmed",
        "body": "Your appointment on {{date}} at {{time}} is confirmed. "
        "Reference: {{reservation_id}}",
    },
    "reservation_received": {
        "subject": "New appointment booked",
        "body": "A new appointment was booked for {{date}} at {{time}}. "
        "Reference: {{reservation_id}}",
    },
    "reservation_cancelled": {
        "subject": "Appointment cancelled",
        "body": "The appointment on {{date}} at {{time}} has been cancelled. "
        "Reference: {{reservation_id}}",
    },
    "window_cancelled": {
        "subject": "Appointment cancelled by provider",
        "body": "Your provider is no longer available on {{date}}. "
        "Your appointment at {{time}} has been cancelled. "
        "Reference: {{reservation_id}}",
    },
}


class NotificationError(Exception):
    """Raised when a notifier cannot deliver a message."""

    pass


def render(template_code: str, variables: dict[str, Any]) -> tuple[str, str]:
    """Render a template's subject and body.

    Returns:
        Tuple of (subject, body)
    """
    template = TEMPLATES[template_code]
    subject = template["subject"]
    body = template["body"]
    for key, value in variables.items():
        placeholder = "{{" + key + "}}"
        subject = subject.replace(placeholder, str(value))
        body = body.replace(placeholder, str(value))
    return subject, body


class Notifier(ABC):
    """Abstract base class for notification senders."""

    @abstractmethod
    async def send(self, recipient_id: str, subject: str, body: str) -> None:
        """Send a message to a principal.

        Raises NotificationError on failure.
        """
        pass

    async def close(self) -> None:
        """Release any resources held by the notifier."""
        return None


class LoggingNotifier(Notifier):
    """Notifier that only writes messages to the log."""

    async def send(self, recipient_id: str, subject: str, body: str) -> None:
        logger.info(f"Notification to {recipient_id}: {subject}")


class WebhookNotifier(Notifier):
    """Notifier that posts messages to an HTTP endpoint.

    The receiving service resolves principal ids to contact details and
    delivers the message over its own channels.
    """

    def __init__(self, url: str, client: httpx.AsyncClient):
        self.url = url
        self.client = client

    async def send(self, recipient_id: str, subject: str, body: str) -> None:
        payload = {"recipientId": recipient_id, "subject": subject, "body": body}
        try:
            response = await self.client.post(self.url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"Webhook delivery failed: {exc}") from exc

    async def close(self) -> None:
        await self.client.aclose()


def build_notifier(settings: Settings) -> Notifier:
    """Create the notifier configured for this process."""
    if settings.notification_backend == "webhook":
        if not settings.notification_webhook_url:
            raise ValueError("notification_webhook_url is required for the webhook backend")
        client = httpx.AsyncClient(timeout=settings.notification_timeout_seconds)
        return WebhookNotifier(settings.notification_webhook_url, client)
    return LoggingNotifier()


async def dispatch_notification(
    notifier: Notifier,
    recipient_id: str,
    template_code: str,
    variables: dict[str, Any],
) -> bool:
    """Render and send a notification, logging any delivery failure.

    Returns:
        True if the notifier accepted the message
    """
    subject, body = render(template_code, variables)
    try:
        await notifier.send(recipient_id, subject, body)
    except NotificationError as exc:
        logger.warning(f"Notification {template_code} to {recipient_id} failed: {exc}")
        return False
    return True

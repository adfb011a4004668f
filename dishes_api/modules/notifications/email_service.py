"""Client for the notification service that sends account e-mails.

Uses the silent failure pattern: every send returns ``True`` on success and
``False`` on any error instead of raising, so callers can treat e-mail as a
non-critical side effect.
"""

import logging
from typing import Optional

import httpx

from dishes_api.config import settings

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def send_password_change_notification(self, email: str, full_name: Optional[str] = None) -> bool:
        """Ask the notification service to e-mail ``email`` about a password change."""
        payload = {"email": email, "full_name": full_name}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post("/api/v1/notifications/password-changed", json=payload)
                response.raise_for_status()
            logger.info("Queued password change notification for %s", email)
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                "HTTP error %s sending password change notification for %s: %s",
                e.response.status_code, email, e.response.text,
            )
            return False
        except httpx.RequestError as e:
            logger.error("Connection error sending password change notification for %s: %s", email, e)
            return False


def get_notification_service() -> Optional[NotificationService]:
    if not settings.notification_service_url:
        return None
    return NotificationService(settings.notification_service_url, settings.notification_timeout_seconds)

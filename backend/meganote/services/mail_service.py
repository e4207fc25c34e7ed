"""
Meganote Backend - Mail Delivery
=================================

What:  MailService implementations plus the factory that picks one from
       settings (MAIL_BACKEND=http|console).
How:   HttpMailService posts JSON to MAIL_API_URL with a Bearer key using
       httpx.AsyncClient. Any non-2xx answer, timeout or transport error is
       translated into DeliveryError.
"""

import logging
from functools import lru_cache
from typing import Optional

import httpx

from meganote.config import settings
from meganote.exceptions import DeliveryError
from meganote.services.mail_base import MailService

logger = logging.getLogger(__name__)


class HttpMailService(MailService):
    """Sends mail through a Resend-compatible HTTP relay."""

    def __init__(
        self,
        api_url: str,
        api_key: str,
        sender: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.sender = sender
        self.timeout = timeout
        # Injected by tests (httpx.MockTransport)
        self._transport = transport

    async def send(self, to: str, subject: str, body: str) -> None:
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "text": body,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "User-Agent": "Meganote/1.0",
        }

        logger.info("Sending mail '%s' to %s", subject, to)
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.error("Timeout sending mail to %s", to)
            raise DeliveryError(context={"reason": "timeout"}) from e
        except httpx.RequestError as e:
            logger.error("Request error sending mail: %s", e)
            raise DeliveryError(context={"reason": type(e).__name__}) from e

        if response.is_success:
            logger.info("Mail accepted by relay (status %d)", response.status_code)
            return

        try:
            error_message = response.json().get("message", response.text)
        except ValueError:
            error_message = response.text
        logger.error("Mail relay error (%d): %s", response.status_code, error_message)
        raise DeliveryError(
            context={"status_code": response.status_code, "relay_message": error_message}
        )


class ConsoleMailService(MailService):
    """Writes outgoing mail to the process log. Never fails."""

    async def send(self, to: str, subject: str, body: str) -> None:
        logger.info("Mail to %s | %s\n%s", to, subject, body)


@lru_cache
def get_mail_service() -> MailService:
    """Mail implementation selected by MAIL_BACKEND; one instance per process."""
    if settings.mail_backend == "http":
        return HttpMailService(
            api_url=settings.mail_api_url,
            api_key=settings.mail_api_key,
            sender=settings.mail_from,
            timeout=settings.mail_timeout,
        )
    return ConsoleMailService()

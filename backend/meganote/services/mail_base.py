"""
Meganote Backend - Abstract Mail Service Interface
===================================================

What:  Contract for outbound mail delivery.
How:   Concrete implementations inherit from MailService and implement send().
Who:   Password-reset flow (reset link) and the admin account update
       (change notification).

Implementations:
    - HttpMailService: posts to an HTTP mail relay (Resend-compatible API)
    - ConsoleMailService: logs the message instead of sending it (development)

Routes receive the implementation through the `get_mail_service`
dependency, so tests swap in a recording fake with
`app.dependency_overrides`.
"""

from abc import ABC, abstractmethod


class MailService(ABC):
    """
    Outbound mail capability.

    Contract:
        - send() returns only once the relay has accepted the message
        - every failure (transport, timeout, non-2xx answer) surfaces as
          DeliveryError; callers never see provider-specific exceptions
    """

    @abstractmethod
    async def send(self, to: str, subject: str, body: str) -> None:
        """
        Deliver a plain-text message to a single recipient.

        Raises:
            DeliveryError: The relay could not be reached or refused the message.
        """
        ...

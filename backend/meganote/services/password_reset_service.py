"""
Meganote Backend - Password Reset Flow
=======================================

States (stored on the account):
    NoResetPending  token NULL, issued_at NULL
    ResetRequested  token = sha256(secret), issued_at = issuance time
    Consumed        back to NoResetPending with a new password hash
    Expired         ResetRequested with now > issued_at + expiry; left in
                    place until a new request overwrites it

Only the digest of the secret is stored. The raw secret exists in the mailed
link and nowhere else.

Delivery failure is compensated: the pending ticket is cleared and committed
before DeliveryError propagates, so a ticket that was never delivered cannot
be redeemed.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from meganote.config import settings
from meganote.exceptions import DeliveryError, NotFoundError, ValidationError
from meganote.models.account import Account
from meganote.models.lifecycle import as_utc, utcnow
from meganote.security import generate_reset_secret, hash_password, hash_reset_secret
from meganote.services.mail_base import MailService

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid or expired token!"


def build_reset_link(secret: str) -> str:
    return f"{settings.frontend_url}/resetpassword/{secret}"


class PasswordResetService:

    async def request_reset(
        self,
        db: AsyncSession,
        email: str,
        mailer: MailService,
        now: Optional[datetime] = None,
    ) -> None:
        """Issue a ticket for a live account and mail its link. Overwrites a pending ticket."""
        result = await db.execute(select(Account).where(Account.email == email, Account.live()))
        account = result.scalars().first()
        if account is None:
            raise NotFoundError(resource="user", message="There is no user with that email!")

        secret = generate_reset_secret()
        account.password_reset_token = hash_reset_secret(secret)
        account.password_reset_at = now or utcnow()
        await db.commit()

        body = (
            f"Hello {account.fullname},\n\n"
            "Someone asked to reset the password of your Meganote account. "
            f"Follow this link within {settings.password_reset_expire_minutes} minutes "
            "to choose a new one:\n\n"
            f"{build_reset_link(secret)}\n\n"
            "If you did not ask for this, you can ignore this email.\n"
        )
        try:
            await mailer.send(account.email, "Password Reset", body)
        except DeliveryError:
            logger.error("Reset mail to account %s failed; clearing the ticket", account.id)
            account.clear_password_reset()
            await db.commit()
            raise

        logger.info("Password reset requested for account %s", account.id)

    async def reset_password(
        self,
        db: AsyncSession,
        secret: str,
        new_password: str,
        now: Optional[datetime] = None,
    ) -> Account:
        """Consume a ticket: valid only once and only within the expiry window."""
        result = await db.execute(
            select(Account).where(
                Account.password_reset_token == hash_reset_secret(secret),
                Account.live(),
            )
        )
        account = result.scalars().first()
        if account is None or account.password_reset_at is None:
            raise ValidationError(message=INVALID_TOKEN, field="token")

        expires_at = as_utc(account.password_reset_at) + timedelta(
            minutes=settings.password_reset_expire_minutes
        )
        if (now or utcnow()) > expires_at:
            logger.info("Expired reset ticket presented for account %s", account.id)
            raise ValidationError(message=INVALID_TOKEN, field="token")

        account.password_hash = await run_in_threadpool(hash_password, new_password)
        account.clear_password_reset()
        await db.flush()
        logger.info("Password reset completed for account %s", account.id)
        return account


password_reset_service = PasswordResetService()

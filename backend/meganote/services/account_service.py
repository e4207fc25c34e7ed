"""
Meganote Backend - Account Service
===================================

What:  Account CRUD for self-registration, self-service and administration.
How:   Stateless; every call receives the request-scoped AsyncSession. The
       uniqueness guard runs before every create/rename and again (through
       the unique indexes) at flush. Deletion is soft and refused while the
       account still owns live notes.
Who:   auth, account and users routes.

Password hashing is CPU bound, so it runs in Starlette's threadpool instead
of on the event loop.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from meganote.exceptions import DeliveryError, NotFoundError, PreconditionError
from meganote.models.account import DEFAULT_AVATAR_URL, DEFAULT_ROLE, Account
from meganote.models.record import Record
from meganote.schemas.account import (
    AccountAdminUpdateRequest,
    AccountCreateRequest,
    AccountListResponse,
    AccountResponse,
    CredentialsUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from meganote.security import hash_password
from meganote.services.mail_base import MailService
from meganote.services.query import QueryPlan, total_pages
from meganote.services.uniqueness import uniqueness_guard

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "User not found!"
HAS_ASSIGNED_NOTES = "Cannot delete users with assigned notes!"


class AccountService:
    """
    Business logic for accounts.

    Reads by id return the account whatever its lifecycle; list and search
    only return live accounts.
    """

    async def register(self, db: AsyncSession, data: RegisterRequest) -> AccountResponse:
        """Self-registration. The role is always the default one."""
        account = await self._create(
            db,
            username=data.username,
            fullname=data.fullname,
            email=data.email,
            password=data.password,
            role=DEFAULT_ROLE,
            avatar_url=data.avatar_url,
        )
        logger.info("Account registered: %s (%s)", account.username, account.id)
        return AccountResponse.model_validate(account)

    async def create_account(self, db: AsyncSession, data: AccountCreateRequest) -> AccountResponse:
        account = await self._create(
            db,
            username=data.username,
            fullname=data.fullname,
            email=data.email,
            password=data.password,
            role=data.role or DEFAULT_ROLE,
        )
        logger.info("Account created by administrator: %s (%s)", account.username, account.id)
        return AccountResponse.model_validate(account)

    async def _create(
        self,
        db: AsyncSession,
        username: str,
        fullname: str,
        email: str,
        password: str,
        role: str,
        avatar_url: Optional[str] = None,
    ) -> Account:
        await uniqueness_guard.ensure_username_available(db, username)
        await uniqueness_guard.ensure_email_available(db, email)

        account = Account(
            username=username,
            fullname=fullname,
            email=email,
            password_hash=await run_in_threadpool(hash_password, password),
            role=role,
            avatar_url=avatar_url or DEFAULT_AVATAR_URL,
        )
        db.add(account)
        await uniqueness_guard.flush_or_conflict(db)
        return account

    async def load(self, db: AsyncSession, account_id: uuid.UUID) -> Account:
        account = await db.get(Account, account_id)
        if account is None:
            raise NotFoundError(resource="user", resource_id=str(account_id), message=USER_NOT_FOUND)
        return account

    async def get_account(self, db: AsyncSession, account_id: uuid.UUID) -> AccountResponse:
        return AccountResponse.model_validate(await self.load(db, account_id))

    async def list_all(self, db: AsyncSession) -> List[AccountResponse]:
        result = await db.execute(
            select(Account).where(Account.live()).order_by(Account.created_at.desc())
        )
        return [AccountResponse.model_validate(a) for a in result.scalars().all()]

    async def search(self, db: AsyncSession, plan: QueryPlan) -> AccountListResponse:
        count = await db.scalar(
            select(func.count()).select_from(Account).where(*plan.conditions)
        )
        result = await db.execute(
            select(Account)
            .where(*plan.conditions)
            .order_by(Account.created_at.desc())
            .offset(plan.window.offset)
            .limit(plan.window.limit)
        )
        users = [AccountResponse.model_validate(a) for a in result.scalars().all()]
        return AccountListResponse(
            users=users,
            total_page=total_pages(count or 0, plan.window.limit),
            count=count or 0,
        )

    async def update_credentials(
        self, db: AsyncSession, account_id: uuid.UUID, data: CredentialsUpdateRequest
    ) -> AccountResponse:
        """Self-service username/email change, plus the password when one is given."""
        account = await self.load(db, account_id)
        await uniqueness_guard.ensure_username_available(db, data.username, exclude_id=account.id)
        await uniqueness_guard.ensure_email_available(db, data.email, exclude_id=account.id)

        account.username = data.username
        account.email = data.email
        if data.password:
            account.password_hash = await run_in_threadpool(hash_password, data.password)

        await uniqueness_guard.flush_or_conflict(db)
        return AccountResponse.model_validate(account)

    async def update_profile(
        self, db: AsyncSession, account_id: uuid.UUID, data: ProfileUpdateRequest
    ) -> AccountResponse:
        account = await self.load(db, account_id)
        account.fullname = data.fullname
        if data.avatar_url:
            account.avatar_url = data.avatar_url
        await db.flush()
        return AccountResponse.model_validate(account)

    async def admin_update(
        self, db: AsyncSession, account_id: uuid.UUID, data: AccountAdminUpdateRequest
    ) -> AccountResponse:
        account = await self.load(db, account_id)
        await uniqueness_guard.ensure_username_available(db, data.username, exclude_id=account.id)
        await uniqueness_guard.ensure_email_available(db, data.email, exclude_id=account.id)

        account.username = data.username
        account.fullname = data.fullname
        account.email = data.email
        account.role = data.role
        account.active = data.active

        await uniqueness_guard.flush_or_conflict(db)
        logger.info("Account %s updated by administrator", account.id)
        return AccountResponse.model_validate(account)

    async def delete_account(self, db: AsyncSession, account_id: uuid.UUID) -> str:
        """
        Soft-delete an account. Refused while it owns any live note.
        Deleting an already deleted account succeeds and keeps the first
        deletion time.
        """
        owned = await db.scalar(
            select(Record.id).where(Record.owner_id == account_id, Record.live()).limit(1)
        )
        if owned is not None:
            raise PreconditionError(message=HAS_ASSIGNED_NOTES, context={"user_id": str(account_id)})

        account = await self.load(db, account_id)
        if account.mark_deleted():
            await db.flush()
            logger.info("Account %s soft-deleted", account.id)
        return f'User "{account.fullname}" has been deleted!'


async def notify_account_updated(mailer: MailService, email: str, username: str) -> None:
    """
    Background task run after an administrator update. A delivery failure is
    logged; the update itself has already been committed.
    """
    body = (
        f"Hello {username},\n\n"
        "Your Meganote account details were updated by an administrator. "
        "If you did not expect this change, please contact your administrator.\n"
    )
    try:
        await mailer.send(email, "Account Updated", body)
    except DeliveryError as e:
        logger.warning("Account update notification to %s failed: %s", email, e.context)


account_service = AccountService()

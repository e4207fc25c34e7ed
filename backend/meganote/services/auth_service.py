"""
Meganote Backend - Auth Service
================================

What:  Credential check and session token issuance for POST /auth.
How:   Exact username match among live accounts, bcrypt verification in the
       threadpool, then a signed token carrying the UserInfo claims.

Failure messages distinguish an unknown (or deleted, or suspended) username
from a wrong password; both are 401.
"""

import logging
from typing import Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from meganote.exceptions import AuthenticationError
from meganote.models.account import Account
from meganote.schemas.account import AccountResponse
from meganote.security import create_access_token, verify_password

logger = logging.getLogger(__name__)


class AuthService:

    async def login(self, db: AsyncSession, username: str, password: str) -> Tuple[AccountResponse, str]:
        result = await db.execute(
            select(Account).where(Account.username == username, Account.live())
        )
        account = result.scalars().first()

        if account is None or not account.active:
            logger.info("Login refused for unknown or inactive username '%s'", username)
            raise AuthenticationError(message="Username not found!")

        if not await run_in_threadpool(verify_password, password, account.password_hash):
            logger.info("Login refused for '%s': wrong password", username)
            raise AuthenticationError(message="Incorrect password!")

        token = create_access_token(
            account_id=account.id,
            username=account.username,
            role=account.role,
            avatar_url=account.avatar_url,
        )
        logger.info("Account %s logged in", account.id)
        return AccountResponse.model_validate(account), token


auth_service = AuthService()

"""
Meganote Backend - Account Service Tests
=========================================

What we test:
    ✅ Registration always assigns the default role and avatar
    ✅ Admin creation honours the requested role
    ✅ Delete guard: refused while the account owns live notes
    ✅ Deleted accounts disappear from lists but stay readable by id
    ✅ Repeated delete keeps the first deletion time
    ✅ Admin update notification failures are only logged
"""

import logging
import uuid
from datetime import datetime, timezone

import pytest

from meganote.exceptions import ConflictError, NotFoundError, PreconditionError
from meganote.models.account import DEFAULT_AVATAR_URL
from meganote.models.lifecycle import Deleted
from meganote.models.record import Record
from meganote.schemas.account import (
    AccountAdminUpdateRequest,
    AccountCreateRequest,
    CredentialsUpdateRequest,
    ProfileUpdateRequest,
    RegisterRequest,
)
from meganote.security import verify_password
from meganote.services.account_service import AccountService, notify_account_updated
from meganote.services.query import compose_account_query


def _register(username="alice", email=None):
    return RegisterRequest(
        username=username,
        fullname=f"{username.title()} Example",
        email=email or f"{username}@example.com",
        password="pw-123456",
    )


class TestRegistration:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_register_defaults(self, db_session):
        user = await self.service.register(db_session, _register())

        assert user.role == "Employee"
        assert user.active is True
        assert user.avatar_url == DEFAULT_AVATAR_URL
        assert user.is_deleted is False

    @pytest.mark.asyncio
    async def test_password_is_stored_hashed(self, db_session):
        user = await self.service.register(db_session, _register())

        account = await self.service.load(db_session, user.id)
        assert account.password_hash != "pw-123456"
        assert verify_password("pw-123456", account.password_hash)

    @pytest.mark.asyncio
    async def test_username_differing_only_in_case_conflicts(self, db_session):
        await self.service.register(db_session, _register("alice"))

        with pytest.raises(ConflictError):
            await self.service.register(db_session, _register("ALICE", email="other@example.com"))

    @pytest.mark.asyncio
    async def test_admin_create_uses_requested_role(self, db_session):
        user = await self.service.create_account(
            db_session,
            AccountCreateRequest(
                username="boss", fullname="The Boss", email="boss@example.com",
                password="pw", role="Admin",
            ),
        )
        assert user.role == "Admin"


class TestUpdates:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_credentials_update_changes_password_only_when_given(self, db_session):
        user = await self.service.register(db_session, _register())

        await self.service.update_credentials(
            db_session, user.id, CredentialsUpdateRequest(username="alice2", email="a2@example.com")
        )
        account = await self.service.load(db_session, user.id)
        assert account.username == "alice2"
        assert verify_password("pw-123456", account.password_hash)

        await self.service.update_credentials(
            db_session, user.id,
            CredentialsUpdateRequest(username="alice2", email="a2@example.com", password="new-pw"),
        )
        assert verify_password("new-pw", account.password_hash)

    @pytest.mark.asyncio
    async def test_credentials_update_checks_other_accounts(self, db_session):
        await self.service.register(db_session, _register("alice"))
        bob = await self.service.register(db_session, _register("bob"))

        with pytest.raises(ConflictError):
            await self.service.update_credentials(
                db_session, bob.id, CredentialsUpdateRequest(username="Alice", email="bob@example.com")
            )

    @pytest.mark.asyncio
    async def test_profile_update(self, db_session):
        user = await self.service.register(db_session, _register())

        updated = await self.service.update_profile(
            db_session, user.id, ProfileUpdateRequest(fullname="Alice L.", avatarUrl="https://img/x.png")
        )

        assert updated.fullname == "Alice L."
        assert updated.avatar_url == "https://img/x.png"

    @pytest.mark.asyncio
    async def test_admin_update_can_suspend(self, db_session):
        user = await self.service.register(db_session, _register())

        updated = await self.service.admin_update(
            db_session,
            user.id,
            AccountAdminUpdateRequest(
                username="alice", fullname="Alice", email="alice@example.com",
                role="Manager", active=False,
            ),
        )

        assert updated.role == "Manager"
        assert updated.active is False

    @pytest.mark.asyncio
    async def test_unknown_account(self, db_session):
        with pytest.raises(NotFoundError):
            await self.service.get_account(db_session, uuid.uuid4())


class TestSoftDelete:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_delete_refused_while_owning_live_notes(self, db_session):
        user = await self.service.register(db_session, _register())
        db_session.add(Record(owner_id=user.id, title="Task", text="t", ticket=500))
        await db_session.flush()

        with pytest.raises(PreconditionError) as exc_info:
            await self.service.delete_account(db_session, user.id)

        assert exc_info.value.message == "Cannot delete users with assigned notes!"

    @pytest.mark.asyncio
    async def test_deleted_notes_do_not_block_delete(self, db_session):
        user = await self.service.register(db_session, _register())
        record = Record(owner_id=user.id, title="Task", text="t", ticket=500)
        db_session.add(record)
        await db_session.flush()
        record.mark_deleted()
        await db_session.flush()

        message = await self.service.delete_account(db_session, user.id)

        assert message == 'User "Alice Example" has been deleted!'

    @pytest.mark.asyncio
    async def test_deleted_account_hidden_from_lists_but_readable_by_id(self, db_session):
        user = await self.service.register(db_session, _register())
        await self.service.delete_account(db_session, user.id)

        listed = await self.service.search(db_session, compose_account_query())
        assert listed.count == 0
        assert listed.users == []
        assert await self.service.list_all(db_session) == []

        fetched = await self.service.get_account(db_session, user.id)
        assert fetched.is_deleted is True
        assert fetched.deleted_at is not None

    @pytest.mark.asyncio
    async def test_second_delete_keeps_original_time(self, db_session):
        user = await self.service.register(db_session, _register())
        account = await self.service.load(db_session, user.id)
        first = datetime(2024, 1, 1, tzinfo=timezone.utc)
        account.mark_deleted(at=first)
        await db_session.flush()

        await self.service.delete_account(db_session, user.id)

        assert account.lifecycle == Deleted(at=first)

    @pytest.mark.asyncio
    async def test_delete_unknown_account(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            await self.service.delete_account(db_session, uuid.uuid4())
        assert exc_info.value.message == "User not found!"


class TestSearch:

    def setup_method(self):
        self.service = AccountService()

    @pytest.mark.asyncio
    async def test_pagination_totals(self, db_session):
        for name in ("ann", "ben", "cat"):
            await self.service.register(db_session, _register(name))

        page = await self.service.search(db_session, compose_account_query(page="2", limit="2"))

        assert page.count == 3
        assert page.total_page == 2
        assert len(page.users) == 1

    @pytest.mark.asyncio
    async def test_page_past_the_end_is_empty(self, db_session):
        await self.service.register(db_session, _register())

        page = await self.service.search(db_session, compose_account_query(page="9"))

        assert page.users == []
        assert page.count == 1


class TestNotification:

    @pytest.mark.asyncio
    async def test_notification_sent(self, mail_outbox):
        await notify_account_updated(mail_outbox, "a@example.com", "alice")

        assert len(mail_outbox.sent) == 1
        assert mail_outbox.sent[0].subject == "Account Updated"

    @pytest.mark.asyncio
    async def test_notification_failure_is_logged_not_raised(self, mail_outbox, caplog):
        mail_outbox.fail = True

        with caplog.at_level(logging.WARNING):
            await notify_account_updated(mail_outbox, "a@example.com", "alice")

        assert "notification" in caplog.text

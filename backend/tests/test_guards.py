"""
Meganote Backend - Uniqueness Guard and Ticket Sequence Tests
==============================================================

What we test:
    ✅ Tickets start at 500 and increase by one, seeded on first use
    ✅ A rolled-back allocation does not leave a gap
    ✅ Username conflicts ignore case; email conflicts are exact
    ✅ Deleted accounts release their username
    ✅ The entity being updated never conflicts with itself
    ✅ Unique-index violations surface as ConflictError (race path)
    ✅ The conflicting key is read from the index name, not the clashing value
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from meganote.exceptions import ConflictError, UnexpectedError
from meganote.models.account import Account
from meganote.models.counter import Counter
from meganote.models.record import Record
from meganote.services.sequence import TICKET_SEQUENCE, SequenceService
from meganote.services.uniqueness import EMAIL_TAKEN, TITLE_TAKEN, USERNAME_TAKEN, UniquenessGuard


def _account(username="alice", email="alice@example.com"):
    return Account(username=username, fullname=username.title(), email=email, password_hash="h")


class TestSequence:

    def setup_method(self):
        self.service = SequenceService()

    @pytest.mark.asyncio
    async def test_first_ticket_is_500_and_increments(self, db_session):
        values = [await self.service.next_value(db_session) for _ in range(3)]
        assert values == [500, 501, 502]

    @pytest.mark.asyncio
    async def test_counter_row_is_persisted(self, db_session):
        await self.service.next_value(db_session)
        await self.service.next_value(db_session)

        counter = await db_session.get(Counter, TICKET_SEQUENCE)
        await db_session.refresh(counter)
        assert counter.seq == 501

    @pytest.mark.asyncio
    async def test_existing_counter_row_is_continued(self, db_session):
        db_session.add(Counter(id=TICKET_SEQUENCE, seq=741))
        await db_session.flush()

        assert await self.service.next_value(db_session) == 742

    @pytest.mark.asyncio
    async def test_rolled_back_allocation_is_reissued(self, db_session):
        assert await self.service.next_value(db_session) == 500
        await db_session.commit()

        assert await self.service.next_value(db_session) == 501
        await db_session.rollback()

        assert await self.service.next_value(db_session) == 501


class TestUniquenessGuard:

    def setup_method(self):
        self.guard = UniquenessGuard()

    @pytest.mark.asyncio
    async def test_username_conflict_is_case_insensitive(self, db_session):
        db_session.add(_account("Alice"))
        await db_session.flush()

        with pytest.raises(ConflictError) as exc_info:
            await self.guard.ensure_username_available(db_session, "aLiCe")

        assert exc_info.value.message == USERNAME_TAKEN

    @pytest.mark.asyncio
    async def test_email_conflict_is_exact(self, db_session):
        db_session.add(_account(email="alice@example.com"))
        await db_session.flush()

        await self.guard.ensure_email_available(db_session, "Alice@Example.com")
        with pytest.raises(ConflictError) as exc_info:
            await self.guard.ensure_email_available(db_session, "alice@example.com")

        assert exc_info.value.message == EMAIL_TAKEN

    @pytest.mark.asyncio
    async def test_deleted_account_releases_its_username(self, db_session):
        account = _account()
        db_session.add(account)
        await db_session.flush()
        account.mark_deleted()
        await db_session.flush()

        await self.guard.ensure_username_available(db_session, "alice")

    @pytest.mark.asyncio
    async def test_self_is_excluded(self, db_session):
        account = _account()
        db_session.add(account)
        await db_session.flush()

        await self.guard.ensure_username_available(db_session, "ALICE", exclude_id=account.id)

    @pytest.mark.asyncio
    async def test_deleted_note_still_blocks_its_title(self, db_session):
        """Inherited behavior: the title pre-check scans deleted notes too."""
        owner = _account()
        db_session.add(owner)
        await db_session.flush()
        record = Record(owner_id=owner.id, title="Fix bug", text="t", ticket=500)
        db_session.add(record)
        await db_session.flush()
        record.mark_deleted()
        await db_session.flush()

        with pytest.raises(ConflictError) as exc_info:
            await self.guard.ensure_title_available(db_session, "fix BUG")

        assert exc_info.value.message == TITLE_TAKEN

    @pytest.mark.asyncio
    async def test_index_violation_becomes_username_conflict(self, db_session):
        """Two writers that both passed the pre-check: the second insert hits the index."""
        db_session.add(_account("bob", "bob@one.io"))
        await db_session.flush()
        db_session.add(_account("BOB", "bob@two.io"))

        with pytest.raises(ConflictError) as exc_info:
            await self.guard.flush_or_conflict(db_session)

        assert exc_info.value.message == USERNAME_TAKEN

    @pytest.mark.asyncio
    async def test_index_violation_becomes_email_conflict(self, db_session):
        db_session.add(_account("carol", "same@x.io"))
        await db_session.flush()
        db_session.add(_account("dave", "same@x.io"))

        with pytest.raises(ConflictError) as exc_info:
            await self.guard.flush_or_conflict(db_session)

        assert exc_info.value.message == EMAIL_TAKEN

    @pytest.mark.asyncio
    async def test_index_violation_becomes_title_conflict(self, db_session):
        owner = _account()
        db_session.add(owner)
        await db_session.flush()
        db_session.add(Record(owner_id=owner.id, title="Deploy", text="t", ticket=500))
        await db_session.flush()
        db_session.add(Record(owner_id=owner.id, title="DEPLOY", text="t", ticket=501))

        with pytest.raises(ConflictError) as exc_info:
            await self.guard.flush_or_conflict(db_session)

        assert exc_info.value.message == TITLE_TAKEN

    @pytest.mark.asyncio
    async def test_index_allows_reuse_after_soft_delete(self, db_session):
        first = _account("erin", "erin@x.io")
        db_session.add(first)
        await db_session.flush()
        first.mark_deleted()
        await db_session.flush()

        db_session.add(_account("erin", "erin@x.io"))
        await self.guard.flush_or_conflict(db_session)

        result = await db_session.execute(select(Account).where(Account.username == "erin"))
        assert len(result.scalars().all()) == 2

    @pytest.mark.asyncio
    async def test_other_integrity_errors_are_unexpected(self, db_session):
        owner = _account()
        db_session.add(owner)
        await db_session.flush()
        db_session.add(Record(owner_id=owner.id, title="One", text="t", ticket=500))
        await db_session.flush()
        db_session.add(Record(owner_id=owner.id, title="Two", text="t", ticket=500))

        with pytest.raises(UnexpectedError):
            await self.guard.flush_or_conflict(db_session)


class _FailingFlushSession:
    """Stands in for a session whose flush hits a PostgreSQL unique index."""

    def __init__(self, message):
        self.message = message

    async def flush(self):
        raise IntegrityError("INSERT ...", {}, Exception(self.message))


class TestPostgresMessages:

    def setup_method(self):
        self.guard = UniquenessGuard()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "message, expected, field",
        [
            (
                'duplicate key value violates unique constraint "uq_records_title_live"\n'
                "DETAIL:  Key (lower(title::text))=(email setup) already exists.",
                TITLE_TAKEN,
                "title",
            ),
            (
                'duplicate key value violates unique constraint "uq_accounts_username_live"\n'
                "DETAIL:  Key (lower(username::text))=(email_admin) already exists.",
                USERNAME_TAKEN,
                "username",
            ),
            (
                'duplicate key value violates unique constraint "uq_accounts_email_live"\n'
                "DETAIL:  Key (email)=(username@title.io) already exists.",
                EMAIL_TAKEN,
                "email",
            ),
        ],
    )
    async def test_conflict_kind_follows_the_index_name(self, message, expected, field):
        with pytest.raises(ConflictError) as exc_info:
            await self.guard.flush_or_conflict(_FailingFlushSession(message))

        assert exc_info.value.message == expected
        assert exc_info.value.context["field"] == field

"""
Meganote Backend - Record (Note) Service
=========================================

What:  Note CRUD and paginated search.
How:   Stateless; every call receives the request-scoped AsyncSession.

Create workflow:
    1. Owner must exist (any lifecycle)
    2. Title pre-check (uniqueness guard)
    3. Ticket allocated from the counter row (same transaction)
    4. Insert; a unique-index violation becomes ConflictError

Owner rendering:
    Reads outer-join the owner account. Its username and role are shown;
    when the owner row cannot be resolved the note shows "Unassigned".
"""

import logging
import uuid
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.exceptions import NotFoundError
from meganote.models.account import Account
from meganote.models.record import Record
from meganote.schemas.record import (
    UNASSIGNED,
    RecordCreateRequest,
    RecordListResponse,
    RecordResponse,
    RecordUpdateRequest,
)
from meganote.services.query import QueryPlan, total_pages
from meganote.services.sequence import sequence_service
from meganote.services.uniqueness import uniqueness_guard

logger = logging.getLogger(__name__)


def to_response(record: Record, username: Optional[str] = None, role: Optional[str] = None) -> RecordResponse:
    return RecordResponse(
        id=record.id,
        user=record.owner_id,
        username=username or UNASSIGNED,
        role=role or "",
        title=record.title,
        text=record.text,
        status=record.status,
        ticket=record.ticket,
        is_deleted=record.is_deleted,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _with_owner():
    return select(Record, Account.username, Account.role).outerjoin(
        Account, Account.id == Record.owner_id
    )


class RecordService:

    async def create_record(self, db: AsyncSession, data: RecordCreateRequest) -> RecordResponse:
        owner = await self._require_owner(db, data.user)
        await uniqueness_guard.ensure_title_available(db, data.title)

        ticket = await sequence_service.next_value(db)
        record = Record(
            owner_id=owner.id,
            title=data.title,
            text=data.text,
            status=data.status,
            ticket=ticket,
        )
        db.add(record)
        await uniqueness_guard.flush_or_conflict(db)

        logger.info("Note #%d created for account %s", ticket, owner.id)
        return to_response(record, owner.username, owner.role)

    async def get_record(self, db: AsyncSession, record_id: uuid.UUID) -> RecordResponse:
        """Lookup by id. Soft-deleted notes are still returned."""
        row = (await db.execute(_with_owner().where(Record.id == record_id))).first()
        if row is None:
            raise NotFoundError(resource="note", resource_id=str(record_id), message="Note not found!")
        return to_response(*row)

    async def list_all(self, db: AsyncSession) -> List[RecordResponse]:
        result = await db.execute(
            _with_owner()
            .where(Record.live())
            .order_by(Record.created_at.desc(), Record.ticket.desc())
        )
        return [to_response(*row) for row in result.all()]

    async def search(self, db: AsyncSession, plan: QueryPlan) -> RecordListResponse:
        count = await db.scalar(
            select(func.count()).select_from(Record).where(*plan.conditions)
        ) or 0
        result = await db.execute(
            _with_owner()
            .where(*plan.conditions)
            .order_by(Record.created_at.desc(), Record.ticket.desc())
            .offset(plan.window.offset)
            .limit(plan.window.limit)
        )
        return RecordListResponse(
            notes=[to_response(*row) for row in result.all()],
            total_page=total_pages(count, plan.window.limit),
            count=count,
        )

    async def update_record(
        self, db: AsyncSession, record_id: uuid.UUID, data: RecordUpdateRequest
    ) -> Tuple[RecordResponse, str]:
        record = await self._load(db, record_id)
        owner = await self._require_owner(db, data.user)
        await uniqueness_guard.ensure_title_available(db, data.title, exclude_id=record.id)

        record.owner_id = owner.id
        record.title = data.title
        record.text = data.text
        record.status = data.status
        await uniqueness_guard.flush_or_conflict(db)

        logger.info("Note #%d updated", record.ticket)
        return to_response(record, owner.username, owner.role), f"'Note #{record.ticket}' updated successfully!"

    async def delete_record(self, db: AsyncSession, record_id: uuid.UUID) -> str:
        record = await self._load(db, record_id)
        if record.mark_deleted():
            await db.flush()
            logger.info("Note #%d soft-deleted", record.ticket)
        return f"Note #{record.ticket} deleted successfully!"

    async def _load(self, db: AsyncSession, record_id: uuid.UUID) -> Record:
        record = await db.get(Record, record_id)
        if record is None:
            raise NotFoundError(resource="note", resource_id=str(record_id), message="Note not found!")
        return record

    async def _require_owner(self, db: AsyncSession, owner_id: uuid.UUID) -> Account:
        owner = await db.get(Account, owner_id)
        if owner is None:
            raise NotFoundError(resource="user", resource_id=str(owner_id), message="User not found!")
        return owner


record_service = RecordService()

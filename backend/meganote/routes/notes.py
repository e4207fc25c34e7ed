"""
Meganote Backend - Notes Route Handlers
========================================

Session required:
    GET    /notes          paginated search (page, limit, term, status, ticket)
    POST   /notes          create a note; a ticket number is allocated
    GET    /notes/all      every live note
    GET    /notes/{id}     read one note, deleted ones included
    PATCH  /notes/{id}     replace owner, title, text and status
    DELETE /notes/{id}     soft delete

Search parameters:
    term    matches owner display names first, note titles otherwise
    status  EXCLUDES notes with that status (kept for client compatibility)
    ticket  exact ticket number
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.database import get_db_session
from meganote.dependencies import get_current_identity
from meganote.schemas.common import ErrorResponse, MessageResponse
from meganote.schemas.record import (
    RecordCollectionResponse,
    RecordCreateRequest,
    RecordEnvelope,
    RecordListResponse,
    RecordMutationResponse,
    RecordUpdateRequest,
)
from meganote.services.query import compose_record_query
from meganote.services.record_service import record_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/notes",
    tags=["Notes"],
    dependencies=[Depends(get_current_identity)],
    responses={
        401: {"description": "Missing credential", "model": ErrorResponse},
        403: {"description": "Invalid or expired credential", "model": ErrorResponse},
    },
)


@router.get("", response_model=RecordListResponse, summary="Search notes")
async def search_notes(
    page: Optional[str] = Query(default=None, description="Page number, 1-based (default 1)"),
    limit: Optional[str] = Query(default=None, description="Page size (default 10)"),
    term: Optional[str] = Query(default=None, description="Owner display name or title substring"),
    status_filter: Optional[str] = Query(default=None, alias="status", description="Status to exclude"),
    ticket: Optional[str] = Query(default=None, description="Exact ticket number"),
    db: AsyncSession = Depends(get_db_session),
) -> RecordListResponse:
    plan = await compose_record_query(
        db, page=page, limit=limit, term=term, status=status_filter, ticket=ticket
    )
    return await record_service.search(db, plan)


@router.post(
    "",
    response_model=RecordMutationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Owner not found or bad input", "model": ErrorResponse},
        409: {"description": "Title taken", "model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    body: RecordCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RecordMutationResponse:
    note = await record_service.create_record(db, body)
    return RecordMutationResponse(message="New note created successfully!", note=note)


@router.get("/all", response_model=RecordCollectionResponse, summary="List every live note")
async def list_all_notes(db: AsyncSession = Depends(get_db_session)) -> RecordCollectionResponse:
    return RecordCollectionResponse(notes=await record_service.list_all(db))


@router.get("/{note_id}", response_model=RecordEnvelope, summary="Get a note")
async def get_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> RecordEnvelope:
    return RecordEnvelope(note=await record_service.get_record(db, note_id))


@router.patch(
    "/{note_id}",
    response_model=RecordMutationResponse,
    responses={409: {"description": "Title taken", "model": ErrorResponse}},
    summary="Update a note",
)
async def update_note(
    note_id: UUID,
    body: RecordUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> RecordMutationResponse:
    note, message = await record_service.update_record(db, note_id, body)
    return RecordMutationResponse(message=message, note=note)


@router.delete("/{note_id}", response_model=MessageResponse, summary="Soft-delete a note")
async def delete_note(
    note_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return MessageResponse(message=await record_service.delete_record(db, note_id))

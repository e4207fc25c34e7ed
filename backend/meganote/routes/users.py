"""
Meganote Backend - User Administration Routes
==============================================

Session required:
    GET    /users          paginated search (page, limit, fullname, role, active)
    POST   /users          create an account (role optional)
    GET    /users/all      every live account
    GET    /users/{id}     read one account, deleted ones included
    PATCH  /users/{id}     administrative update; mails "Account Updated"
    DELETE /users/{id}     soft delete, refused while the user owns live notes

Any authenticated session may call these routes; roles are not enforced.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.database import get_db_session
from meganote.dependencies import get_current_identity, get_mail_service
from meganote.schemas.account import (
    AccountAdminUpdateRequest,
    AccountCollectionResponse,
    AccountCreateRequest,
    AccountCreatedResponse,
    AccountEnvelope,
    AccountListResponse,
    AccountUpdatedResponse,
)
from meganote.schemas.common import ErrorResponse, MessageResponse
from meganote.services.account_service import account_service, notify_account_updated
from meganote.services.mail_base import MailService
from meganote.services.query import compose_account_query

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"],
    dependencies=[Depends(get_current_identity)],
    responses={
        401: {"description": "Missing credential", "model": ErrorResponse},
        403: {"description": "Invalid or expired credential", "model": ErrorResponse},
    },
)


@router.get("", response_model=AccountListResponse, summary="Search users")
async def search_users(
    page: Optional[str] = Query(default=None, description="Page number, 1-based (default 1)"),
    limit: Optional[str] = Query(default=None, description="Page size (default 10)"),
    fullname: Optional[str] = Query(default=None, description="Substring of the display name"),
    role: Optional[str] = Query(default=None, description="Substring of the role"),
    active: Optional[str] = Query(default=None, description="'true' or 'false'"),
    db: AsyncSession = Depends(get_db_session),
) -> AccountListResponse:
    plan = compose_account_query(page=page, limit=limit, fullname=fullname, role=role, active=active)
    return await account_service.search(db, plan)


@router.post(
    "",
    response_model=AccountCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Create a user",
)
async def create_user(
    body: AccountCreateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AccountCreatedResponse:
    user = await account_service.create_account(db, body)
    return AccountCreatedResponse(message=f"New user {user.username} created!", user=user)


@router.get("/all", response_model=AccountCollectionResponse, summary="List every live user")
async def list_all_users(db: AsyncSession = Depends(get_db_session)) -> AccountCollectionResponse:
    return AccountCollectionResponse(users=await account_service.list_all(db))


@router.get("/{user_id}", response_model=AccountEnvelope, summary="Get a user")
async def get_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> AccountEnvelope:
    return AccountEnvelope(user=await account_service.get_account(db, user_id))


@router.patch(
    "/{user_id}",
    response_model=AccountUpdatedResponse,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Update a user",
)
async def update_user(
    user_id: UUID,
    body: AccountAdminUpdateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db_session),
    mailer: MailService = Depends(get_mail_service),
) -> AccountUpdatedResponse:
    user = await account_service.admin_update(db, user_id, body)
    # Runs after the response is sent; a mail failure is only logged
    background_tasks.add_task(notify_account_updated, mailer, user.email, user.username)
    return AccountUpdatedResponse(message=f"User {user.username} updated!", updated_user=user)


@router.delete(
    "/{user_id}",
    response_model=MessageResponse,
    responses={400: {"description": "User missing or still owns notes", "model": ErrorResponse}},
    summary="Soft-delete a user",
)
async def delete_user(
    user_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    return MessageResponse(message=await account_service.delete_account(db, user_id))

"""
Meganote Backend - Account Self-Service Routes
===============================================

Session required:
    GET   /account/{id}   read one account
    PATCH /account/{id}   update username, email and optionally password
    PUT   /account/{id}   update display name and avatar
"""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from meganote.database import get_db_session
from meganote.dependencies import get_current_identity
from meganote.schemas.account import (
    AccountEnvelope,
    AccountUpdatedResponse,
    CredentialsUpdateRequest,
    ProfileUpdateRequest,
)
from meganote.schemas.common import ErrorResponse
from meganote.services.account_service import account_service

router = APIRouter(
    prefix="/account",
    tags=["Account"],
    dependencies=[Depends(get_current_identity)],
    responses={
        401: {"description": "Missing credential", "model": ErrorResponse},
        403: {"description": "Invalid or expired credential", "model": ErrorResponse},
    },
)


@router.get("/{account_id}", response_model=AccountEnvelope, summary="Get an account")
async def get_account(
    account_id: UUID,
    db: AsyncSession = Depends(get_db_session),
) -> AccountEnvelope:
    return AccountEnvelope(user=await account_service.get_account(db, account_id))


@router.patch(
    "/{account_id}",
    response_model=AccountUpdatedResponse,
    responses={409: {"description": "Username or email taken", "model": ErrorResponse}},
    summary="Update login credentials",
)
async def update_credentials(
    account_id: UUID,
    body: CredentialsUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AccountUpdatedResponse:
    user = await account_service.update_credentials(db, account_id, body)
    return AccountUpdatedResponse(
        message=f"User {user.username} updated successfully!",
        updated_user=user,
    )


@router.put("/{account_id}", response_model=AccountUpdatedResponse, summary="Update profile")
async def update_profile(
    account_id: UUID,
    body: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AccountUpdatedResponse:
    user = await account_service.update_profile(db, account_id, body)
    return AccountUpdatedResponse(message="Profile updated successfully!", updated_user=user)

"""
Meganote Backend - Account Request/Response Schemas
====================================================

What:  Pydantic models for the auth, account and users routes.
How:   Request models reject missing or empty required fields (mapped to 400
       by the global validation handler). Response models are built from ORM
       rows with from_attributes and serialize with camelCase aliases.

The password hash and reset token are never part of any response model.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from meganote.models.account import ROLES


def _check_role(v: Optional[str]) -> Optional[str]:
    if v is not None and v not in ROLES:
        raise ValueError(f"Invalid role '{v}'. Must be one of: {', '.join(ROLES)}")
    return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AccountResponse(BaseModel):
    """Public representation of an account (no credentials)."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    fullname: str
    email: str
    avatar_url: str = Field(serialization_alias="avatarUrl")
    role: str
    active: bool
    is_deleted: bool = Field(serialization_alias="isDeleted")
    deleted_at: Optional[datetime] = Field(default=None, serialization_alias="deletedAt")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class AccountEnvelope(BaseModel):
    """GET /account/{id}, GET /users/{id}."""
    user: AccountResponse


class AccountCreatedResponse(BaseModel):
    """POST /users, POST /auth/register."""
    message: str
    user: AccountResponse


class AccountUpdatedResponse(BaseModel):
    """PATCH/PUT /account/{id}, PATCH /users/{id}."""
    message: str
    updated_user: AccountResponse = Field(serialization_alias="updatedUser")


class AccountListResponse(BaseModel):
    """GET /users: one page plus pagination totals."""
    users: List[AccountResponse]
    total_page: int = Field(serialization_alias="totalPage")
    count: int


class AccountCollectionResponse(BaseModel):
    """GET /users/all: every live account, newest first."""
    users: List[AccountResponse]


class LoginResponse(BaseModel):
    """POST /auth."""
    message: str
    user: AccountResponse
    access_token: str = Field(serialization_alias="accessToken")


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """Self-registration. Role is always the default (lowest privilege)."""

    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(min_length=1, max_length=255)
    fullname: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl", max_length=2048)


class AccountCreateRequest(BaseModel):
    """Administrator-created account; role optional (defaults to Employee)."""

    username: str = Field(min_length=1, max_length=255)
    fullname: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=128)
    role: Optional[str] = None

    validate_role = field_validator("role")(_check_role)


class AccountAdminUpdateRequest(BaseModel):
    """PATCH /users/{id}: every field is required, `active` must be a real boolean."""

    username: str = Field(min_length=1, max_length=255)
    fullname: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    role: str
    active: StrictBool

    validate_role = field_validator("role")(_check_role)


class CredentialsUpdateRequest(BaseModel):
    """PATCH /account/{id}: password is the only optional field."""

    username: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=320)
    password: Optional[str] = Field(default=None, max_length=128)


class ProfileUpdateRequest(BaseModel):
    """PUT /account/{id}."""

    model_config = ConfigDict(populate_by_name=True)

    fullname: str = Field(min_length=1, max_length=255)
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl", max_length=2048)


class ForgotPasswordRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)


class ResetPasswordRequest(BaseModel):
    password: str = Field(min_length=1, max_length=128)

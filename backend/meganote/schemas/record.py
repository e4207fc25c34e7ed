"""
Meganote Backend - Record (Note) Request/Response Schemas
==========================================================

What:  Pydantic models for the notes routes.

Owner rendering:
    Responses carry the owner's id (`user`) plus `username` and `role`
    resolved at read time. An owner that no longer resolves is shown as
    username "Unassigned" with an empty role.
"""

import uuid
from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from meganote.models.record import DEFAULT_STATUS, STATUSES

UNASSIGNED = "Unassigned"


def _check_status(v: str) -> str:
    if v not in STATUSES:
        raise ValueError(f"Invalid status '{v}'. Must be one of: {', '.join(STATUSES)}")
    return v


class RecordResponse(BaseModel):
    """A note together with its resolved owner."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user: uuid.UUID = Field(description="Owner account id")
    username: str = UNASSIGNED
    role: str = ""
    title: str
    text: str
    status: str
    ticket: int
    is_deleted: bool = Field(serialization_alias="isDeleted")
    created_at: datetime = Field(serialization_alias="createdAt")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class RecordEnvelope(BaseModel):
    """GET /notes/{id}."""
    note: RecordResponse


class RecordMutationResponse(BaseModel):
    """POST /notes, PATCH /notes/{id}."""
    message: str
    note: RecordResponse


class RecordListResponse(BaseModel):
    """GET /notes: one page plus pagination totals."""
    notes: List[RecordResponse]
    total_page: int = Field(serialization_alias="totalPage")
    count: int


class RecordCollectionResponse(BaseModel):
    """GET /notes/all: every live note, newest first."""
    notes: List[RecordResponse]


class RecordCreateRequest(BaseModel):
    user: uuid.UUID = Field(description="Owner account id")
    title: str = Field(min_length=1, max_length=255)
    text: str = Field(min_length=1)
    status: str = DEFAULT_STATUS

    validate_status = field_validator("status")(_check_status)


class RecordUpdateRequest(BaseModel):
    user: uuid.UUID
    title: str = Field(min_length=1, max_length=255)
    text: str = Field(min_length=1)
    status: str

    validate_status = field_validator("status")(_check_status)

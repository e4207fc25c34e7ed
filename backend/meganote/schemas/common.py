"""
Meganote Backend - Shared Response Schemas
===========================================

What:  Envelope models reused by every router: plain messages, errors, health.
"""

from typing import Optional

from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """Success envelope carrying only a human-readable message."""
    message: str = Field(description="Human-readable result description")


class ErrorResponse(BaseModel):
    """
    Standardized error envelope for all API errors.

    Fields:
        error:      Machine-readable error code (e.g. "conflict", "forbidden")
        message:    Human-readable description for display to users
        details:    Optional extra context (e.g. which field failed validation)
        request_id: Correlation id for tracing this error in server logs
        isError:    Present (true) only for unexpected, uncategorized failures

    Example:
        {
            "error": "conflict",
            "message": "This username already exists!",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")
    isError: Optional[bool] = Field(default=None, description="Set for unexpected failures")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")

"""
Meganote Backend - Shared Route Dependencies
=============================================

Session authentication:
    `get_current_identity` is attached to protected routers. It reads the
    Bearer credential, verifies signature and expiry, and exposes the
    UserInfo claims as an Identity (also stored on request.state.identity).

    Missing header / non-Bearer scheme  → 401 AuthenticationError
    Bad signature / malformed / expired → 403 AuthorizationError

    Verification is stateless: no account lookup. Any valid session may call
    any protected route; role claims are exposed but not enforced.

Mail:
    `get_mail_service` is re-exported so routes depend on it and tests can
    override it with a recording fake.
"""

import logging
import uuid
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from meganote.exceptions import AuthenticationError, AuthorizationError
from meganote.security import decode_access_token
from meganote.services.mail_service import get_mail_service

logger = logging.getLogger(__name__)

__all__ = ["Identity", "get_current_identity", "get_mail_service"]

# auto_error=False: the 401 is raised through our own envelope
bearer_scheme = HTTPBearer(auto_error=False)


class Identity(BaseModel):
    """Claims carried by a verified session token."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    username: str
    role: str
    avatar_url: Optional[str] = Field(default=None, alias="avatarUrl")


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError()

    try:
        payload = decode_access_token(credentials.credentials)
        identity = Identity.model_validate(payload["UserInfo"])
    except (jwt.PyJWTError, KeyError, TypeError, ValueError) as e:
        logger.info("Rejected session token: %s", type(e).__name__)
        raise AuthorizationError()

    request.state.identity = identity
    return identity

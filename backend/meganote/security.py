"""Password hashing, reset-secret hashing and session token creation/verification."""

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
import jwt

from meganote.config import settings

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72

# Bytes of entropy in a password-reset secret (hex encoded: 40 chars)
RESET_SECRET_BYTES = 20


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=settings.bcrypt_rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_reset_secret() -> str:
    """Raw one-time secret mailed to the user. Never persisted."""
    return secrets.token_hex(RESET_SECRET_BYTES)


def hash_reset_secret(secret: str) -> str:
    """One-way digest stored on the account and matched on consumption."""
    return hashlib.sha256(secret.encode("utf-8")).hexdigest()


def create_access_token(
    account_id: Any,
    username: str,
    role: str,
    avatar_url: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """
    Create a signed session token.

    Claims are nested under "UserInfo" (id, username, role, avatarUrl);
    "exp" and "iat" are standard registered claims.
    """
    issued = now or datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "UserInfo": {
            "id": str(account_id),
            "username": username,
            "role": role,
            "avatarUrl": avatar_url,
        },
        "iat": issued,
        "exp": issued + timedelta(days=settings.access_token_expire_days),
    }
    return jwt.encode(
        payload,
        settings.access_token_secret,
        algorithm=settings.access_token_algorithm,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Decode and validate a session token; return its payload.
    Raises jwt.PyJWTError on a bad signature, malformed token or expiry.
    """
    return jwt.decode(
        token,
        settings.access_token_secret,
        algorithms=[settings.access_token_algorithm],
        options={"require": ["exp", "iat"]},
    )

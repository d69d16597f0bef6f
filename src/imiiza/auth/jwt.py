"""JWT token generation and validation

Access tokens are HS256-signed and carry:

- sub: user id (UUID string)
- role: one of admin | agent | sales | employee | user
- email: user's email address
- iat / exp: issue and expiry timestamps (JWT_EXPIRY_MINUTES)

There are no refresh tokens; clients log in again after expiry.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import jwt

from ..config import get_settings


ALGORITHM = "HS256"


def _get_jwt_secret() -> str:
    secret = get_settings().JWT_SECRET
    if not secret:
        raise ValueError("JWT_SECRET is not configured")
    return secret


def get_jwt_expiry_minutes() -> int:
    return get_settings().JWT_EXPIRY_MINUTES


def create_access_token(user_id: UUID, role: str, email: str) -> str:
    """Create a signed access token for an authenticated user.

    Raises:
        ValueError: If JWT_SECRET is not configured
    """
    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=get_jwt_expiry_minutes())

    payload = {
        'sub': str(user_id),
        'role': role,
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }

    return jwt.encode(payload, _get_jwt_secret(), algorithm=ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
    """
    return jwt.decode(token, _get_jwt_secret(), algorithms=[ALGORITHM])

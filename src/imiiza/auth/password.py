"""Password hashing and verification using Argon2id

Passwords are combined with a server-side PASSWORD_PEPPER before hashing.

OWASP Parameters:
- Memory cost: 65536 KB (64 MB)
- Time cost: 3 iterations
- Parallelism: 4 threads
"""

import re

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from ..config import get_settings


_hasher = PasswordHasher(
    memory_cost=65536,
    time_cost=3,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)


def _get_pepper() -> str:
    pepper = get_settings().PASSWORD_PEPPER
    if not pepper:
        raise ValueError("PASSWORD_PEPPER is not configured")
    return pepper


def hash_password(password: str) -> str:
    """Hash a password using Argon2id with the global pepper.

    Returns:
        str: Argon2id hash string ($argon2id$v=19$m=65536,t=3,p=4$...$...)

    Raises:
        ValueError: If PASSWORD_PEPPER is not configured or password is empty
    """
    if not password:
        raise ValueError("Password cannot be empty")

    return _hasher.hash(password + _get_pepper())


def verify_password(password: str, hash: str) -> bool:
    """Verify a password against an Argon2id hash."""
    if not password or not hash:
        return False

    try:
        _hasher.verify(hash, password + _get_pepper())
        return True
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def validate_password_strength(password: str) -> tuple[bool, str]:
    """Validate password meets signup requirements.

    Requirements:
    - Minimum 8 characters
    - At least one letter
    - At least one digit

    Example:
        >>> validate_password_strength("short1")
        (False, 'Password must be at least 8 characters long')
        >>> validate_password_strength("visa2024ok")
        (True, '')
    """
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"

    if not re.search(r'[A-Za-z]', password):
        return False, "Password must contain at least one letter"

    if not re.search(r'\d', password):
        return False, "Password must contain at least one digit"

    return True, ""

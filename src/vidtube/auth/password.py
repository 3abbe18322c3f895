"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks. The salt
is embedded in the output, so hashing the same password twice gives
two different strings that both verify.

bcrypt only reads the first 72 bytes of its input. Longer passwords
are refused outright instead of being cut, otherwise two passwords
sharing a 72-byte prefix would verify as each other.
"""

from typing import Optional

import bcrypt

from vidtube.config import settings
from vidtube.errors import ValidationError

BCRYPT_MAX_BYTES = 72


def password_policy_violation(password: str) -> Optional[str]:
    """Describe why a new password is unacceptable, or None if it's fine.

    Shared by the request schemas and AuthService so both enforce the
    same limits from settings.
    """
    if len(password) < settings.min_password_length:
        return f"Password must be at least {settings.min_password_length} characters"
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        return f"Password must be at most {BCRYPT_MAX_BYTES} bytes"
    return None


def hash_password(password: str) -> str:
    """Hash a password with bcrypt.

    Learn: The work factor comes from settings.bcrypt_rounds (12 by
    default, ~100ms per hash). Tests lower it to keep the suite fast.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored hash.

    Never raises: a malformed or empty hash is simply a mismatch, and so
    is an over-long password (no stored hash can have come from one).
    """
    encoded = password.encode("utf-8")
    if not password_hash or len(encoded) > BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False

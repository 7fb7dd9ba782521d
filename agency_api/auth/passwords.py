"""Password hashing (bcrypt)."""

import bcrypt

from agency_api.config import env
from agency_api.errors import InvalidInput

MIN_PASSWORD_LENGTH = 8
# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def validate_new_password(password: str) -> None:
    """Raise InvalidInput unless the password is acceptable for storage."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInput(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInput(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=env.get_bcrypt_rounds())
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plaintext password against a stored bcrypt hash.

    Malformed hashes and over-long inputs count as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        return False

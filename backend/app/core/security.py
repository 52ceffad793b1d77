"""
Password and PIN hashing helpers.

Staff passwords and bill-creator PINs are both stored as bcrypt hashes.
"""

import bcrypt


def get_password_hash(password: str) -> str:
    """Hash a plain-text password (or PIN) with a fresh salt."""
    password_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password_bytes, salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain-text password (or PIN) against a stored bcrypt hash."""
    if not hashed_password:
        return False
    password_bytes = plain_password.encode("utf-8")
    hash_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(password_bytes, hash_bytes)

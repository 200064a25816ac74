"""
auth/passwords.py -- One-way password hashing (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Every hash embeds its own random salt and cost factor, so hashing the same
password twice yields two different strings; verification reads both back
out of the stored hash and uses bcrypt's constant-time comparison.
"""

from __future__ import annotations

import re

import bcrypt

from core.errors import HashingError

# Modular crypt format: $2b$<cost>$<22-char salt><31-char digest>
_BCRYPT_HASH_RE = re.compile(r"^\$2[abxy]?\$\d{2}\$[./A-Za-z0-9]{53}$")


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    rounds is the bcrypt cost factor; None uses the library default (12).
    Raises HashingError if bcrypt rejects the input -- recent bcrypt releases
    refuse passwords longer than 72 bytes instead of truncating them.
    """
    salt = bcrypt.gensalt() if rounds is None else bcrypt.gensalt(rounds=rounds)
    try:
        return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")
    except ValueError as exc:
        raise HashingError("bcrypt generate") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash or over-long candidate.
        return False


def is_password_hash(value: str) -> bool:
    return bool(_BCRYPT_HASH_RE.match(value))

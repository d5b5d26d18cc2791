"""
Roomly Backend - Password & Token Primitives
=============================================

What:  bcrypt password hashing, session token generation and the short
       one-time codes mailed to users.
How:   Passwords: bcrypt with a configurable work factor.
       Session tokens: 16 random bytes, base32 without padding (26 chars);
       only the SHA-256 digest is persisted, so a leaked tokens table cannot
       be replayed.
       One-time codes: two groups of three lowercase letters ("abc-def").
"""

import base64
import hashlib
import secrets
import string
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt

from roomly.config import settings
from roomly.validator import Validator, byte_length

SCOPE_AUTHENTICATION = "authentication"

TOKEN_PLAINTEXT_LENGTH = 26
PASSWORD_MIN_BYTES = 8
PASSWORD_MAX_BYTES = 72  # bcrypt ignores anything past 72 bytes


# ── Passwords ─────────────────────────────────────────────────────────────
def hash_password(plaintext: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(plaintext.encode("utf-8"), salt).decode("ascii")


def verify_password(plaintext: str, password_hash: Optional[str]) -> bool:
    """
    Returns False for a mismatch and for accounts without a password
    (users created through OAuth).
    """
    if not password_hash or not plaintext:
        return False
    try:
        return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("ascii"))
    except ValueError:
        # Stored value is not a bcrypt hash, or the input exceeds 72 bytes
        return False


def validate_password_plaintext(v: Validator, password: str, key: str = "password") -> None:
    v.check(password != "", key, "must be provided")
    v.check(byte_length(password) >= PASSWORD_MIN_BYTES, key, "must be at least 8 bytes long")
    v.check(byte_length(password) <= PASSWORD_MAX_BYTES, key, "must not be more than 72 bytes long")


# ── Session Tokens ────────────────────────────────────────────────────────
@dataclass
class GeneratedToken:
    plaintext: str
    hash: bytes
    expiry: datetime
    scope: str


def hash_token(plaintext: str) -> bytes:
    return hashlib.sha256(plaintext.encode("utf-8")).digest()


def generate_token(ttl: timedelta, scope: str = SCOPE_AUTHENTICATION) -> GeneratedToken:
    raw = secrets.token_bytes(16)
    plaintext = base64.b32encode(raw).decode("ascii").rstrip("=")
    return GeneratedToken(
        plaintext=plaintext,
        hash=hash_token(plaintext),
        expiry=datetime.now(timezone.utc) + ttl,
        scope=scope,
    )


def validate_token_plaintext(v: Validator, token: str) -> None:
    v.check(token != "", "token", "must be provided")
    v.check(len(token) == TOKEN_PLAINTEXT_LENGTH, "token", "must be 26 bytes long")


# ── One-time Codes ────────────────────────────────────────────────────────
def random_letters(n: int) -> str:
    return "".join(secrets.choice(string.ascii_lowercase) for _ in range(n))


def generate_code() -> str:
    """Human-typeable code mailed for verification, password reset and email change."""
    return f"{random_letters(3)}-{random_letters(3)}"


def codes_match(expected: Optional[str], supplied: str) -> bool:
    """An unset or empty stored code never matches."""
    if not expected or not supplied:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))

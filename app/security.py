"""
Security utilities: passkey hashing and session JWTs.

1. PASSKEY HASHING (Argon2)
   - The ledger passkey is never stored in plaintext
   - passlib's CryptContext provides high-level Argon2id operations

2. JWT TOKENS
   - After login, the client receives a signed JWT carrying the session id
     in the "sid" claim
   - The token is signed with SECRET_KEY using HS256 (HMAC-SHA256)
   - The server keeps only the id of the current session, so logging in
     again (or logging out) invalidates every older token
"""

from datetime import datetime, timedelta, timezone

from jose import jwt
from passlib.context import CryptContext

from app.config import settings


# ---------------------------------------------------------------------------
# 1. Passkey Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_passkey(plain_passkey: str) -> str:
    """Hash a plaintext passkey using Argon2id."""
    return pwd_context.hash(plain_passkey)


def verify_passkey(plain_passkey: str, hashed_passkey: str) -> bool:
    """
    Verify a plaintext passkey against a stored Argon2 hash.

    This is a constant-time comparison to prevent timing attacks.
    """
    return pwd_context.verify(plain_passkey, hashed_passkey)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sid").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])

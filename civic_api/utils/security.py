"""
Security utilities: password hashing, bearer tokens and one-time secrets.
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import bcrypt
from jose import JWTError, jwt

from civic_api.core.errors import AuthenticationError
from civic_api.core.settings import settings

logger = logging.getLogger(__name__)


def _pw_bytes(password: str) -> bytes:
    # bcrypt only reads 72 bytes; sha256 hex digest is a fixed 64
    return hashlib.sha256(password.encode("utf-8")).hexdigest().encode("utf-8")


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(_pw_bytes(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(_pw_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def create_access_token(user_id: str, role: str, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict:
    """
    Decode and verify a bearer token.

    Raises:
        AuthenticationError: If the token is malformed, forged or expired
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Invalid or expired token")
    if not payload.get("sub"):
        raise AuthenticationError("Invalid or expired token")
    return payload


def generate_token() -> str:
    """Random token for email verification and password reset links."""
    return secrets.token_hex(32)


def generate_otp() -> str:
    """6-digit numeric one-time password."""
    return str(secrets.randbelow(900000) + 100000)

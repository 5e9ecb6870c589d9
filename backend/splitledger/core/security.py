"""
Security utilities for JWT authentication and password hashing.
"""
from datetime import datetime, timedelta
from typing import Optional
import hashlib
import bcrypt
from jose import JWTError, jwt
from splitledger.core.config import settings


def _digest(password: str) -> bytes:
    """SHA256 first so passwords past bcrypt's 72-byte limit still count in full."""
    return hashlib.sha256(password.encode("utf-8")).digest()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    return bcrypt.checkpw(_digest(plain_password), hashed_password.encode("utf-8"))


def get_password_hash(password: str) -> str:
    """Return a bcrypt hash suitable for the users.hashed_password column."""
    return bcrypt.hashpw(_digest(password), bcrypt.gensalt()).decode("utf-8")


def create_access_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a signed token identifying the user."""
    lifetime = expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    claims = {
        "sub": email,
        "user_id": user_id,
        "exp": datetime.utcnow() + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from app.platform.config import settings


def hash_password(password: str) -> str:
    # bcrypt only reads 72 bytes; SHA-256 pre-hashing keeps long passwords significant
    password_hash = hashlib.sha256(password.encode('utf-8')).digest()

    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password_hash, salt)

    return hashed.decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash.
    Uses SHA-256 pre-hashing to match the hashing method.
    """
    password_hash = hashlib.sha256(plain_password.encode('utf-8')).digest()
    return bcrypt.checkpw(password_hash, hashed_password.encode('utf-8'))


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token"""
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT access token"""
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise ValueError("Token has expired")
    except jwt.PyJWTError:
        raise ValueError("Invalid token")


def generate_verification_code() -> str:
    """Generate a 6-digit numeric code"""
    return ''.join([str(secrets.randbelow(10)) for _ in range(6)])

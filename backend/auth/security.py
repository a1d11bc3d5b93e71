"""
Security utilities for password hashing and JWT access tokens.

This module provides cryptographic functions for:
- Password and security-answer hashing using Argon2id (memory-hard, GPU-resistant)
- JWT access token creation and verification
"""

import logging
from datetime import timedelta
from typing import Optional, Dict, Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from time_utils import expires_in, utc_now

logger = logging.getLogger(__name__)

# Password hashing configuration using Argon2id
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")

ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Example:
        >>> hashed = hash_password("my_secure_password")
        >>> verify_password("my_secure_password", hashed)
        True
    """
    logger.debug("Hashing password")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    logger.debug("Verifying password")
    is_valid = pwd_context.verify(plain_password, hashed_password)
    logger.debug(f"Password verification result: {is_valid}")
    return is_valid


def normalize_security_answer(answer: str) -> str:
    # Answers are recalled from memory, so case and surrounding spaces are ignored
    return answer.strip().lower()


def hash_security_answer(answer: str) -> str:
    logger.debug("Hashing security answer")
    return pwd_context.hash(normalize_security_answer(answer))


def verify_security_answer(answer: str, hashed_answer: str) -> bool:
    return pwd_context.verify(normalize_security_answer(answer), hashed_answer)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data to encode in the token (must include "sub" = user id as string)
        expires_delta: Optional custom lifetime; negative values produce an already-expired token

    Returns:
        Encoded JWT token string

    Example:
        >>> token = create_access_token({"sub": "1", "email": "ada@test.com"})
    """
    logger.debug(f"Creating access token for sub={data.get('sub')}")
    to_encode = data.copy()

    if expires_delta is not None:
        expire = utc_now() + expires_delta
    else:
        expire = expires_in(ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": ACCESS_TOKEN_TYPE})

    encoded_jwt = jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)
    logger.debug(f"Access token created, expires at: {expire}")
    return encoded_jwt


def create_user_token(user) -> str:
    """Issue an access token asserting the given user's id."""
    return create_access_token({"sub": str(user.id), "email": user.email})


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Verify signature and expiry of a JWT and decode it.

    Returns:
        Decoded token payload if valid, None otherwise
    """
    logger.debug("Verifying JWT token")
    try:
        payload = jwt.decode(token, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM])
        logger.debug(f"Token verified successfully for user: {payload.get('sub')}")
        return payload
    except JWTError as e:
        logger.info(f"JWT verification failed: {str(e)}")
        return None

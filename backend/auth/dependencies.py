"""
FastAPI dependencies for authentication.

This module turns the bearer credential on a request into a Principal:
- get_current_principal rejects the request when no usable credential is present
- get_optional_principal yields None instead, for endpoints open to anonymous callers

Both resolve the token against the user table on every request, so a token
issued to a since-deleted user stops working immediately.
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from errors import InvalidCredential, MissingCredential, UnknownPrincipal, Unauthenticated
from models import User
from schemas import Principal
from auth.security import ACCESS_TOKEN_TYPE, verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme for JWT authentication
security = HTTPBearer(auto_error=False)


def resolve_principal(token: Optional[str], db: Session) -> Principal:
    """
    Resolve a raw bearer token to the principal it identifies.

    Args:
        token: Encoded JWT, or None when the request carried no credential
        db: Database session

    Returns:
        Principal for the user named by the token's "sub" claim

    Raises:
        MissingCredential: no token was supplied
        InvalidCredential: bad signature, expired, wrong type or malformed subject
        UnknownPrincipal: token is valid but its user no longer exists
    """
    if not token:
        logger.info("No authentication credentials provided")
        raise MissingCredential()

    payload = verify_token(token)
    if payload is None:
        raise InvalidCredential()

    token_type = payload.get("type")
    if token_type != ACCESS_TOKEN_TYPE:
        logger.info(f"Invalid token type: {token_type}")
        raise InvalidCredential()

    # Malformed subjects are a credential problem, not a server error
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        logger.info(f"Invalid user_id format in token: {payload.get('sub')}")
        raise InvalidCredential()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for id: {user_id}")
        raise UnknownPrincipal()

    logger.debug(f"User authenticated via JWT: {user.email}")
    return Principal.model_validate(user)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """
    Require an authenticated principal.

    Example:
        @router.get("/api/lists")
        def get_lists(principal: Principal = Depends(get_current_principal)):
            return {"user_id": principal.id}
    """
    token = credentials.credentials if credentials else None
    return resolve_principal(token, db)


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[Principal]:
    """Get the current principal if authenticated, or None if not."""
    token = credentials.credentials if credentials else None
    try:
        return resolve_principal(token, db)
    except Unauthenticated:
        logger.debug("Optional authentication failed, returning None")
        return None

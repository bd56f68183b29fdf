"""
Authentication for DocHub.

Identity-provider token exchange, JWT issuance, and session management.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Annotated

import jwt
from fastapi import Cookie, HTTPException, status
from pydantic import ValidationError as PydanticValidationError

from backend import config
from backend.models.user import User

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"


def create_jwt(user: User) -> str:
    """
    Create a JWT for a user session.

    Args:
        user: Identity to encode in the token

    Returns:
        Signed JWT string
    """
    expires_at = datetime.now(UTC) + timedelta(hours=config.settings.JWT_EXPIRY_HOURS)
    payload = {
        "sub": user.id,
        "email": user.email,
        "name": user.name,
        "exp": expires_at,
        "iat": datetime.now(UTC),
    }
    return jwt.encode(payload, config.settings.JWT_SECRET, algorithm=config.settings.JWT_ALGORITHM)


def decode_jwt(token: str) -> dict:
    """
    Decode and verify a session JWT.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, config.settings.JWT_SECRET, algorithms=[config.settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def decode_id_token(token: str) -> User:
    """
    Verify an identity-provider token and return the identity it names.

    Raises:
        HTTPException: If the token is invalid, expired, or has no subject
    """
    try:
        payload = jwt.decode(token, config.settings.IDP_SECRET, algorithms=[config.settings.JWT_ALGORITHM])
    except jwt.InvalidTokenError as e:
        logger.warning("auth: rejected identity token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Sign-in failed. Please try again.",
        ) from e
    return _user_from_claims(payload)


def _user_from_claims(payload: dict) -> User:
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        )
    try:
        return User(id=str(sub), email=payload.get("email"), name=payload.get("name"))
    except PydanticValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def user_from_session(session: str | None) -> User | None:
    """Resolve a session cookie to a user, or None. Used where HTTP errors don't apply (WebSocket)."""
    if not session:
        return None
    try:
        return _user_from_claims(decode_jwt(session))
    except HTTPException:
        return None


async def get_current_user(
    session: Annotated[str | None, Cookie()] = None,
) -> User:
    """
    FastAPI dependency to get the current authenticated user.

    Raises:
        HTTPException: If authentication fails
    """
    if not session:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
        )
    return _user_from_claims(decode_jwt(session))

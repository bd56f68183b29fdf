"""Authentication routes — identity-provider sign-in and sessions."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Response

from backend import config
from backend.auth import SESSION_COOKIE, create_jwt, decode_id_token, get_current_user
from backend.models.auth import LoginRequest, LoginResponse, LogoutResponse
from backend.models.user import User, UserPublic
from backend.services.profiles import admin_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", status_code=200)
async def login_endpoint(
    req: LoginRequest,
    response: Response,
    x_profile_id: Annotated[str | None, Header()] = None,
) -> LoginResponse:
    """
    Exchange an identity-provider token for a session cookie.

    Admin mode left on in this profile is restored.
    """
    user = decode_id_token(req.id_token)
    admin = admin_session(x_profile_id).on_login()

    response.set_cookie(
        key=SESSION_COOKIE,
        value=create_jwt(user),
        httponly=True,
        secure=config.settings.SECURE_COOKIES,
        samesite="lax",
        max_age=config.settings.JWT_EXPIRY_HOURS * 3600,
        path="/",
    )
    logger.info("auth: signed in user=%s admin=%s", user.id, admin)
    return LoginResponse(user=UserPublic.from_user(user), admin=admin)


@router.get("/me", status_code=200)
async def get_current_user_endpoint(
    user: User = Depends(get_current_user),
) -> UserPublic:
    """
    Get the current authenticated user.

    Requires valid session cookie.
    """
    return UserPublic.from_user(user)


@router.post("/logout", status_code=200)
async def logout_endpoint(
    response: Response,
    x_profile_id: Annotated[str | None, Header()] = None,
) -> LogoutResponse:
    """
    Logout the current user.

    Clears the session cookie and the profile's admin flag.
    """
    admin_session(x_profile_id).on_logout()

    # Clear cookie by setting it to expired
    response.set_cookie(
        key=SESSION_COOKIE,
        value="",
        httponly=True,
        secure=config.settings.SECURE_COOKIES,
        samesite="lax",
        max_age=0,
        path="/",
    )
    return LogoutResponse()

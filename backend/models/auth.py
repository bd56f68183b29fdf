"""Authentication models for login and session management."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from backend.models.user import UserPublic


class LoginRequest(BaseModel):
    """Identity-provider token to exchange for a session."""

    model_config = ConfigDict(extra="forbid")

    id_token: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Signed-in user plus the admin flag restored for this profile."""

    user: UserPublic
    admin: bool


class LogoutResponse(BaseModel):
    """Response after logout."""

    message: str = "Logged out successfully"

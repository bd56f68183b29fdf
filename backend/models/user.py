"""User models for authentication."""

from __future__ import annotations

from pydantic import BaseModel, EmailStr


class User(BaseModel):
    """
    Signed-in identity, carried in the session token.

    Users live with the identity provider; DocHub keeps no users table.
    """

    id: str
    email: EmailStr | None = None
    name: str | None = None


class UserPublic(BaseModel):
    """What the API returns."""

    id: str
    email: EmailStr | None
    name: str | None

    @classmethod
    def from_user(cls, user: User) -> UserPublic:
        return cls(id=user.id, email=user.email, name=user.name)

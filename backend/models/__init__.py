"""
Pydantic models for DocHub.

Request and response shapes for the HTTP surface. No imports from db, repos,
or routes. Domain values live in engine.hub.types.
"""

from backend.models.auth import LoginRequest, LoginResponse, LogoutResponse
from backend.models.resource import DeleteResourceResponse, ResourceRequest, TableDataModel
from backend.models.section import DeleteSectionResponse, SectionRequest
from backend.models.user import User, UserPublic

__all__ = [
    # User models
    "User",
    "UserPublic",
    # Auth models
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    # Section models
    "SectionRequest",
    "DeleteSectionResponse",
    # Resource models
    "ResourceRequest",
    "TableDataModel",
    "DeleteResourceResponse",
]

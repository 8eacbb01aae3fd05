"""Pydantic schemas for API validation"""

from vidtube.schemas.user import (
    UserLogin,
    UserResponse,
    RefreshTokenRequest,
    ChangePasswordRequest,
    UpdateAccountRequest,
    SessionData,
    SessionResponse,
    UserAPIResponse,
)
from vidtube.schemas.response import APIResponse, ErrorResponse

__all__ = [
    "UserLogin", "UserResponse", "RefreshTokenRequest", "ChangePasswordRequest",
    "UpdateAccountRequest", "SessionData", "SessionResponse", "UserAPIResponse",
    "APIResponse", "ErrorResponse"
]

"""User and session schemas"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime

from vidtube.schemas.response import APIResponse


class UserLogin(BaseModel):
    """Login with username or email plus password"""
    username: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    """Refresh token from the request body; the cookie takes precedence"""
    refresh_token: Optional[str] = Field(
        None, validation_alias=AliasChoices("refreshToken", "refresh_token")
    )


class ChangePasswordRequest(BaseModel):
    """Password change payload"""
    old_password: str = Field(..., min_length=1, validation_alias=AliasChoices("oldPassword", "old_password"))
    new_password: str = Field(..., min_length=1, validation_alias=AliasChoices("newPassword", "new_password"))


class UpdateAccountRequest(BaseModel):
    """Editable profile fields"""
    fullname: str = Field(..., max_length=100)
    email: str = Field(..., max_length=255)


class UserResponse(BaseModel):
    """Public view of an account; secret fields are never part of it"""
    id: str
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: str = ""
    watch_history: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SessionData(BaseModel):
    """Login/refresh payload, mirrors the cookies"""
    user: UserResponse
    access_token: str = Field(..., alias="accessToken")
    refresh_token: str = Field(..., alias="refreshToken")

    model_config = ConfigDict(populate_by_name=True)


class SessionResponse(APIResponse):
    data: SessionData


class UserAPIResponse(APIResponse):
    data: UserResponse

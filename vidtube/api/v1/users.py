"""User profile routes"""

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session
from typing import Optional

from vidtube.core.database import get_db
from vidtube.schemas.user import UpdateAccountRequest, UserAPIResponse, UserResponse
from vidtube.services.asset_storage import save_temp_upload
from vidtube.services.user_service import user_service
from vidtube.api.deps import get_current_user
from vidtube.models.user import User

router = APIRouter()


@router.get("/current-user", response_model=UserAPIResponse)
def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Get current user profile

    Args:
        current_user: Current authenticated user

    Returns:
        User profile
    """
    return UserAPIResponse(
        message="Current user fetched successfully",
        data=UserResponse.model_validate(current_user),
    )


@router.patch("/update-account", response_model=UserAPIResponse)
def update_account(
    payload: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update full name and email"""
    user = user_service.update_account_details(db, current_user, payload.fullname, payload.email)
    return UserAPIResponse(
        message="Account details updated successfully",
        data=UserResponse.model_validate(user),
    )


@router.patch("/avatar", response_model=UserAPIResponse)
def update_avatar(
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the avatar image"""
    user = user_service.update_avatar(db, current_user, save_temp_upload(avatar))
    return UserAPIResponse(
        message="Avatar updated successfully",
        data=UserResponse.model_validate(user),
    )


@router.patch("/cover-image", response_model=UserAPIResponse)
def update_cover_image(
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the cover image"""
    user = user_service.update_cover_image(db, current_user, save_temp_upload(cover_image))
    return UserAPIResponse(
        message="Cover image updated successfully",
        data=UserResponse.model_validate(user),
    )

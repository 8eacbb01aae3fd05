"""Authentication routes"""

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from vidtube.core.database import get_db
from vidtube.config import settings
from vidtube.core.exceptions import InternalServerError
from vidtube.core.tokens import TokenPair
from vidtube.schemas.response import APIResponse
from vidtube.schemas.user import (
    ChangePasswordRequest,
    RefreshTokenRequest,
    SessionData,
    SessionResponse,
    UserAPIResponse,
    UserLogin,
    UserResponse,
)
from vidtube.services.asset_storage import discard_local_file, save_temp_upload
from vidtube.services.auth_service import auth_service
from vidtube.services.audit_service import audit_service
from vidtube.services.rate_limiter import rate_limiter
from vidtube.api.deps import ACCESS_COOKIE, REFRESH_COOKIE, get_current_user
from vidtube.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.COOKIE_SECURE,
        "samesite": settings.COOKIE_SAMESITE,
        "path": "/",
    }


def set_session_cookies(response: Response, pair: TokenPair) -> None:
    """Deliver both tokens as http-only cookies"""
    options = _cookie_options()
    response.set_cookie(
        ACCESS_COOKIE,
        pair.access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **options
    )
    response.set_cookie(
        REFRESH_COOKIE,
        pair.refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 3600,
        **options
    )


def clear_session_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


def _session_response(message: str, user: User, pair: TokenPair) -> SessionResponse:
    return SessionResponse(
        message=message,
        data=SessionData(
            user=UserResponse.model_validate(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        ),
    )


@router.post("/register", response_model=UserAPIResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    fullname: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: Session = Depends(get_db)
):
    """
    Register a new account (multipart form with avatar and optional cover image)

    Returns:
        Created user without secret fields
    """
    avatar_path = cover_path = None
    try:
        avatar_path = save_temp_upload(avatar)
        cover_path = save_temp_upload(cover_image)
    except OSError as exc:
        discard_local_file(avatar_path)
        logger.error(f"Could not spool upload: {exc}")
        raise InternalServerError("Failed to receive uploaded files")

    user = auth_service.register(
        db,
        username=username,
        email=email,
        fullname=fullname,
        password=password,
        avatar_path=avatar_path,
        cover_path=cover_path,
    )
    audit_service.log_event(db, user_id=user.id, action="register", ip_address=_client_ip(request))

    return UserAPIResponse(
        message="User registered successfully!",
        data=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=SessionResponse, status_code=status.HTTP_200_OK)
def login(
    credentials: UserLogin,
    request: Request,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Login endpoint - authenticate user and open a session

    Args:
        credentials: Username or email, and password
        db: Database session

    Returns:
        User info plus access and refresh tokens (also set as cookies)
    """
    client_ip = _client_ip(request)
    user_key = (credentials.username or credentials.email or "").strip().lower()
    rate_limiter.enforce(
        "login",
        f"{client_ip}:{user_key}",
        [(settings.LOGIN_RATE_LIMIT_PER_MINUTE, 60), (settings.LOGIN_RATE_LIMIT_PER_HOUR, 3600)],
        "Too many login attempts. Please try again later.",
    )

    user, pair = auth_service.login(
        db,
        username=credentials.username,
        email=credentials.email,
        password=credentials.password,
    )
    audit_service.log_event(db, user_id=user.id, action="login", ip_address=client_ip)

    set_session_cookies(response, pair)
    return _session_response("User Logged In Successfully", user, pair)


@router.post("/refresh-token", response_model=SessionResponse)
def refresh_token(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
):
    """
    Exchange a refresh token for a new token pair

    The refresh token is read from the cookie first, then from the body.
    """
    client_ip = _client_ip(request)
    rate_limiter.enforce(
        "refresh",
        client_ip,
        [(settings.RATE_LIMIT_PER_MINUTE, 60), (settings.RATE_LIMIT_PER_HOUR, 3600)],
        "Too many refresh attempts. Slow down.",
    )

    incoming = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    user, pair = auth_service.refresh_session(db, incoming)
    audit_service.log_event(db, user_id=user.id, action="refresh", ip_address=client_ip)

    set_session_cookies(response, pair)
    return _session_response("Access token refreshed successfully", user, pair)


@router.post("/logout", response_model=APIResponse, status_code=status.HTTP_200_OK)
def logout(
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Logout endpoint - revoke the stored refresh token and clear cookies

    Args:
        current_user: Current authenticated user

    Returns:
        Success message
    """
    auth_service.logout(db, current_user)
    audit_service.log_event(db, user_id=current_user.id, action="logout", ip_address=_client_ip(request))

    clear_session_cookies(response)
    return APIResponse(message="User logged out successfully", data={})


@router.post("/change-password", response_model=APIResponse)
def change_password(
    payload: ChangePasswordRequest,
    request: Request,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Change the current user's password

    The session ends: the refresh token is revoked and cookies are cleared.
    """
    auth_service.change_password(db, current_user, payload.old_password, payload.new_password)
    audit_service.log_event(
        db, user_id=current_user.id, action="change_password", ip_address=_client_ip(request)
    )

    clear_session_cookies(response)
    return APIResponse(message="Password changed successfully", data={})

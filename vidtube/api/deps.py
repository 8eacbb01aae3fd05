"""API dependencies - authentication"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
import logging

from vidtube.core.database import get_db
from vidtube.core.exceptions import AuthenticationError
from vidtube.core.tokens import TokenKind, token_issuer
from vidtube.models.user import User
from vidtube.repositories.user_repository import user_repository

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

# Cookie is checked first, so a missing header must not fail on its own
security = HTTPBearer(auto_error=False)


def extract_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    """Access token from the cookie, falling back to the Bearer header"""
    token = request.cookies.get(ACCESS_COOKIE)
    if token:
        return token
    if credentials and credentials.credentials:
        return credentials.credentials
    return None


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from the access token

    Expired, tampered and malformed tokens are all rejected the same way;
    clients recover by calling the refresh endpoint.

    Args:
        request: Incoming request, receives the principal on ``state.user``
        credentials: HTTP Bearer credentials
        db: Database session

    Returns:
        Current user

    Raises:
        AuthenticationError: If no token, invalid token or user not found
    """
    token = extract_access_token(request, credentials)
    if not token:
        raise AuthenticationError("Unauthorized request")

    try:
        payload = token_issuer.verify(token, TokenKind.ACCESS)
    except AuthenticationError as exc:
        logger.debug("Access token rejected: %s", exc.message)
        raise AuthenticationError("Invalid Access Token")

    user = user_repository.find_by_id(db, payload["id"])
    if not user:
        raise AuthenticationError("Invalid Access Token")

    request.state.user = user
    return user

"""Custom exception classes for the application"""

from typing import Any, List, Optional


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[List[Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or []
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Unauthorized request"):
        super().__init__(message, status_code=401)


class InvalidCredentialsError(AuthenticationError):
    """Unknown account or wrong password; the two are deliberately indistinguishable"""
    def __init__(self):
        super().__init__("Invalid user credentials")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""
    def __init__(self):
        super().__init__("Token has expired")


class TokenInvalidError(AuthenticationError):
    """JWT signature does not match the expected key"""
    def __init__(self):
        super().__init__("Invalid token signature")


class TokenMalformedError(AuthenticationError):
    """JWT could not be parsed or lacks required claims"""
    def __init__(self, message: str = "Malformed token"):
        super().__init__(message)


# Resource Errors
class ResourceNotFoundError(BaseAPIException):
    """Resource not found"""
    def __init__(self, resource: str):
        super().__init__(f"{resource} not found", status_code=404)


class ConflictError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message, status_code=400, details=details)


class UploadError(BaseAPIException):
    """Asset upload failed"""
    def __init__(self, message: str = "Failed to upload file"):
        super().__init__(message, status_code=400)


# System Errors
class InternalServerError(BaseAPIException):
    """Unexpected failure unrelated to caller input"""
    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message, status_code=500)


class DatabaseError(InternalServerError):
    """Database operation failed"""
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class RateLimitExceededError(BaseAPIException):
    """Rate limit exceeded"""
    def __init__(self, message: str = "Rate limit exceeded. Please try again later."):
        super().__init__(message, status_code=429)

"""JWT access/refresh token issuing and verification"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional
import secrets

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from vidtube.config import Settings, settings
from vidtube.core.exceptions import TokenExpiredError, TokenInvalidError, TokenMalformedError


class TokenKind(str, Enum):
    """Which signing key a token belongs to"""
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass
class TokenPair:
    """Access and refresh token pair."""
    access_token: str
    refresh_token: str


class TokenIssuer:
    """
    Sign and verify session tokens.

    Access and refresh tokens are signed with different secrets, so a token
    of one kind never verifies as the other.
    """

    def __init__(self, config: Settings):
        self._access_secret = config.ACCESS_TOKEN_SECRET
        self._refresh_secret = config.REFRESH_TOKEN_SECRET
        self._algorithm = config.ALGORITHM
        self._access_ttl = timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES)
        self._refresh_ttl = timedelta(days=config.REFRESH_TOKEN_EXPIRE_DAYS)

    @staticmethod
    def _generate_jti() -> str:
        return secrets.token_urlsafe(32)

    def _secret_for(self, kind: TokenKind) -> str:
        return self._access_secret if kind == TokenKind.ACCESS else self._refresh_secret

    def _sign(self, data: Dict[str, Any], kind: TokenKind, ttl: timedelta) -> str:
        now = datetime.now(timezone.utc)
        to_encode = data.copy()
        to_encode.update({
            "exp": now + ttl,
            "iat": now,
            "jti": self._generate_jti(),  # keeps tokens issued in the same second distinct
        })
        return jwt.encode(to_encode, self._secret_for(kind), algorithm=self._algorithm)

    def issue_access(
        self,
        account_id: str,
        claims: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create an access token

        Args:
            account_id: Account identifier, stored as the ``id`` claim
            claims: Denormalized profile fields (email, username, fullName)
            expires_delta: Override for the configured lifetime

        Returns:
            str: Encoded JWT
        """
        data = dict(claims or {})
        data["id"] = str(account_id)
        return self._sign(data, TokenKind.ACCESS, expires_delta or self._access_ttl)

    def issue_refresh(self, account_id: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create a refresh token carrying only the account id"""
        return self._sign(
            {"id": str(account_id)},
            TokenKind.REFRESH,
            expires_delta or self._refresh_ttl,
        )

    def issue_pair(self, user) -> TokenPair:
        """Create both tokens for a user record"""
        access_token = self.issue_access(
            user.id,
            {"email": user.email, "username": user.username, "fullName": user.fullname},
        )
        return TokenPair(access_token=access_token, refresh_token=self.issue_refresh(user.id))

    def verify(self, token: str, kind: TokenKind) -> Dict[str, Any]:
        """
        Verify and decode a token

        Args:
            token: Encoded JWT
            kind: Key the token must be signed with

        Returns:
            Dict: Decoded claims

        Raises:
            TokenMalformedError: Token cannot be parsed or has no ``id`` claim
            TokenExpiredError: Token is past its expiry
            TokenInvalidError: Signature does not match the key for ``kind``
        """
        if not token or not isinstance(token, str):
            raise TokenMalformedError()

        try:
            jwt.get_unverified_claims(token)
        except JWTError:
            raise TokenMalformedError()

        try:
            payload = jwt.decode(token, self._secret_for(kind), algorithms=[self._algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTClaimsError:
            raise TokenMalformedError("Invalid token claims")
        except JWTError:
            raise TokenInvalidError()

        if not payload.get("id"):
            raise TokenMalformedError("Token has no subject")
        return payload


token_issuer = TokenIssuer(settings)

"""
JWT authentication for the restaurant marketplace API.

``TokenService`` signs and verifies access tokens and revokes them through
the optional blacklist. ``AuthGuard`` turns an incoming request into a
``Principal``: extract the token, verify it, load the user, and reject
tokens minted before the user's last password change.
"""

from calendar import timegm
from datetime import datetime, timedelta, timezone
from typing import Iterable, Mapping, Optional
import logging
import secrets

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from .database import get_db
from .exceptions import UnauthenticatedError
from .mixins import utcnow
from .token_blacklist import TokenBlacklist
from .user_models import User, UserRole

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TYPE = "access"
PASSWORD_VERSION_CLAIM = "pwv"
FALLBACK_TOKEN_COOKIE = "accessToken"

security = HTTPBearer(auto_error=False)


class InvalidTokenError(Exception):
    """Token is malformed, tampered with, or not one of ours."""


class ExpiredTokenError(InvalidTokenError):
    """Token signature is valid but its expiry has passed."""


class RevokedTokenError(InvalidTokenError):
    """Token was blacklisted on logout."""


class TokenClaims(BaseModel):
    """Verified token payload. Datetimes are naive UTC."""

    subject_user_id: int
    issued_at: datetime
    expires_at: datetime
    token_id: Optional[str] = None
    password_version: int = 0


class Principal(BaseModel):
    """The authenticated caller, without any credential material."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool = True
    email_verified: bool = False


def to_timestamp(value: datetime) -> int:
    """Whole seconds since the epoch for a naive UTC datetime."""
    return timegm(value.utctimetuple())


def from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


class TokenService:
    """Issues, verifies and revokes signed access tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(days=7),
        issuer: str = "restaurant-marketplace-api",
        leeway_seconds: int = 0,
        blacklist: Optional[TokenBlacklist] = None,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = lifetime
        self.issuer = issuer
        self.leeway_seconds = leeway_seconds
        self.blacklist = blacklist

    def issue(
        self,
        user_id: int,
        issued_at: Optional[datetime] = None,
        password_version: int = 0,
    ) -> str:
        """
        Create a signed access token for a user.

        Args:
            user_id: Subject of the token
            issued_at: Naive UTC issue time, defaults to now
            password_version: The user's current password version; the token
                stops working once the password changes

        Returns:
            Encoded JWT
        """
        issued_at = issued_at or utcnow()
        iat = to_timestamp(issued_at)
        claims = {
            "sub": str(user_id),
            "iat": iat,
            "exp": iat + int(self.lifetime.total_seconds()),
            "jti": secrets.token_urlsafe(16),
            "iss": self.issuer,
            "type": ACCESS_TOKEN_TYPE,
            PASSWORD_VERSION_CLAIM: password_version,
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.

        Raises:
            ExpiredTokenError: expiry has passed
            RevokedTokenError: token is blacklisted
            InvalidTokenError: anything else wrong with the token
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "require_iat": True,
                    "require_exp": True,
                    "require_sub": True,
                    "leeway": self.leeway_seconds,
                },
            )
        except ExpiredSignatureError as e:
            raise ExpiredTokenError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(f"Token verification failed: {e}") from e

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidTokenError(f"Unexpected token type: {payload.get('type')}")

        try:
            user_id = int(payload["sub"])
        except (ValueError, TypeError) as e:
            raise InvalidTokenError("Token subject is not a user id") from e

        password_version = payload.get(PASSWORD_VERSION_CLAIM)
        if not isinstance(password_version, int) or isinstance(password_version, bool):
            raise InvalidTokenError("Token carries no password version")

        if self.blacklist is not None and self.blacklist.contains(token):
            raise RevokedTokenError("Token has been revoked")

        return TokenClaims(
            subject_user_id=user_id,
            issued_at=from_timestamp(int(payload["iat"])),
            expires_at=from_timestamp(int(payload["exp"])),
            token_id=payload.get("jti"),
            password_version=password_version,
        )

    def revoke(self, token: str, claims: TokenClaims) -> bool:
        """Blacklist a token until it expires. Returns False when revocation is disabled."""
        if self.blacklist is None:
            return False
        self.blacklist.add(token, claims.expires_at)
        logger.info(f"Revoked token {claims.token_id} for user {claims.subject_user_id}")
        return True


def extract_token(
    credentials: Optional[HTTPAuthorizationCredentials],
    cookies: Mapping[str, str],
    cookie_names: Iterable[str],
) -> Optional[str]:
    """Bearer header first, then the named cookies in order."""
    if credentials and credentials.credentials:
        return credentials.credentials
    for name in cookie_names:
        value = cookies.get(name)
        if value:
            return value
    return None


class AuthGuard:
    """Resolves the authenticated principal for a request."""

    def __init__(self, token_service: TokenService, cookie_name: str = "token"):
        self.token_service = token_service
        self.cookie_names = [cookie_name, FALLBACK_TOKEN_COOKIE]

    def authenticate(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials],
        db: Session,
    ) -> Principal:
        token = extract_token(credentials, request.cookies, self.cookie_names)
        if not token:
            raise UnauthenticatedError("Not authorized to access this route")

        try:
            claims = self.token_service.verify(token)
        except ExpiredTokenError:
            logger.warning(f"Expired token presented at {request.url.path}")
            raise UnauthenticatedError("Token has expired")
        except RevokedTokenError:
            logger.warning(f"Revoked token presented at {request.url.path}")
            raise UnauthenticatedError("Token has been revoked")
        except InvalidTokenError as e:
            logger.warning(f"Invalid token presented at {request.url.path}: {e}")
            raise UnauthenticatedError("Not authorized to access this route")

        user = db.get(User, claims.subject_user_id)
        if user is None:
            raise UnauthenticatedError("User no longer exists")
        if not user.is_active:
            logger.warning(f"Inactive user {user.id} attempted access")
            raise UnauthenticatedError("User account is disabled")

        if self.password_changed_since(user, claims):
            raise UnauthenticatedError("User recently changed password. Please log in again")

        principal = Principal.model_validate(user)
        request.state.principal = principal
        request.state.token = token
        request.state.token_claims = claims
        return principal

    @staticmethod
    def password_changed_since(user: User, claims: TokenClaims) -> bool:
        # Every password change bumps the stored version
        return claims.password_version != (user.password_version or 0)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Principal:
    """FastAPI dependency returning the authenticated principal."""
    guard: AuthGuard = request.app.state.services.auth_guard
    return guard.authenticate(request, credentials, db)
